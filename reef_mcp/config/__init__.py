"""Configuration module for Reef MCP.

- Config: Main configuration class and connection resolver
- SSHConfigParser: Parses ~/.ssh/config files
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from reef_mcp.config.host_keys import HostKeyVerifier
from reef_mcp.config.main import Config
from reef_mcp.config.parser import SSHConfigParser
from reef_mcp.config.settings import Settings

__all__ = ["Config", "SSHConfigParser", "HostKeyVerifier", "Settings"]
