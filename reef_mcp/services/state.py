"""Global state management for Reef MCP.

Only configuration is process-wide; sessions are never shared.
"""

from reef_mcp.config import Config

_config: Config | None = None


def get_config() -> Config:
    """Get or create config."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config) -> None:
    """Set the global config instance.

    Allows tests to inject a custom config without modifying module internals.
    """
    global _config
    _config = config


def reset_state() -> None:
    """Reset global state for testing."""
    global _config
    _config = None
