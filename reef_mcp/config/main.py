"""Application configuration.

Delegates to specialized components:
- SSHConfigParser: Reads ~/.ssh/config
- HostKeyVerifier: Manages known_hosts
- Settings: Environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from reef_mcp.config.host_keys import HostKeyVerifier
from reef_mcp.config.parser import SSHConfigParser
from reef_mcp.config.settings import Settings
from reef_mcp.models import ConnectionParameters, SSHHost

logger = logging.getLogger(__name__)


def _split_env_list(key: str) -> list[str] | None:
    value = os.getenv(key, "").strip()
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Application configuration and connection resolver.

    Aggregates settings from SSH config, known_hosts, and environment.
    """

    settings: Settings
    parser: SSHConfigParser
    host_keys: HostKeyVerifier
    _hosts_cache: dict[str, SSHHost] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        parser = SSHConfigParser(
            config_path=os.getenv("REEF_SSH_CONFIG"),
            allowlist=_split_env_list("REEF_ALLOWLIST"),
            blocklist=_split_env_list("REEF_BLOCKLIST"),
        )
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("REEF_KNOWN_HOSTS"),
            strict_checking=os.getenv("REEF_STRICT_HOST_KEY_CHECKING", "true").lower()
            != "false",
        )
        return cls(settings=Settings.from_env(), parser=parser, host_keys=host_keys)

    def get_hosts(self) -> dict[str, SSHHost]:
        """Get SSH hosts from config.

        Lazy loads and caches hosts on first call.
        """
        if not self._hosts_cache:
            self._hosts_cache = self.parser.parse()
        return self._hosts_cache

    def get_host(self, name: str) -> SSHHost | None:
        """Get host by name."""
        return self.get_hosts().get(name)

    def resolve(self, name: str) -> ConnectionParameters | None:
        """Resolve a host alias into per-call connection parameters.

        The identity file is read on every call; key material is never
        cached.

        Args:
            name: Host alias from the SSH config

        Returns:
            ConnectionParameters, or None if the host is unknown

        Raises:
            OSError: If the identity file cannot be read
        """
        host = self.get_host(name)
        if host is None:
            return None

        credential = None
        if host.identity_file:
            credential = Path(host.identity_file).read_text()

        return ConnectionParameters(
            host=host.hostname,
            credential=credential,
            port=host.port,
            user=host.user,
            known_hosts=self.known_hosts_path,
        )

    @property
    def max_file_size(self) -> int:
        """Read/write ceiling for the safe path accessor, in bytes."""
        return self.settings.max_file_size

    @property
    def restart_settle_seconds(self) -> float:
        """Wait between a restart and its health check."""
        return self.settings.restart_settle_seconds

    @property
    def kill_wait_seconds(self) -> float:
        """Wait between a forced kill and the presence probe."""
        return self.settings.kill_wait_seconds

    @property
    def staging_dir(self) -> str:
        """Local directory for migration staging archives."""
        return self.settings.staging_dir

    @property
    def backup_dir(self) -> str:
        """Local directory backups are written under."""
        return self.settings.backup_dir

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()
