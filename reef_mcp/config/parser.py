"""SSH config file parser.

Reads ~/.ssh/config and extracts fleet host definitions with
allowlist/blocklist filtering.
"""

import logging
import os
import re
from pathlib import Path

from reef_mcp.models import SSHHost

logger = logging.getLogger(__name__)

_HOST_LINE = re.compile(r"^Host\s+(\S+)", re.IGNORECASE)
_OPTION_LINE = re.compile(r"^(\w+)\s+(.+)$")


class SSHConfigParser:
    """Parser for SSH config files.

    Only ``HostName``, ``User``, ``Port`` and ``IdentityFile`` are read.
    Options under ``Host *`` act as defaults for later hosts.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        allowlist: list[str] | None = None,
        blocklist: list[str] | None = None,
    ):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
            allowlist: Only include these hosts (if set)
            blocklist: Exclude these hosts
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"

        self.config_path = Path(config_path)
        self.allowlist = set(allowlist) if allowlist else None
        self.blocklist = set(blocklist) if blocklist else set()

    def parse(self) -> dict[str, SSHHost]:
        """Parse SSH config and return host definitions.

        Returns:
            Dictionary mapping host alias to SSHHost
        """
        if not self.config_path.exists():
            logger.warning("SSH config not found: %s", self.config_path)
            return {}

        try:
            content = self.config_path.read_text()
        except OSError as e:
            logger.warning("Cannot read SSH config %s: %s", self.config_path, e)
            return {}

        sections: list[tuple[str, dict[str, str]]] = []
        defaults: dict[str, str] = {}
        current: dict[str, str] | None = None

        for raw in content.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_LINE.match(line)
            if host_match:
                alias = host_match.group(1)
                if "*" in alias or "?" in alias:
                    current = defaults
                else:
                    current = dict(defaults)
                    sections.append((alias, current))
                continue

            option = _OPTION_LINE.match(line)
            if option and current is not None:
                key = option.group(1).lower()
                value = option.group(2).strip()
                if key == "identityfile":
                    value = os.path.expanduser(value)
                current[key] = value

        hosts = {
            alias: self._build_host(alias, data)
            for alias, data in sections
            if data.get("hostname") and self._is_host_allowed(alias)
        }
        logger.info("Parsed %d hosts from %s", len(hosts), self.config_path)
        return hosts

    @staticmethod
    def _build_host(alias: str, data: dict[str, str]) -> SSHHost:
        try:
            port = int(data.get("port", "22"))
        except ValueError:
            port = 22
        return SSHHost(
            name=alias,
            hostname=data["hostname"],
            user=data.get("user", "root"),
            port=port,
            identity_file=data.get("identityfile"),
        )

    def _is_host_allowed(self, name: str) -> bool:
        """Check if host passes allowlist/blocklist filters.

        Allowlist takes precedence over blocklist.
        """
        if self.allowlist:
            return name in self.allowlist
        return name not in self.blocklist
