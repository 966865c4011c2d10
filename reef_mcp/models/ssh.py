"""SSH-related data models."""

from dataclasses import dataclass, field


@dataclass
class SSHHost:
    """Host entry parsed from an SSH config file."""

    name: str
    hostname: str
    user: str = "root"
    port: int = 22
    identity_file: str | None = None


@dataclass(frozen=True)
class ConnectionParameters:
    """Everything needed to open one authenticated session.

    Supplied per call and never cached. ``credential`` holds private key
    text; ``None`` falls back to the SSH client's default keys.
    ``known_hosts`` of ``None`` skips host key verification.
    """

    host: str
    credential: str | None = field(default=None, repr=False)
    port: int = 22
    user: str = "root"
    known_hosts: str | None = None

    @property
    def label(self) -> str:
        """``user@host:port`` for log lines."""
        return f"{self.user}@{self.host}:{self.port}"
