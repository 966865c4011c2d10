"""Command execution data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """Result of a remote command execution.

    A nonzero ``exit_code`` is a normal round-trip whose remote command
    happened to fail, not an error.
    """

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        """Whether the remote command exited zero."""
        return self.exit_code == 0

    @property
    def combined(self) -> str:
        """Stdout followed by stderr, stripped."""
        return (self.stdout + self.stderr).strip()


@dataclass(frozen=True)
class TransferResult:
    """Result of a single-file SFTP transfer."""

    source: str
    destination: str
    bytes_transferred: int = 0
