"""SSH host key policy.

Decides which known_hosts file every per-call session verifies against.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_KNOWN_HOSTS = Path.home() / ".ssh" / "known_hosts"


class HostKeyVerifier:
    """Resolves the known_hosts file handed to each session.

    ``REEF_KNOWN_HOSTS=none`` disables verification outright. A missing
    file is fatal in strict mode and disables verification otherwise.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, ``"none"`` to
                disable, or None for ``~/.ssh/known_hosts``
            strict_checking: Fail when the known_hosts file is missing

        Raises:
            FileNotFoundError: If strict mode and the file is missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve(known_hosts_path)

    def _resolve(self, configured: str | None) -> str | None:
        if configured and configured.lower() == "none":
            logger.critical(
                "SSH host key verification DISABLED (REEF_KNOWN_HOSTS=none). "
                "Sessions are vulnerable to MITM attacks."
            )
            return None

        path = Path(os.path.expanduser(configured)) if configured else DEFAULT_KNOWN_HOSTS
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise FileNotFoundError(
                f"known_hosts not found at {path}. Add host keys with "
                f"'ssh-keyscan <hostname> >> {path}', point REEF_KNOWN_HOSTS at "
                f"another file, or set REEF_STRICT_HOST_KEY_CHECKING=false."
            )

        logger.warning("known_hosts not found at %s, verification disabled", path)
        return None

    def get_known_hosts_path(self) -> str | None:
        """Path to the known_hosts file, or None if verification is disabled."""
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Whether host keys are verified."""
        return self._known_hosts is not None
