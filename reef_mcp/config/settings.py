"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Safe path accessor
    max_file_size: int = field(default=1_000_000)

    # Restart orchestrator
    restart_settle_seconds: float = field(default=3.0)
    kill_wait_seconds: float = field(default=1.0)

    # Archives
    staging_dir: str = field(default_factory=tempfile.gettempdir)
    backup_dir: str = field(default="backups")

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="127.0.0.1")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from ``REEF_*`` environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            max_file_size=cls._get_int("REEF_MAX_FILE_SIZE", 1_000_000),
            restart_settle_seconds=cls._get_float("REEF_RESTART_SETTLE_SECONDS", 3.0),
            kill_wait_seconds=cls._get_float("REEF_KILL_WAIT_SECONDS", 1.0),
            staging_dir=os.getenv("REEF_STAGING_DIR") or tempfile.gettempdir(),
            backup_dir=os.getenv("REEF_BACKUP_DIR", "backups"),
            transport=cls._get_transport(),
            http_host=os.getenv("REEF_HTTP_HOST", "127.0.0.1"),
            http_port=cls._get_int("REEF_HTTP_PORT", 8000),
            log_level=os.getenv("REEF_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("REEF_LOG_COLORS", True),
            log_payloads=cls._get_bool("REEF_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("REEF_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("REEF_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get non-negative float from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Float value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default
        if parsed < 0:
            logger.warning("Negative value for %s: %s, using default %s", key, value, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """Get transport (``http`` or ``stdio``), defaulting to ``http``."""
        transport = os.getenv("REEF_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
