"""Error taxonomy for remote operations.

Nonzero exit codes are not errors; they travel as ``CommandResult`` data.
Policy errors live in ``reef_mcp.utils.validation``.
"""


class RemoteConnectionError(Exception):
    """Auth, network or channel failure before the command could run."""

    def __init__(self, host: str, original_error: BaseException):
        """Initialize connection error.

        Args:
            host: Host the session was opened against
            original_error: Original exception that caused the failure
        """
        self.host = host
        self.original_error = original_error
        super().__init__(f"Cannot connect to {host}: {original_error}")


class TransferError(Exception):
    """SFTP transfer failed because a local or remote path was invalid."""

    def __init__(self, path: str, original_error: BaseException):
        self.path = path
        self.original_error = original_error
        super().__init__(f"Transfer failed for {path}: {original_error}")


class RemoteFileError(RuntimeError):
    """Remote file could not be read or written."""

    pass


class FileTooLargeError(RemoteFileError):
    """Remote file exceeds the read ceiling."""

    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {path} is {size} bytes (limit {limit})")


class MigrationStepError(RuntimeError):
    """One step of a migration failed."""

    def __init__(self, step: str, detail: str):
        self.step = step
        self.detail = detail
        super().__init__(f"{step} failed: {detail}" if detail else f"{step} failed")
