"""Command and file-transfer primitives.

Each call opens a fresh session, performs exactly one command or one
transfer, and closes the session before returning.
"""

import logging
from pathlib import Path

import asyncssh

from reef_mcp.models import CommandResult, ConnectionParameters, TransferResult
from reef_mcp.services.connection import open_session
from reef_mcp.services.errors import RemoteConnectionError, TransferError

logger = logging.getLogger(__name__)


def _to_text(data: str | bytes | None) -> str:
    """Normalize asyncssh process output to text."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


async def run_command(
    params: ConnectionParameters,
    command: str,
    stdin: str | None = None,
) -> CommandResult:
    """Run one command on a fresh session and capture its output.

    Args:
        params: Connection parameters for the target host
        command: Shell command line
        stdin: Optional text fed to the remote process's standard input

    Returns:
        CommandResult with stdout, stderr and exit code. A nonzero exit code
        is returned, not raised.

    Raises:
        RemoteConnectionError: If the session cannot be established or the
            command channel cannot be opened
    """
    async with open_session(params) as conn:
        try:
            result = await conn.run(command, input=stdin, check=False)
        except asyncssh.Error as e:
            raise RemoteConnectionError(params.host, e) from e

    # Killed by a signal without an exit status
    exit_code = result.returncode if result.returncode is not None else -1

    logger.debug("Command on %s exited %d", params.label, exit_code)
    return CommandResult(
        stdout=_to_text(result.stdout),
        stderr=_to_text(result.stderr),
        exit_code=exit_code,
    )


async def push_file(
    params: ConnectionParameters,
    local_path: str | Path,
    remote_path: str,
) -> TransferResult:
    """Upload one local file over SFTP.

    The remote parent directory must already exist.

    Raises:
        RemoteConnectionError: If the session or SFTP channel cannot be opened
        TransferError: If the local file is missing or the remote path is invalid
    """
    local = Path(local_path)
    try:
        size = local.stat().st_size
    except OSError as e:
        raise TransferError(str(local), e) from e

    async with open_session(params) as conn:
        try:
            async with conn.start_sftp_client() as sftp:
                await sftp.put(str(local), remote_path)
        except (asyncssh.SFTPError, OSError) as e:
            raise TransferError(remote_path, e) from e
        except asyncssh.Error as e:
            raise RemoteConnectionError(params.host, e) from e

    logger.info("Pushed %s -> %s:%s (%d bytes)", local, params.host, remote_path, size)
    return TransferResult(
        source=str(local),
        destination=remote_path,
        bytes_transferred=size,
    )


async def pull_file(
    params: ConnectionParameters,
    remote_path: str,
    local_path: str | Path,
) -> TransferResult:
    """Download one remote file over SFTP.

    The local parent directory must already exist.

    Raises:
        RemoteConnectionError: If the session or SFTP channel cannot be opened
        TransferError: If the remote file is missing or the local path is invalid
    """
    local = Path(local_path)
    async with open_session(params) as conn:
        try:
            async with conn.start_sftp_client() as sftp:
                await sftp.get(remote_path, str(local))
        except (asyncssh.SFTPError, OSError) as e:
            raise TransferError(remote_path, e) from e
        except asyncssh.Error as e:
            raise RemoteConnectionError(params.host, e) from e

    size = local.stat().st_size if local.exists() else 0
    logger.info("Pulled %s:%s -> %s (%d bytes)", params.host, remote_path, local, size)
    return TransferResult(
        source=remote_path,
        destination=str(local),
        bytes_transferred=size,
    )
