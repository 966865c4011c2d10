"""Confined remote file access.

Every path is checked against the confinement root before any session is
opened. File content crosses the wire base64-encoded in both directions
and never appears on a command line.
"""

import base64
import binascii
import logging
from typing import Literal

from reef_mcp.models import ConnectionParameters, FileEntry
from reef_mcp.services.errors import FileTooLargeError, RemoteFileError
from reef_mcp.services.executors import run_command
from reef_mcp.utils.shell import encode_payload, quote_path
from reef_mcp.utils.validation import validate_confined_path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 1_000_000


async def probe_size(params: ConnectionParameters, path: str) -> int:
    """Return the size in bytes of a confined remote file.

    Raises:
        PolicyError: If the path is outside the confinement root
        RemoteFileError: If the file does not exist or cannot be stat'ed
    """
    path = validate_confined_path(path)
    probe = await run_command(params, f"stat -c %s {quote_path(path)}")
    if not probe.ok:
        raise RemoteFileError(f"Failed to read {path}: {probe.stderr.strip() or 'not found'}")
    try:
        return int(probe.stdout.strip())
    except ValueError as e:
        raise RemoteFileError(f"Cannot determine size of {path}: {probe.stdout!r}") from e


async def read_remote_file(
    params: ConnectionParameters,
    path: str,
    max_size: int = MAX_FILE_SIZE,
) -> str:
    """Read a confined remote file.

    The size is probed first; files above ``max_size`` are rejected before
    any content is transferred.

    Args:
        params: Connection parameters for the target host
        path: Home-relative path under the confinement root
        max_size: Size ceiling in bytes

    Returns:
        File content decoded as UTF-8 (invalid bytes replaced)

    Raises:
        PolicyError: If the path is outside the confinement root
        FileTooLargeError: If the file exceeds ``max_size``
        RemoteFileError: If the file cannot be read
    """
    path = validate_confined_path(path)
    size = await probe_size(params, path)
    if size > max_size:
        raise FileTooLargeError(path, size, max_size)

    result = await run_command(params, f"base64 {quote_path(path)}")
    if not result.ok:
        raise RemoteFileError(f"Failed to read {path}: {result.stderr.strip()}")

    try:
        data = base64.b64decode(result.stdout)
    except binascii.Error as e:
        raise RemoteFileError(f"Corrupt content received for {path}") from e

    logger.debug("Read %s from %s (%d bytes)", path, params.host, len(data))
    return data.decode("utf-8", errors="replace")


async def write_remote_file(
    params: ConnectionParameters,
    path: str,
    content: str | bytes,
    max_size: int = MAX_FILE_SIZE,
) -> int:
    """Write a confined remote file, byte-exact.

    The content is base64-encoded and fed on stdin to ``base64 -d``, so
    quotes, backticks and shell metacharacters arrive untouched.

    Returns:
        Number of bytes written

    Raises:
        PolicyError: If the path is outside the confinement root
        FileTooLargeError: If the content exceeds ``max_size``
        RemoteFileError: If the remote write fails
    """
    path = validate_confined_path(path)
    data = content.encode("utf-8") if isinstance(content, str) else content
    if len(data) > max_size:
        raise FileTooLargeError(path, len(data), max_size)

    result = await run_command(
        params,
        f"base64 -d > {quote_path(path)}",
        stdin=encode_payload(data),
    )
    if not result.ok:
        raise RemoteFileError(
            f"Failed to write {path}: {result.stderr.strip() or f'exit {result.exit_code}'}"
        )

    logger.info("Wrote %s on %s (%d bytes)", path, params.host, len(data))
    return len(data)


async def list_directory(params: ConnectionParameters, path: str) -> list[FileEntry]:
    """List a confined remote directory.

    Missing or unreadable directories list as empty.

    Raises:
        PolicyError: If the path is outside the confinement root
    """
    path = validate_confined_path(path)
    result = await run_command(params, f"ls -1p {quote_path(path)} 2>/dev/null || true")

    entries = []
    for name in result.stdout.strip().splitlines():
        if not name:
            continue
        kind: Literal["file", "directory"] = "directory" if name.endswith("/") else "file"
        entries.append(FileEntry(name=name.rstrip("/"), type=kind))
    return entries
