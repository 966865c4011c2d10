"""Per-call SSH sessions.

Every operation opens its own session and closes it before returning;
nothing is pooled or cached.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncssh

from reef_mcp.models import ConnectionParameters
from reef_mcp.services.errors import RemoteConnectionError

logger = logging.getLogger(__name__)


def connect_options(params: ConnectionParameters) -> dict[str, Any]:
    """Build ``asyncssh.connect`` keyword arguments.

    Raises:
        asyncssh.KeyImportError: If the credential is not a valid private key
    """
    options: dict[str, Any] = {
        "port": params.port,
        "username": params.user,
        "known_hosts": params.known_hosts,
    }
    if params.credential is not None:
        options["client_keys"] = [asyncssh.import_private_key(params.credential)]
    return options


async def connect(params: ConnectionParameters) -> asyncssh.SSHClientConnection:
    """Open one authenticated session.

    The caller owns the returned connection and must close it.

    Raises:
        RemoteConnectionError: On auth, key or network failure
    """
    logger.debug("Opening SSH session to %s", params.label)
    try:
        return await asyncssh.connect(params.host, **connect_options(params))
    except (OSError, asyncssh.Error, asyncssh.KeyImportError) as e:
        logger.warning("SSH session to %s failed: %s", params.label, e)
        raise RemoteConnectionError(params.host, e) from e


async def close_connection(conn: asyncssh.SSHClientConnection) -> None:
    """Close a session and wait for the transport to shut down."""
    conn.close()
    await conn.wait_closed()


@asynccontextmanager
async def open_session(
    params: ConnectionParameters,
) -> AsyncIterator[asyncssh.SSHClientConnection]:
    """Open a session scoped to the ``async with`` block.

    The session is closed on every exit path, including errors raised by
    the block.

    Raises:
        RemoteConnectionError: If the session cannot be established
    """
    conn = await connect(params)
    try:
        yield conn
    finally:
        logger.debug("Closing SSH session to %s", params.label)
        await close_connection(conn)
