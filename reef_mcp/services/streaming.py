"""Live output streaming over a per-call SSH session."""

import asyncio
import logging
from collections.abc import AsyncIterator
from types import TracebackType

import asyncssh

from reef_mcp.models import ConnectionParameters
from reef_mcp.services.connection import close_connection, connect
from reef_mcp.services.errors import RemoteConnectionError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192


class StreamSession:
    """Live stdout of one remote command plus its completion signal.

    The session opens lazily on first iteration and yields stdout chunks as
    they arrive. Iteration is one-shot. Stderr is discarded. The owner must
    either drain the stream or tear it down with :meth:`aclose` (leaving an
    ``async with`` block does the same); tearing down closes the remote
    process and the connection.

    Example:
        async with stream_command(params, "openclaw agent ...") as session:
            async for chunk in session:
                send(chunk)
        exit_code = await session.wait()
    """

    def __init__(
        self,
        params: ConnectionParameters,
        command: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.params = params
        self.command = command
        self.chunk_size = chunk_size
        self._conn: asyncssh.SSHClientConnection | None = None
        self._process: asyncssh.SSHClientProcess | None = None
        self._started = False
        self._closed = False
        self._finished = asyncio.Event()
        self._exit_code: int | None = None
        self._error: BaseException | None = None

    @property
    def closed(self) -> bool:
        """Whether the underlying session has been torn down."""
        return self._closed

    def _settle(self, exit_code: int | None = None, error: BaseException | None = None) -> None:
        if self._finished.is_set():
            return
        self._exit_code = exit_code
        self._error = error
        self._finished.set()

    async def _open(self) -> asyncssh.SSHClientProcess | None:
        """Connect and start the command; ``None`` if torn down meanwhile."""
        try:
            conn = await connect(self.params)
        except RemoteConnectionError as e:
            self._closed = True
            self._settle(error=e)
            raise

        if self._closed:
            logger.debug("Stream to %s torn down while connecting", self.params.label)
            await close_connection(conn)
            return None
        self._conn = conn

        try:
            process = await conn.create_process(self.command, stderr=asyncssh.DEVNULL)
        except asyncssh.Error as e:
            if self._closed:
                return None
            error = RemoteConnectionError(self.params.host, e)
            self._settle(error=error)
            await self.aclose()
            raise error from e

        # aclose() already closed the connection if it ran during create_process
        if self._closed:
            process.close()
            return None
        self._process = process

        logger.debug("Streaming command started on %s", self.params.label)
        return process

    async def _chunks(self) -> AsyncIterator[str]:
        process = await self._open()
        if process is None:
            return
        try:
            while True:
                chunk = await process.stdout.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
            await process.wait()
            exit_code = process.returncode
            self._settle(exit_code=exit_code if exit_code is not None else -1)
        finally:
            await self.aclose()

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("StreamSession output can only be consumed once")
        self._started = True
        return self._chunks()

    async def wait(self) -> int | None:
        """Wait for the stream to settle.

        Returns:
            The remote exit code, or ``None`` if the stream was torn down
            before the remote command exited.

        Raises:
            RemoteConnectionError: If the session could not be established
        """
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        return self._exit_code

    async def aclose(self) -> None:
        """Tear down the remote process and the session. Idempotent."""
        if self._closed:
            self._settle()
            return
        self._closed = True

        if self._process is not None:
            self._process.close()
        if self._conn is not None:
            logger.debug("Closing streaming session to %s", self.params.label)
            await close_connection(self._conn)
        self._settle()

    async def __aenter__(self) -> "StreamSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def stream_command(
    params: ConnectionParameters,
    command: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> StreamSession:
    """Create a lazy stream over one remote command's stdout.

    No connection is made until the session is iterated.
    """
    return StreamSession(params, command, chunk_size=chunk_size)
