"""Shared fixtures for Reef MCP tests.

No test opens a real SSH session: either ``asyncssh.connect`` is patched
with a mock connection, or ``run_command`` is replaced by a scripted fake.
"""

from contextlib import ExitStack
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reef_mcp.models import CommandResult, ConnectionParameters

RUN_COMMAND_TARGETS = [
    "reef_mcp.services.runtime.run_command",
    "reef_mcp.services.restart.run_command",
    "reef_mcp.services.migration.run_command",
    "reef_mcp.services.archive.run_command",
    "reef_mcp.services.files.run_command",
]


class FakeRemote:
    """Scripted stand-in for ``run_command``.

    Rules match on a command fragment (and optionally a host); the most
    recently added matching rule wins. Unmatched commands succeed with
    empty output.
    """

    def __init__(self) -> None:
        self.rules: list[tuple[str, str | None, Any]] = []
        self.calls: list[tuple[str, str, str | None]] = []

    def on(
        self,
        fragment: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        host: str | None = None,
        error: Exception | None = None,
    ) -> None:
        outcome = error if error is not None else CommandResult(stdout, stderr, exit_code)
        self.rules.append((fragment, host, outcome))

    async def __call__(
        self,
        params: ConnectionParameters,
        command: str,
        stdin: str | None = None,
    ) -> CommandResult:
        self.calls.append((params.host, command, stdin))
        for fragment, host, outcome in reversed(self.rules):
            if fragment in command and (host is None or host == params.host):
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return CommandResult("", "", 0)

    def commands(self, host: str | None = None) -> list[str]:
        """Commands issued so far, optionally for one host."""
        return [cmd for h, cmd, _ in self.calls if host is None or h == host]


@pytest.fixture
def params() -> ConnectionParameters:
    """Connection parameters for a fleet host."""
    return ConnectionParameters(host="10.0.0.5", user="root", port=22)


@pytest.fixture
def other_params() -> ConnectionParameters:
    """Connection parameters for a second fleet host."""
    return ConnectionParameters(host="10.0.0.6", user="root", port=22)


@pytest.fixture
def mock_conn() -> MagicMock:
    """Mock asyncssh connection."""
    conn = MagicMock()
    conn.run = AsyncMock()
    conn.wait_closed = AsyncMock()
    return conn


@pytest.fixture
def mock_connect(mock_conn: MagicMock) -> Generator[AsyncMock, None, None]:
    """Patch ``asyncssh.connect`` to hand out ``mock_conn``."""
    with patch(
        "reef_mcp.services.connection.asyncssh.connect",
        new=AsyncMock(return_value=mock_conn),
    ) as mock:
        yield mock


@pytest.fixture
def remote() -> Generator[FakeRemote, None, None]:
    """Replace ``run_command`` in every service module with a FakeRemote."""
    fake = FakeRemote()
    with ExitStack() as stack:
        for target in RUN_COMMAND_TARGETS:
            stack.enter_context(patch(target, new=fake))
        yield fake
