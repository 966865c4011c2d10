"""Tests for MCP tool functions."""

import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastmcp.exceptions import ToolError

from reef_mcp.config import Config, HostKeyVerifier, Settings, SSHConfigParser
from reef_mcp.models import (
    CommandResult,
    FleetOverview,
    FleetResult,
    MigrationOutcome,
    RestartMethod,
    RestartOutcome,
)
from reef_mcp.services import reset_state, set_config
from reef_mcp.tools import operations


class FakeStream:
    """Stands in for a StreamSession."""

    def __init__(self, chunks: list[str], exit_code: int | None = 0) -> None:
        self.chunks = chunks
        self.exit_code = exit_code
        self.closed = False

    async def __aenter__(self) -> "FakeStream":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.closed = True

    async def _gen(self) -> AsyncIterator[str]:
        for chunk in self.chunks:
            yield chunk

    def __aiter__(self) -> AsyncIterator[str]:
        return self._gen()

    async def wait(self) -> int | None:
        return self.exit_code


@pytest.fixture(autouse=True)
def fleet_config(tmp_path: Path) -> Generator[Config, None, None]:
    """Two-host fleet config installed as the process-wide config."""
    ssh_config = tmp_path / "ssh_config"
    ssh_config.write_text(
        "Host reef-1\n    HostName 203.0.113.10\n"
        "Host reef-2\n    HostName 203.0.113.11\n    User ops\n"
    )
    config = Config(
        settings=Settings(
            backup_dir=str(tmp_path / "backups"),
            restart_settle_seconds=0.0,
            kill_wait_seconds=0.0,
        ),
        parser=SSHConfigParser(ssh_config),
        host_keys=HostKeyVerifier(known_hosts_path="none"),
    )
    set_config(config)
    yield config
    reset_state()


@pytest.fixture
def ctx() -> MagicMock:
    context = MagicMock()
    context.info = AsyncMock()
    return context


@pytest.mark.asyncio
async def test_hosts_lists_fleet() -> None:
    output = await operations.hosts()

    assert "reef-1 -> root@203.0.113.10:22" in output
    assert "reef-2 -> ops@203.0.113.11:22" in output


@pytest.mark.asyncio
async def test_unknown_host_is_tool_error() -> None:
    with pytest.raises(ToolError, match="Unknown host: nowhere"):
        await operations.run("nowhere", "uptime")


@pytest.mark.asyncio
async def test_run_formats_output() -> None:
    run = AsyncMock(return_value=CommandResult("hello\n", "warn\n", 2))
    with patch("reef_mcp.tools.operations.run_command", new=run):
        output = await operations.run("reef-1", "echo hello")

    assert output == "hello\n\n[stderr]\nwarn\n[exit code: 2]"
    assert run.await_args.args[0].host == "203.0.113.10"


@pytest.mark.asyncio
async def test_policy_error_is_tool_error() -> None:
    run = AsyncMock()
    with patch("reef_mcp.services.files.run_command", new=run):
        with pytest.raises(ToolError, match="within"):
            await operations.read_file("reef-1", "/etc/shadow")

    run.assert_not_awaited()


@pytest.mark.asyncio
async def test_restart_uses_configured_delays() -> None:
    restart = AsyncMock(
        return_value=RestartOutcome(True, RestartMethod.SERVICE_MANAGER, "restarted via systemd")
    )
    with patch("reef_mcp.tools.operations.restart_runtime", new=restart):
        output = await operations.restart("reef-2")

    assert output.startswith("Restart succeeded via service-manager")
    assert restart.await_args.kwargs == {"settle_interval": 0.0, "kill_wait": 0.0}


@pytest.mark.asyncio
async def test_migrate_failure_is_tool_error() -> None:
    migrate = AsyncMock(return_value=MigrationOutcome(success=False, error="extract failed"))
    with patch("reef_mcp.tools.operations.migrate_agent", new=migrate):
        with pytest.raises(ToolError, match="extract failed"):
            await operations.migrate("reef-1", "reef-2", "sales")


@pytest.mark.asyncio
async def test_upgrade_forwards_chunks(ctx: MagicMock) -> None:
    stream = FakeStream(["=== Upgrading ===\n", "done\n"])
    with patch("reef_mcp.tools.operations.stream_upgrade", return_value=stream):
        output = await operations.upgrade("reef-1", ctx=ctx)

    assert output == "=== Upgrading ===\ndone\n"
    assert [c.args[0] for c in ctx.info.await_args_list] == ["=== Upgrading ===\n", "done\n"]
    assert stream.closed


@pytest.mark.asyncio
async def test_upgrade_failure(ctx: MagicMock) -> None:
    with patch("reef_mcp.tools.operations.stream_upgrade", return_value=FakeStream(["npm ERR!\n"], 1)):
        with pytest.raises(ToolError, match="exit 1"):
            await operations.upgrade("reef-1", ctx=ctx)


@pytest.mark.asyncio
async def test_chat_streaming(ctx: MagicMock) -> None:
    with patch(
        "reef_mcp.tools.operations.stream_chat_message",
        return_value=FakeStream(["Hel", "lo"]),
    ) as mock_stream:
        reply = await operations.chat("reef-1", "main", "hi", stream=True, ctx=ctx)

    assert reply == "Hello"
    assert mock_stream.call_args.args[1:] == ("main", "hi")
    assert ctx.info.await_count == 2


@pytest.mark.asyncio
async def test_fleet_sweep_reports_every_host() -> None:
    results = [
        FleetResult(host="reef-1", success=True, value="ok"),
        FleetResult(host="reef-2", success=False, error="Cannot connect to 203.0.113.11"),
    ]
    with patch("reef_mcp.tools.operations.fleet_hygiene", new=AsyncMock(return_value=results)) as mock:
        output = await operations.fleet_sweep("hygiene")

    targets = mock.await_args.args[0]
    assert [t.name for t in targets] == ["reef-1", "reef-2"]
    assert "=== reef-2 [FAILED]" in output
    assert "--- 1/2 succeeded ---" in output


@pytest.mark.asyncio
async def test_fleet_overview_is_json() -> None:
    overview = FleetOverview(errors={"reef-2": "timed out"})
    with patch(
        "reef_mcp.tools.operations.build_fleet_overview", new=AsyncMock(return_value=overview)
    ):
        output = await operations.fleet_overview(["reef-2"])

    assert json.loads(output) == {"agents": [], "instances": [], "errors": {"reef-2": "timed out"}}
