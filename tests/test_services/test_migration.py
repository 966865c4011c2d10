"""Tests for agent migration between hosts."""

from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, patch

import pytest

from reef_mcp.models import MIGRATION_METHOD, ConnectionParameters, TransferResult
from reef_mcp.services.errors import TransferError
from reef_mcp.services.migration import migrate_agent
from reef_mcp.utils.validation import InvalidIdentifierError

SOURCE = "10.0.0.5"
DEST = "10.0.0.6"


@pytest.fixture
def transfers() -> Generator[dict[str, AsyncMock], None, None]:
    """Patch SFTP transfers; pulls write a real local staging file."""

    async def fake_pull(params: ConnectionParameters, remote: str, local: Path) -> TransferResult:
        Path(local).write_bytes(b"archive")
        return TransferResult(remote, str(local), 7)

    async def fake_push(params: ConnectionParameters, local: Path, remote: str) -> TransferResult:
        return TransferResult(str(local), remote, 7)

    pull = AsyncMock(side_effect=fake_pull)
    push = AsyncMock(side_effect=fake_push)
    with (
        patch("reef_mcp.services.migration.pull_file", new=pull),
        patch("reef_mcp.services.migration.push_file", new=push),
    ):
        yield {"pull": pull, "push": push}


@pytest.mark.asyncio
async def test_successful_migration_runs_steps_in_order(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    outcome = await migrate_agent(params, other_params, "sales", staging_dir=tmp_path)

    assert outcome.success is True
    assert outcome.method == MIGRATION_METHOD
    assert outcome.error is None

    source_cmds = remote.commands(SOURCE)
    dest_cmds = remote.commands(DEST)
    assert source_cmds[0].startswith("tar -czf /tmp/reef-migrate-sales.tar.gz")
    assert source_cmds[1] == "rm -f /tmp/reef-migrate-sales.tar.gz"
    assert dest_cmds[0] == 'mkdir -p "$HOME"/.openclaw/agents'
    assert dest_cmds[1].startswith("tar -xzf /tmp/reef-migrate-sales.tar.gz")
    assert not any("rm -rf" in cmd for cmd in source_cmds)

    transfers["pull"].assert_awaited_once()
    transfers["push"].assert_awaited_once()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_delete_source_after_full_transfer(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    outcome = await migrate_agent(
        params, other_params, "sales", delete_source=True, staging_dir=tmp_path
    )

    assert outcome.success is True
    assert remote.commands(SOURCE)[-1] == 'rm -rf "$HOME"/.openclaw/agents/sales'


@pytest.mark.asyncio
async def test_invalid_agent_id_makes_no_remote_calls(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
) -> None:
    with pytest.raises(InvalidIdentifierError):
        await migrate_agent(params, other_params, "x; rm -rf ~", delete_source=True)

    assert remote.calls == []
    transfers["pull"].assert_not_awaited()


@pytest.mark.asyncio
async def test_failure_between_push_and_extract_keeps_source(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    """An extract failure never deletes the source, even when asked to."""
    remote.on("tar -xzf", stderr="tar: Error is not recoverable", exit_code=2, host=DEST)

    outcome = await migrate_agent(
        params, other_params, "sales", delete_source=True, staging_dir=tmp_path
    )

    assert outcome.success is False
    assert outcome.method == MIGRATION_METHOD
    assert outcome.error and "not recoverable" in outcome.error
    assert not any("rm -rf" in cmd for cmd in remote.commands(SOURCE))
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_source_archive_failure_short_circuits(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    remote.on("tar -czf", stderr="No such file or directory", exit_code=2, host=SOURCE)

    outcome = await migrate_agent(params, other_params, "ghost", staging_dir=tmp_path)

    assert outcome.success is False
    assert "archive on source" in (outcome.error or "")
    assert remote.commands(DEST) == []
    transfers["pull"].assert_not_awaited()


@pytest.mark.asyncio
async def test_transfer_error_is_normalized(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    transfers["push"].side_effect = TransferError("/tmp/x", OSError("disk full"))

    outcome = await migrate_agent(params, other_params, "sales", staging_dir=tmp_path)

    assert outcome.success is False
    assert "disk full" in (outcome.error or "")
    assert not any(cmd.startswith("tar -xzf") for cmd in remote.commands(DEST))
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_staging_cleanup_failure_does_not_mask_result(
    params: ConnectionParameters,
    other_params: ConnectionParameters,
    remote: Any,
    transfers: dict[str, AsyncMock],
    tmp_path: Path,
) -> None:
    with patch("reef_mcp.services.migration.Path.unlink", side_effect=OSError("busy")):
        outcome = await migrate_agent(params, other_params, "sales", staging_dir=tmp_path)

    assert outcome.success is True
