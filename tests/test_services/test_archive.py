"""Tests for tarball backup and deploy."""

from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, patch

import pytest

from reef_mcp.models import ConnectionParameters, TransferResult
from reef_mcp.services.archive import backup_agent, backup_directory, deploy_agent
from reef_mcp.services.errors import RemoteConnectionError, RemoteFileError, TransferError
from reef_mcp.utils.validation import InvalidIdentifierError, PathConfinementError


@pytest.fixture
def sftp() -> Generator[dict[str, AsyncMock], None, None]:
    pull = AsyncMock(side_effect=lambda params, remote, local: TransferResult(remote, str(local), 10))
    push = AsyncMock(side_effect=lambda params, local, remote: TransferResult(str(local), remote, 10))
    with (
        patch("reef_mcp.services.archive.pull_file", new=pull),
        patch("reef_mcp.services.archive.push_file", new=push),
    ):
        yield {"pull": pull, "push": push}


@pytest.mark.asyncio
async def test_backup_directory_archives_state_dir(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    local = tmp_path / "host" / "backup.tar.gz"

    result = await backup_directory(params, local)

    tar, cleanup = remote.commands()
    assert tar.endswith('-C "$HOME" .openclaw')
    remote_tmp = tar.split()[2]
    assert remote_tmp.startswith("/tmp/reef-backup-")
    assert cleanup == f"rm -f {remote_tmp}"
    assert result.destination == str(local)
    assert local.parent.is_dir()


@pytest.mark.asyncio
async def test_backup_directory_temp_paths_are_unique(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    await backup_directory(params, tmp_path / "a.tar.gz")
    await backup_directory(params, tmp_path / "b.tar.gz")

    tars = [cmd.split()[2] for cmd in remote.commands() if cmd.startswith("tar")]
    assert tars[0] != tars[1]


@pytest.mark.asyncio
async def test_backup_directory_rejects_outside_root(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    with pytest.raises(PathConfinementError):
        await backup_directory(params, tmp_path / "x.tar.gz", remote_dir="~/.ssh")

    assert remote.calls == []


@pytest.mark.asyncio
async def test_backup_agent_cleans_up_after_failed_pull(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    sftp["pull"].side_effect = TransferError("/tmp/reef-agent-backup-sales.tar.gz", OSError("eof"))

    with pytest.raises(TransferError):
        await backup_agent(params, "sales", tmp_path / "sales.tar.gz")

    assert remote.commands()[-1] == "rm -f /tmp/reef-agent-backup-sales.tar.gz"


@pytest.mark.asyncio
async def test_backup_agent_tar_failure(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    remote.on("tar -czf", stderr="Cannot stat", exit_code=2)

    with pytest.raises(RemoteFileError, match="Cannot stat"):
        await backup_agent(params, "sales", tmp_path / "sales.tar.gz")

    sftp["pull"].assert_not_awaited()


@pytest.mark.asyncio
async def test_backup_agent_rejects_bad_id(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    with pytest.raises(InvalidIdentifierError):
        await backup_agent(params, "../main", tmp_path / "x.tar.gz")

    assert remote.calls == []


@pytest.mark.asyncio
async def test_deploy_agent_runs_doctor(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    remote.on("openclaw doctor", stdout="All checks passed\n")

    result = await deploy_agent(params, "sales", tmp_path / "sales.tar.gz")

    assert result.success is True
    assert "All checks passed" in result.output
    sftp["push"].assert_awaited_once()
    unpack, cleanup, doctor = remote.commands()
    assert unpack.startswith('mkdir -p "$HOME"/.openclaw/agents && tar -xzf /tmp/reef-deploy-sales.tar.gz')
    assert cleanup == "rm -f /tmp/reef-deploy-sales.tar.gz"
    assert doctor.startswith("openclaw doctor --non-interactive")


@pytest.mark.asyncio
async def test_deploy_agent_extract_failure_skips_doctor(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    remote.on("tar -xzf", stderr="gzip: not in gzip format", exit_code=2)

    result = await deploy_agent(params, "sales", tmp_path / "sales.tar.gz")

    assert result.success is False
    assert "gzip" in result.output
    assert not any("doctor" in cmd for cmd in remote.commands())


@pytest.mark.asyncio
async def test_deploy_agent_discards_upload_when_unpack_loses_connection(
    params: ConnectionParameters, remote: Any, sftp: dict[str, AsyncMock], tmp_path: Path
) -> None:
    remote.on("tar -xzf", error=RemoteConnectionError(params.host, OSError("connection reset")))

    with pytest.raises(RemoteConnectionError):
        await deploy_agent(params, "sales", tmp_path / "sales.tar.gz")

    assert remote.commands()[-1] == "rm -f /tmp/reef-deploy-sales.tar.gz"
    assert not any("doctor" in cmd for cmd in remote.commands())
