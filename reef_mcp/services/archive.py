"""Tarball backup and deploy of runtime state.

Remote archives are staged in ``/tmp`` under names scoped by agent (or a
random token for whole-directory backups) so concurrent runs against one
host do not collide. The remote temp archive is removed after the
transfer whether or not it succeeded.
"""

import logging
import posixpath
import uuid
from pathlib import Path

from reef_mcp.models import ActionResult, ConnectionParameters, TransferResult
from reef_mcp.services.errors import RemoteConnectionError, RemoteFileError
from reef_mcp.services.executors import pull_file, push_file, run_command
from reef_mcp.services.runtime import AGENTS_DIR, STATE_DIR, run_doctor
from reef_mcp.utils.shell import quote_arg, quote_path
from reef_mcp.utils.validation import validate_confined_path, validate_identifier

logger = logging.getLogger(__name__)


async def discard_remote(params: ConnectionParameters, path: str) -> None:
    """Best-effort removal of a remote temp file; failures are only logged."""
    try:
        result = await run_command(params, f"rm -f {quote_arg(path)}")
    except RemoteConnectionError as e:
        logger.warning("Could not remove %s on %s: %s", path, params.host, e)
        return
    if not result.ok:
        logger.warning("Could not remove %s on %s: %s", path, params.host, result.combined)


async def _pack_and_pull(
    params: ConnectionParameters,
    parent: str,
    name: str,
    remote_tmp: str,
    local_path: str | Path,
) -> TransferResult:
    pack = await run_command(
        params,
        f"tar -czf {quote_arg(remote_tmp)} -C {quote_path(parent)} {quote_arg(name)}",
    )
    try:
        if not pack.ok:
            raise RemoteFileError(f"Failed to archive {parent}/{name}: {pack.combined}")
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        return await pull_file(params, remote_tmp, local_path)
    finally:
        await discard_remote(params, remote_tmp)


async def backup_directory(
    params: ConnectionParameters,
    local_path: str | Path,
    remote_dir: str = STATE_DIR,
) -> TransferResult:
    """Archive a confined remote directory and download it.

    Args:
        params: Connection parameters for the target host
        local_path: Where to write the ``.tar.gz`` locally
        remote_dir: Directory to archive (default: the whole runtime state)

    Raises:
        PolicyError: If ``remote_dir`` is outside the confinement root
        RemoteFileError: If the remote archive cannot be created
        TransferError: If the download fails
    """
    remote_dir = validate_confined_path(remote_dir)
    remote_tmp = f"/tmp/reef-backup-{uuid.uuid4().hex}.tar.gz"
    result = await _pack_and_pull(
        params,
        posixpath.dirname(remote_dir),
        posixpath.basename(remote_dir),
        remote_tmp,
        local_path,
    )
    logger.info("Backed up %s on %s to %s", remote_dir, params.host, local_path)
    return result


async def backup_agent(
    params: ConnectionParameters,
    agent_id: str,
    local_path: str | Path,
) -> TransferResult:
    """Archive one agent's directory and download it."""
    validate_identifier(agent_id, "agent ID")
    remote_tmp = f"/tmp/reef-agent-backup-{agent_id}.tar.gz"
    result = await _pack_and_pull(params, AGENTS_DIR, agent_id, remote_tmp, local_path)
    logger.info("Backed up agent %s on %s to %s", agent_id, params.host, local_path)
    return result


async def deploy_agent(
    params: ConnectionParameters,
    agent_id: str,
    local_archive: str | Path,
) -> ActionResult:
    """Upload an agent archive, unpack it into the agents directory and run doctor.

    The archive must contain the agent's directory at its top level, as
    produced by :func:`backup_agent`.
    """
    validate_identifier(agent_id, "agent ID")
    remote_tmp = f"/tmp/reef-deploy-{agent_id}.tar.gz"

    agents_dir = quote_path(AGENTS_DIR)
    try:
        await push_file(params, local_archive, remote_tmp)
        unpack = await run_command(
            params,
            f"mkdir -p {agents_dir} && tar -xzf {quote_arg(remote_tmp)} -C {agents_dir}",
        )
    finally:
        await discard_remote(params, remote_tmp)
    if not unpack.ok:
        return ActionResult(success=False, output=unpack.combined)

    doctor = await run_doctor(params)
    logger.info("Deployed agent %s to %s", agent_id, params.host)
    return ActionResult(
        success=True,
        output=f"Deployed {agent_id} to {AGENTS_DIR}/{agent_id}\n\n{doctor.output}".strip(),
    )
