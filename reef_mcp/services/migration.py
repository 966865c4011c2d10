"""Agent migration between hosts via a locally staged tarball.

Steps run strictly in order and the first failure short-circuits the rest:

1. archive the agent directory on the source
2. pull the archive into a local staging file
3. ensure the agents directory exists on the destination
4. push the staged archive to the destination
5. extract it on the destination and remove the remote copy
6. remove the local staging file (always runs, failures only logged)
7. remove the source's temp archive
8. optionally delete the agent's live directory on the source

There is no rollback. A failure after step 4 can leave the agent present
on both hosts; a failure before step 8 never touches the source's live
directory.
"""

import logging
import tempfile
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from reef_mcp.models import ConnectionParameters, MigrationOutcome
from reef_mcp.services.errors import MigrationStepError, RemoteConnectionError, TransferError
from reef_mcp.services.executors import pull_file, push_file, run_command
from reef_mcp.services.runtime import AGENTS_DIR, agent_path
from reef_mcp.utils.shell import quote_arg, quote_path
from reef_mcp.utils.validation import validate_identifier

logger = logging.getLogger(__name__)

STEPS = 8


@asynccontextmanager
async def staging_file(staging_dir: str | Path, agent_id: str) -> AsyncIterator[Path]:
    """Scope a local staging path; the file is removed on exit, success or not.

    Removal failures are logged and never raised, so they cannot mask the
    outcome of the work done inside the scope.
    """
    path = Path(staging_dir) / f"reef-migrate-{agent_id}-{int(time.time() * 1000)}.tar.gz"
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove staging file %s: %s", path, e)


async def _step(
    params: ConnectionParameters,
    number: int,
    name: str,
    command: str,
) -> None:
    logger.info("Migration step %d/%d on %s: %s", number, STEPS, params.host, name)
    result = await run_command(params, command)
    if not result.ok:
        raise MigrationStepError(name, result.combined or f"exit {result.exit_code}")


async def migrate_agent(
    source: ConnectionParameters,
    destination: ConnectionParameters,
    agent_id: str,
    delete_source: bool = False,
    staging_dir: str | Path | None = None,
) -> MigrationOutcome:
    """Move an agent's directory from ``source`` to ``destination``.

    Args:
        source: Host currently holding the agent
        destination: Host to move the agent to
        agent_id: Agent identifier (allow-listed)
        delete_source: Remove the agent from the source after a full transfer
        staging_dir: Local directory for the staging archive
            (default: the system temp directory)

    Returns:
        MigrationOutcome; remote and transfer failures are reported in
        ``error``, never raised.

    Raises:
        InvalidIdentifierError: If ``agent_id`` is not allow-listed. No
            remote call is made in that case.
    """
    validate_identifier(agent_id, "agent ID")
    if staging_dir is None:
        staging_dir = tempfile.gettempdir()

    remote_tmp = f"/tmp/reef-migrate-{agent_id}.tar.gz"
    agents_dir = quote_path(AGENTS_DIR)

    try:
        async with staging_file(staging_dir, agent_id) as local:
            await _step(
                source,
                1,
                "archive on source",
                f"tar -czf {quote_arg(remote_tmp)} -C {agents_dir} {agent_id}",
            )

            logger.info("Migration step 2/%d: pull from %s to %s", STEPS, source.host, local)
            await pull_file(source, remote_tmp, local)

            await _step(destination, 3, "prepare destination", f"mkdir -p {agents_dir}")

            logger.info("Migration step 4/%d: push to %s", STEPS, destination.host)
            await push_file(destination, local, remote_tmp)

            await _step(
                destination,
                5,
                "extract on destination",
                f"tar -xzf {quote_arg(remote_tmp)} -C {agents_dir} && rm -f {quote_arg(remote_tmp)}",
            )

        await _step(source, 7, "clean up source archive", f"rm -f {quote_arg(remote_tmp)}")

        if delete_source:
            await _step(source, 8, "delete source agent", f"rm -rf {agent_path(agent_id)}")
    except (MigrationStepError, RemoteConnectionError, TransferError) as e:
        logger.error(
            "Migration of %s from %s to %s failed: %s",
            agent_id,
            source.host,
            destination.host,
            e,
        )
        return MigrationOutcome(success=False, error=str(e))

    logger.info("Migrated agent %s from %s to %s", agent_id, source.host, destination.host)
    return MigrationOutcome(success=True)
