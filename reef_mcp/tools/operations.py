"""MCP tools for fleet operations.

Each tool resolves host aliases through the process-wide config, calls one
service, and renders the result as plain text. Unknown hosts, rejected
input and remote failures surface as ``ToolError``.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from fastmcp import Context
from fastmcp.exceptions import ToolError

from reef_mcp.models import ConnectionParameters, FleetResult, FleetTarget
from reef_mcp.services import (
    backup_agent,
    backup_directory,
    fleet_agent_health,
    fleet_backup,
    fleet_health,
    fleet_hygiene,
    get_config,
    list_directory,
    migrate_agent,
    read_remote_file,
    restart_runtime,
    run_command,
    write_remote_file,
)
from reef_mcp.services import fleet_overview as build_fleet_overview
from reef_mcp.services.errors import RemoteConnectionError, RemoteFileError, TransferError
from reef_mcp.services.runtime import (
    STATE_DIR,
    get_agent_health,
    get_health,
    list_agents,
    send_chat_message,
    stream_chat_message,
    stream_upgrade,
)
from reef_mcp.services.streaming import StreamSession

logger = logging.getLogger(__name__)

SweepKind = Literal["health", "hygiene", "backup", "agent-health"]


@contextmanager
def _tool_errors() -> Iterator[None]:
    """Re-raise expected service failures as ToolError."""
    try:
        yield
    except (ValueError, RemoteConnectionError, TransferError, RemoteFileError) as e:
        raise ToolError(str(e)) from e


def _resolve(host: str) -> ConnectionParameters:
    config = get_config()
    try:
        params = config.resolve(host)
    except OSError as e:
        raise ToolError(f"Cannot read identity file for {host}: {e}") from e
    if params is None:
        available = ", ".join(sorted(config.get_hosts())) or "(none)"
        raise ToolError(f"Unknown host: {host}. Available: {available}")
    return params


def _targets(hosts: list[str] | None) -> list[FleetTarget]:
    names = hosts if hosts else sorted(get_config().get_hosts())
    return [FleetTarget(name=name, params=_resolve(name)) for name in names]


def _format_fleet_results(results: list[FleetResult]) -> str:
    lines = []
    for r in results:
        label = f"{r.host}/{r.agent_id}" if r.agent_id else r.host
        lines.append(f"=== {label}" + ("" if r.success else " [FAILED]"))
        if r.success:
            value = r.value
            if hasattr(value, "__dataclass_fields__"):
                value = json.dumps(asdict(value), indent=2)
            lines.append(str(value).rstrip())
        else:
            lines.append(f"Error: {r.error}")
        lines.append("")

    succeeded = sum(1 for r in results if r.success)
    lines.append(f"--- {succeeded}/{len(results)} succeeded ---")
    return "\n".join(lines)


async def _forward(session: StreamSession, ctx: Context | None) -> tuple[str, int | None]:
    """Drain a stream, forwarding each chunk to the client log."""
    chunks = []
    async with session:
        async for chunk in session:
            chunks.append(chunk)
            if ctx is not None:
                await ctx.info(chunk)
    return "".join(chunks), await session.wait()


async def hosts() -> str:
    """List the fleet hosts available from the SSH config."""
    entries = get_config().get_hosts()
    if not entries:
        return "No hosts configured"
    lines = ["Available hosts:"]
    for name, host in sorted(entries.items()):
        lines.append(f"  {name} -> {host.user}@{host.hostname}:{host.port}")
    return "\n".join(lines)


async def run(host: str, command: str) -> str:
    """Run a shell command on a host.

    Args:
        host: Host alias from the SSH config
        command: Shell command line

    Returns:
        Combined output followed by the exit code
    """
    params = _resolve(host)
    with _tool_errors():
        result = await run_command(params, command)
    output = result.stdout
    if result.stderr:
        output += f"\n[stderr]\n{result.stderr}"
    return f"{output.rstrip()}\n[exit code: {result.exit_code}]"


async def health(host: str, agent_id: str | None = None) -> str:
    """Health of a host's runtime, or of one agent when ``agent_id`` is given."""
    params = _resolve(host)
    with _tool_errors():
        if agent_id:
            report = await get_agent_health(params, agent_id)
            return json.dumps(asdict(report), indent=2)
        host_report = await get_health(params)
    status = "running" if host_report.process_running else "NOT running"
    return f"Gateway {status}\n\n{host_report.output}"


async def agents(host: str) -> str:
    """List agents on a host."""
    params = _resolve(host)
    with _tool_errors():
        found = await list_agents(params)
    return json.dumps([asdict(agent) for agent in found], indent=2)


async def read_file(host: str, path: str) -> str:
    """Read a file under ~/.openclaw on a host."""
    params = _resolve(host)
    with _tool_errors():
        return await read_remote_file(params, path, max_size=get_config().max_file_size)


async def write_file(host: str, path: str, content: str) -> str:
    """Write a file under ~/.openclaw on a host, replacing its content."""
    params = _resolve(host)
    with _tool_errors():
        written = await write_remote_file(
            params, path, content, max_size=get_config().max_file_size
        )
    return f"Wrote {written} bytes to {host}:{path}"


async def list_dir(host: str, path: str = STATE_DIR) -> str:
    """List a directory under ~/.openclaw on a host (directories end in '/')."""
    params = _resolve(host)
    with _tool_errors():
        entries = await list_directory(params, path)
    if not entries:
        return f"{path} is empty or missing"
    return "\n".join(e.name + ("/" if e.type == "directory" else "") for e in entries)


async def restart(host: str) -> str:
    """Restart the runtime gateway, escalating through restart methods."""
    params = _resolve(host)
    config = get_config()
    outcome = await restart_runtime(
        params,
        settle_interval=config.restart_settle_seconds,
        kill_wait=config.kill_wait_seconds,
    )
    status = "succeeded" if outcome.success else "FAILED"
    return f"Restart {status} via {outcome.method.value}\n{outcome.output}"


async def migrate(
    source: str,
    destination: str,
    agent_id: str,
    delete_source: bool = False,
) -> str:
    """Move an agent from one host to another.

    Args:
        source: Host currently holding the agent
        destination: Host to move it to
        agent_id: Agent identifier
        delete_source: Remove the agent from the source once transferred
    """
    src = _resolve(source)
    dst = _resolve(destination)
    with _tool_errors():
        outcome = await migrate_agent(
            src,
            dst,
            agent_id,
            delete_source=delete_source,
            staging_dir=get_config().staging_dir,
        )
    if outcome.success:
        return f"Migrated {agent_id} from {source} to {destination} ({outcome.method})"
    raise ToolError(f"Migration of {agent_id} failed: {outcome.error}")


async def backup(host: str, agent_id: str | None = None) -> str:
    """Download a backup of a host's runtime state, or of one agent."""
    params = _resolve(host)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    base = Path(get_config().backup_dir) / host
    with _tool_errors():
        if agent_id:
            result = await backup_agent(params, agent_id, base / f"{agent_id}-{stamp}.tar.gz")
        else:
            result = await backup_directory(params, base / f"{stamp}.tar.gz")
    return f"Saved {result.destination} ({result.bytes_transferred} bytes)"


async def upgrade(host: str, ctx: Context | None = None) -> str:
    """Upgrade the runtime on a host, streaming progress to the client log."""
    params = _resolve(host)
    with _tool_errors():
        output, exit_code = await _forward(stream_upgrade(params), ctx)
    if exit_code != 0:
        raise ToolError(f"Upgrade on {host} failed (exit {exit_code}):\n{output}")
    return output


async def chat(
    host: str,
    agent_id: str,
    message: str,
    stream: bool = False,
    ctx: Context | None = None,
) -> str:
    """Send a message to an agent and return its reply.

    With ``stream`` set, reply chunks are forwarded to the client log as
    they are produced.
    """
    params = _resolve(host)
    with _tool_errors():
        if stream:
            reply, _ = await _forward(stream_chat_message(params, agent_id, message), ctx)
            return reply
        result = await send_chat_message(params, agent_id, message)
    return result.reply


async def fleet_sweep(kind: SweepKind = "health", hosts: list[str] | None = None) -> str:
    """Run one check across the fleet, reporting every host.

    Args:
        kind: health, hygiene, backup or agent-health
        hosts: Host aliases to visit (default: every configured host)
    """
    targets = _targets(hosts)
    if kind == "health":
        results = await fleet_health(targets)
    elif kind == "hygiene":
        results = await fleet_hygiene(targets)
    elif kind == "backup":
        results = await fleet_backup(targets, get_config().backup_dir)
    elif kind == "agent-health":
        results = await fleet_agent_health(targets)
    else:
        raise ToolError(f"Unknown sweep: {kind}")
    return _format_fleet_results(results)


async def fleet_overview(hosts: list[str] | None = None) -> str:
    """Agents, channel bindings and integrations across the fleet, as JSON."""
    overview = await build_fleet_overview(_targets(hosts))
    return json.dumps(asdict(overview), indent=2)
