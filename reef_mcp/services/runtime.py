"""Agent runtime diagnostics and management over SSH.

Thin wrappers around the ``openclaw`` CLI. Every caller-supplied identifier
is validated before it reaches a command line; free-form payloads (chat
messages, tokens, JSON) travel base64-encoded.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from reef_mcp.models import (
    ActionResult,
    AgentHealth,
    AgentInfo,
    Binding,
    ChatReply,
    CommandReport,
    ConnectionParameters,
    HealthReport,
    InstanceDiagnostics,
)
from reef_mcp.services.executors import run_command
from reef_mcp.services.streaming import StreamSession, stream_command
from reef_mcp.utils.shell import decoded_arg, quote_arg, quote_path
from reef_mcp.utils.validation import validate_identifier

logger = logging.getLogger(__name__)

RUNTIME_BIN = "openclaw"
GATEWAY_SERVICE = "openclaw-gateway"
STATE_DIR = "~/.openclaw"
AGENTS_DIR = f"{STATE_DIR}/agents"
DEFAULT_AGENT = "main"

_RUNTIME_STATE = re.compile(r"Runtime:\s*(\S+)")
_FUNNEL_HOST = re.compile(r"https://([^\s/]+)")


def agent_path(agent_id: str, *parts: str) -> str:
    """Shell-quoted path of an agent's directory (or something inside it)."""
    validate_identifier(agent_id, "agent ID")
    return quote_path("/".join([AGENTS_DIR, agent_id, *parts]))


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        return None


async def get_health(params: ConnectionParameters) -> HealthReport:
    """Probe gateway status, disk, memory, uptime and runtime health concurrently."""
    gateway, disk, memory, uptime, runtime = await asyncio.gather(
        run_command(params, f"{RUNTIME_BIN} gateway status 2>&1"),
        run_command(params, "df -h /"),
        run_command(params, "free -h"),
        run_command(params, "uptime -p"),
        run_command(params, f"{RUNTIME_BIN} health 2>&1"),
    )

    state = _RUNTIME_STATE.search(gateway.stdout)
    sections = [
        ("Gateway", gateway),
        ("Disk", disk),
        ("Memory", memory),
        ("Uptime", uptime),
        ("Runtime Health", runtime),
    ]
    output = "\n\n".join(f"=== {title} ===\n{result.stdout.strip()}" for title, result in sections)

    return HealthReport(
        process_running=bool(state and state.group(1) == "running"),
        disk=disk.stdout.strip(),
        memory=memory.stdout.strip(),
        uptime=uptime.stdout.strip(),
        output=output,
    )


def _agent_from_json(item: dict[str, Any]) -> AgentInfo:
    agent_id = str(item.get("id", ""))
    return AgentInfo(
        id=agent_id,
        identity_name=item.get("identityName") or item.get("name") or agent_id,
        identity_emoji=item.get("identityEmoji") or "",
        workspace=item.get("workspace") or "",
        agent_dir=item.get("agentDir") or "",
        model=item.get("model") or "",
        is_default=bool(item.get("isDefault", False)),
    )


async def list_agents(params: ConnectionParameters) -> list[AgentInfo]:
    """List agents via the runtime CLI, falling back to the agents directory."""
    result = await run_command(params, f"{RUNTIME_BIN} agents list --json 2>/dev/null")
    parsed = _parse_json(result.stdout) if result.stdout.strip().startswith("[") else None
    if isinstance(parsed, list):
        return [_agent_from_json(item) for item in parsed if isinstance(item, dict)]

    logger.debug("Agent list on %s fell back to directory listing", params.host)
    fallback = await run_command(params, f"ls -1 {quote_path(AGENTS_DIR)} 2>/dev/null || true")
    return [
        AgentInfo(id=name, identity_name=name, agent_dir=f"{AGENTS_DIR}/{name}")
        for name in fallback.stdout.strip().splitlines()
        if name
    ]


async def list_agent_ids(params: ConnectionParameters) -> list[str]:
    """Agent identifiers on a host."""
    return [agent.id for agent in await list_agents(params)]


async def get_agent_health(params: ConnectionParameters, agent_id: str) -> AgentHealth:
    """Probe one agent's directory, size, last activity and process concurrently."""
    directory = agent_path(agent_id)
    exists, size, activity, process = await asyncio.gather(
        run_command(params, f"test -d {directory} && echo exists || echo missing"),
        run_command(params, f"du -sh {directory} 2>/dev/null | cut -f1"),
        run_command(
            params,
            f"find {directory} -type f -printf '%T@\\n' 2>/dev/null | sort -n | tail -1",
        ),
        run_command(params, f"pgrep -f {quote_arg(agent_id)} > /dev/null 2>&1"),
    )

    try:
        last_epoch = float(activity.stdout.strip() or 0)
    except ValueError:
        last_epoch = 0.0
    last_activity = (
        datetime.fromtimestamp(last_epoch, tz=timezone.utc).isoformat()
        if last_epoch > 0
        else "never"
    )

    return AgentHealth(
        exists=exists.stdout.strip() == "exists",
        dir_size=size.stdout.strip() or "0",
        last_activity=last_activity,
        # pgrep exits 0 when a process matches
        process_running=process.exit_code == 0,
    )


async def has_api_key(params: ConnectionParameters, agent_id: str) -> bool:
    """Whether an agent has at least one auth profile configured."""
    result = await run_command(
        params,
        f"cat {agent_path(agent_id, 'agent', 'auth-profiles.json')} 2>/dev/null || echo MISSING",
    )
    parsed = _parse_json(result.stdout)
    if not isinstance(parsed, dict):
        return False
    profiles = parsed.get("profiles")
    return isinstance(profiles, dict) and len(profiles) > 0


async def get_status(params: ConnectionParameters) -> CommandReport:
    """Run the runtime's comprehensive status report."""
    result = await run_command(params, f"{RUNTIME_BIN} status --all --deep 2>&1")
    return CommandReport(output=result.stdout + result.stderr, exit_code=result.exit_code)


async def run_doctor(params: ConnectionParameters, fix: bool = False) -> CommandReport:
    """Run the runtime's doctor; read-only unless ``fix`` is set."""
    flags = "--fix --non-interactive" if fix else "--non-interactive"
    result = await run_command(params, f"{RUNTIME_BIN} doctor {flags} 2>&1")
    return CommandReport(output=result.stdout + result.stderr, exit_code=result.exit_code)


async def run_hygiene_check(params: ConnectionParameters) -> str:
    """Run the runtime's hygiene/security check."""
    result = await run_command(
        params,
        f"{RUNTIME_BIN} check 2>&1 || echo '[reef] {RUNTIME_BIN} check failed or is unavailable'",
    )
    return result.stdout + result.stderr


def _chat_command(agent_id: str, message: str, as_json: bool) -> str:
    validate_identifier(agent_id, "agent ID")
    suffix = " --json 2>&1" if as_json else " 2>/dev/null"
    return f"{RUNTIME_BIN} agent --agent {agent_id} -m {decoded_arg(message)}{suffix}"


async def send_chat_message(
    params: ConnectionParameters,
    agent_id: str,
    message: str,
) -> ChatReply:
    """Send one message to an agent and wait for the full reply."""
    result = await run_command(params, _chat_command(agent_id, message, as_json=True))
    output = result.stdout.strip()

    parsed = _parse_json(output) if output.startswith("{") else None
    if isinstance(parsed, dict):
        return ChatReply(
            reply=parsed.get("reply") or parsed.get("content") or parsed.get("message") or "",
            agent_id=parsed.get("agentId") or agent_id,
            model=parsed.get("model") or "",
            session_id=parsed.get("sessionId") or "",
        )

    return ChatReply(reply=output or result.stderr or "(no response)", agent_id=agent_id)


def stream_chat_message(
    params: ConnectionParameters,
    agent_id: str,
    message: str,
) -> StreamSession:
    """Send one message to an agent and stream the reply as it is produced."""
    return stream_command(params, _chat_command(agent_id, message, as_json=False))


def stream_upgrade(params: ConnectionParameters) -> StreamSession:
    """Upgrade the runtime, restart its gateway and report the version, streamed."""
    command = " && ".join(
        [
            "echo '=== Upgrading ==='",
            f"npm update -g {RUNTIME_BIN} 2>&1",
            "echo ''",
            "echo '=== Restarting Gateway ==='",
            f"{RUNTIME_BIN} gateway restart 2>&1",
            "echo ''",
            "echo '=== Version ==='",
            f"{RUNTIME_BIN} --version 2>&1",
        ]
    )
    return stream_command(params, command)


async def create_agent(
    params: ConnectionParameters,
    name: str,
    model: str | None = None,
) -> ActionResult:
    """Create an agent and give it the default agent's auth profile.

    Raises:
        InvalidIdentifierError: If ``name`` or ``model`` is not allow-listed
    """
    validate_identifier(name, "agent name")
    command = (
        f"{RUNTIME_BIN} agents add {name} "
        f"--workspace {agent_path(name, 'workspace')} --non-interactive --json"
    )
    if model:
        # Provider-prefixed models ("provider/model") are allowed
        validate_identifier(model.replace("/", ""), "model")
        command += f" --model {quote_arg(model)}"

    result = await run_command(params, command + " 2>&1")
    if not result.ok:
        return ActionResult(success=False, output=result.combined)

    # The runtime lowercases agent directories
    auth_dir = agent_path(name.lower(), "agent")
    source = agent_path(DEFAULT_AGENT, "agent", "auth-profiles.json")
    await run_command(params, f"mkdir -p {auth_dir}")
    await run_command(params, f"cp {source} {auth_dir}/auth-profiles.json 2>/dev/null || true")

    logger.info("Created agent %s on %s", name, params.host)
    return ActionResult(success=True, output=result.combined)


async def delete_agent(params: ConnectionParameters, agent_id: str) -> ActionResult:
    """Delete an agent via the runtime CLI."""
    validate_identifier(agent_id, "agent ID")
    result = await run_command(params, f"{RUNTIME_BIN} agents delete {agent_id} --force --json 2>&1")
    return ActionResult(success=result.ok, output=result.combined)


async def list_channels(params: ConnectionParameters) -> dict[str, list[str]]:
    """Configured chat channels, keyed by channel type, listing account ids."""
    result = await run_command(params, f"{RUNTIME_BIN} channels list --json --no-usage 2>/dev/null")
    parsed = _parse_json(result.stdout)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("chat"), dict):
        return {}
    return {
        str(kind): [str(account) for account in accounts]
        for kind, accounts in parsed["chat"].items()
        if isinstance(accounts, list)
    }


async def add_channel(
    params: ConnectionParameters,
    channel: str,
    token: str,
    account_id: str | None = None,
) -> ActionResult:
    """Add a chat channel; the token is never placed on the command line as text."""
    validate_identifier(channel, "channel type")
    if account_id:
        validate_identifier(account_id, "account ID")

    command = f"{RUNTIME_BIN} channels add --channel {channel} --token {decoded_arg(token)}"
    if account_id:
        command += f" --account {account_id}"
    result = await run_command(params, command + " 2>&1")
    return ActionResult(success=result.ok, output=result.combined)


async def _raw_bindings(params: ConnectionParameters) -> list[dict[str, Any]]:
    result = await run_command(
        params, f"{RUNTIME_BIN} config get bindings --json 2>/dev/null || echo '[]'"
    )
    parsed = _parse_json(result.stdout)
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, dict)]


async def get_bindings(params: ConnectionParameters) -> list[Binding]:
    """Channel-to-agent routing rules from the runtime config."""
    bindings = []
    for item in await _raw_bindings(params):
        match = item.get("match") or {}
        if not isinstance(match, dict) or not match.get("channel") or not item.get("agentId"):
            continue
        bindings.append(
            Binding(
                agent_id=str(item["agentId"]),
                channel=str(match["channel"]),
                account_id=match.get("accountId") or None,
            )
        )
    return bindings


async def bind_channel(
    params: ConnectionParameters,
    agent_id: str,
    channel: str,
    account_id: str | None = None,
) -> ActionResult:
    """Route a channel (or one of its accounts) to an agent.

    Any existing binding with the same match is replaced.
    """
    validate_identifier(agent_id, "agent ID")
    validate_identifier(channel, "channel")
    if account_id:
        validate_identifier(account_id, "account ID")

    binding = Binding(agent_id=agent_id, channel=channel, account_id=account_id)

    def same_match(item: dict[str, Any]) -> bool:
        match = item.get("match") or {}
        return match.get("channel") == channel and (match.get("accountId") or None) == account_id

    bindings = [item for item in await _raw_bindings(params) if not same_match(item)]
    bindings.append(binding.to_config())

    payload = json.dumps(bindings)
    result = await run_command(
        params, f"{RUNTIME_BIN} config set bindings {decoded_arg(payload)} --json 2>&1"
    )
    if not result.ok:
        return ActionResult(success=False, output=result.combined)

    logger.info("Bound %s to agent %s on %s", binding.label, agent_id, params.host)
    return ActionResult(success=True, output=f"Bound {binding.label} -> {agent_id}")


async def approve_pairing(params: ConnectionParameters, channel: str, code: str) -> ActionResult:
    """Approve a pairing code to authorize a user on a channel."""
    validate_identifier(channel, "channel")
    validate_identifier(code, "pairing code")
    result = await run_command(
        params, f"{RUNTIME_BIN} pairing approve --channel {channel} {code} --notify 2>&1"
    )
    return ActionResult(success=result.ok, output=result.combined)


async def list_pairing_requests(params: ConnectionParameters, channel: str) -> ActionResult:
    """Pending pairing requests for a channel, as the runtime's JSON output."""
    validate_identifier(channel, "channel")
    result = await run_command(params, f"{RUNTIME_BIN} pairing list --channel {channel} --json 2>&1")
    return ActionResult(success=result.ok, output=result.combined)


async def instance_diagnostics(params: ConnectionParameters) -> InstanceDiagnostics:
    """Probe the host's integrations (gog, pubsub, tailscale, gcp, gmail watches)."""
    gog, pubsub, funnel, project, watches, version = await asyncio.gather(
        run_command(params, "GOG_KEYRING_PASSWORD=openclaw gog auth list 2>/dev/null || true"),
        run_command(
            params,
            "gcloud pubsub subscriptions list "
            "--format='value(pushConfig.pushEndpoint)' 2>/dev/null || true",
        ),
        run_command(params, "tailscale funnel status 2>&1 | grep 'https://' | head -1 || true"),
        run_command(
            params,
            "cat ~/.config/gogcli/gcp-project 2>/dev/null "
            "|| gcloud config get-value project 2>/dev/null || echo none",
        ),
        run_command(
            params,
            f"journalctl --user -u {GATEWAY_SERVICE} --no-pager -n 200 2>/dev/null "
            "| grep 'gmail-watcher.*watch started for' | awk '{print $NF}' | sort -u || true",
        ),
        run_command(params, f"{RUNTIME_BIN} --version 2>/dev/null || echo unknown"),
    )

    funnel_host = _FUNNEL_HOST.search(funnel.stdout)
    return InstanceDiagnostics(
        runtime_version=version.stdout.strip() or "unknown",
        gog_accounts=[line.split("\t")[0] for line in gog.stdout.strip().splitlines() if line],
        pubsub_endpoint=pubsub.stdout.strip() or "none",
        tailscale_funnel=funnel_host.group(1) if funnel_host else "none",
        gcp_project=project.stdout.strip() or "none",
        active_gmail_watches=[line for line in watches.stdout.strip().splitlines() if line],
    )
