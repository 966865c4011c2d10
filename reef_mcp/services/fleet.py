"""Fleet-wide fan-out over hosts and agents.

Every sweep is built on :func:`settle_all`: each unit is awaited
concurrently and its value or error is recorded under its own key, so one
failing host (or agent) never hides the results of the others.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from reef_mcp.models import (
    AgentHealth,
    AgentInfo,
    AgentRow,
    Binding,
    ConnectionParameters,
    FleetOverview,
    FleetResult,
    FleetTarget,
    InstanceInfo,
    Settled,
    TransferResult,
)
from reef_mcp.services.archive import backup_directory
from reef_mcp.services.runtime import (
    get_agent_health,
    get_bindings,
    get_health,
    has_api_key,
    instance_diagnostics,
    list_agent_ids,
    list_agents,
    list_channels,
    run_hygiene_check,
)

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

HostOperation = Callable[[ConnectionParameters], Awaitable[Any]]
AgentOperation = Callable[[ConnectionParameters, str], Awaitable[Any]]
Discovery = Callable[[ConnectionParameters], Awaitable[list[str]]]


def describe_error(error: BaseException) -> str:
    """Error text for a failed unit, never empty."""
    return str(error) or type(error).__name__


async def settle_all(units: Mapping[K, Awaitable[T]]) -> dict[K, Settled[T]]:
    """Await every unit concurrently and record each outcome under its key.

    Unlike a plain ``asyncio.gather``, a raising unit does not abort the
    join: it settles as ``Settled(error=...)`` and the others keep running.
    """

    async def settle(unit: Awaitable[T]) -> Settled[T]:
        try:
            return Settled(value=await unit)
        except Exception as e:
            return Settled(error=e)

    keys = list(units)
    outcomes = await asyncio.gather(*(settle(units[key]) for key in keys))
    return dict(zip(keys, outcomes))


async def fan_out(
    targets: list[FleetTarget],
    operation: HostOperation,
) -> list[FleetResult]:
    """Run one operation against every host.

    Returns:
        One FleetResult per target, in target order
    """
    settled = await settle_all({i: operation(t.params) for i, t in enumerate(targets)})

    results = []
    for i, target in enumerate(targets):
        outcome = settled[i]
        if outcome.ok:
            results.append(FleetResult(host=target.name, success=True, value=outcome.value))
        else:
            logger.warning("Fleet operation failed on %s: %s", target.name, outcome.error)
            results.append(
                FleetResult(
                    host=target.name,
                    success=False,
                    error=describe_error(outcome.error),
                )
            )
    return results


async def _visit_agents(
    target: FleetTarget,
    operation: AgentOperation,
    discover: Discovery,
) -> list[FleetResult]:
    try:
        agent_ids = target.agents
        if agent_ids is None:
            agent_ids = await discover(target.params)
    except Exception as e:
        logger.warning("Agent discovery failed on %s: %s", target.name, e)
        return [FleetResult(host=target.name, success=False, error=describe_error(e))]

    # one unit per agent, in first-seen order
    agent_ids = list(dict.fromkeys(agent_ids))

    settled = await settle_all(
        {agent_id: operation(target.params, agent_id) for agent_id in agent_ids}
    )

    results = []
    for agent_id in agent_ids:
        outcome = settled[agent_id]
        results.append(
            FleetResult(
                host=target.name,
                agent_id=agent_id,
                success=outcome.ok,
                value=outcome.value,
                error=None if outcome.ok else describe_error(outcome.error),
            )
        )
    return results


async def fan_out_agents(
    targets: list[FleetTarget],
    operation: AgentOperation,
    discover: Discovery = list_agent_ids,
) -> list[FleetResult]:
    """Run one operation against every agent on every host.

    Agents come from ``target.agents`` or, when that is ``None``, from
    ``discover``. A host whose discovery fails contributes a single error
    result with ``agent_id=None``.

    Returns:
        One FleetResult per (host, agent) pair, grouped by target order
    """
    per_host = await asyncio.gather(
        *(_visit_agents(target, operation, discover) for target in targets)
    )
    return [result for host_results in per_host for result in host_results]


async def fleet_health(targets: list[FleetTarget]) -> list[FleetResult]:
    """Health report from every host."""
    return await fan_out(targets, get_health)


async def fleet_hygiene(targets: list[FleetTarget]) -> list[FleetResult]:
    """Hygiene check output from every host."""
    return await fan_out(targets, run_hygiene_check)


async def fleet_agent_health(targets: list[FleetTarget]) -> list[FleetResult]:
    """Health of every agent on every host."""
    return await fan_out_agents(targets, get_agent_health)


async def fleet_backup(targets: list[FleetTarget], backup_dir: str | Path) -> list[FleetResult]:
    """Back up the runtime state of every host.

    Archives land at ``<backup_dir>/<host>/<UTC timestamp>.tar.gz``.
    """
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    def destination(target: FleetTarget) -> Path:
        return Path(backup_dir) / target.name / f"{stamp}.tar.gz"

    settled: dict[int, Settled[TransferResult]] = await settle_all(
        {i: backup_directory(t.params, destination(t)) for i, t in enumerate(targets)}
    )
    return [
        FleetResult(
            host=target.name,
            success=settled[i].ok,
            value=settled[i].value,
            error=None if settled[i].ok else describe_error(settled[i].error),
        )
        for i, target in enumerate(targets)
    ]


def map_agent_channels(
    agents: list[AgentInfo],
    channels: dict[str, list[str]],
    bindings: list[Binding],
) -> dict[str, list[str]]:
    """Channel labels per agent.

    Bound channels go to their agent. Channel accounts with no binding are
    served by the default agent (or the first agent if none is marked).
    """
    mapped: dict[str, list[str]] = {}
    for binding in bindings:
        mapped.setdefault(binding.agent_id, []).append(binding.label)

    if not agents:
        return mapped

    bound = {f"{b.channel}:{b.account_id or ''}" for b in bindings}
    fallback = next((agent for agent in agents if agent.is_default), agents[0])
    for kind, accounts in channels.items():
        for account in accounts:
            label = f"{kind}:{account}"
            if label in bound:
                continue
            labels = mapped.setdefault(fallback.id, [])
            if label not in labels:
                labels.append(label)
    return mapped


def _agent_row(
    instance: str,
    agent: AgentInfo,
    channels: list[str],
    health: Settled[AgentHealth],
    api_key: Settled[bool],
    active_watches: list[str],
) -> AgentRow:
    gmail = next((label for label in channels if label.startswith("gmail:")), None)
    gmail_account = gmail.split(":", 1)[1] if gmail else ""
    return AgentRow(
        instance=instance,
        agent_id=agent.id,
        agent_name=agent.identity_name or agent.id,
        agent_emoji=agent.identity_emoji,
        channels=channels,
        workspace_size=health.value.dir_size if health.ok and health.value else "?",
        has_api_key=bool(api_key.value) if api_key.ok else False,
        has_gmail_binding=gmail is not None,
        gmail_watch_active=bool(gmail_account) and gmail_account in active_watches,
        has_telegram_binding=any(label.startswith("telegram:") for label in channels),
    )


async def _overview_instance(target: FleetTarget) -> tuple[list[AgentRow], InstanceInfo]:
    params = target.params
    agents, channels, bindings, diagnostics = await asyncio.gather(
        list_agents(params),
        list_channels(params),
        get_bindings(params),
        instance_diagnostics(params),
    )

    health, api_keys = await asyncio.gather(
        settle_all({agent.id: get_agent_health(params, agent.id) for agent in agents}),
        settle_all({agent.id: has_api_key(params, agent.id) for agent in agents}),
    )

    agent_channels = map_agent_channels(agents, channels, bindings)
    rows = [
        _agent_row(
            target.name,
            agent,
            agent_channels.get(agent.id, []),
            health[agent.id],
            api_keys[agent.id],
            diagnostics.active_gmail_watches,
        )
        for agent in agents
    ]
    return rows, InstanceInfo(instance=target.name, diagnostics=diagnostics)


async def fleet_overview(targets: list[FleetTarget]) -> FleetOverview:
    """Agents, channels and integration diagnostics across the fleet.

    Hosts that fail are left out of ``agents``/``instances`` and listed in
    ``errors`` with their error text.
    """
    settled = await settle_all({i: _overview_instance(t) for i, t in enumerate(targets)})

    overview = FleetOverview()
    for i, target in enumerate(targets):
        outcome = settled[i]
        if not outcome.ok:
            logger.warning("Fleet overview failed on %s: %s", target.name, outcome.error)
            overview.errors[target.name] = describe_error(outcome.error)
            continue
        rows, info = outcome.value
        overview.agents.extend(rows)
        overview.instances.append(info)
    return overview
