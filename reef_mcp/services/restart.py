"""Tiered restart of the agent runtime's gateway service.

Tiers, in priority order:

1. gateway: the runtime's own graceful restart, verified by a health probe
2. service-manager: ``systemctl --user restart``, verified by ``is-active``
3. forced-kill: SIGKILL every matching process, verified by its absence

Each tier has exactly two exits. If its issuing command fails, the machine
advances to the next tier. If the issuing command succeeds, the machine
stops and the verification result becomes ``success``, so an unhealthy
service after a clean restart is reported at that tier and never escalated.
A failed tier is never retried.

Forced-kill only clears a wedge. Its success means the process is gone,
not that the service is back; a higher tier must still be triggered.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from reef_mcp.models import CommandResult, ConnectionParameters, RestartMethod, RestartOutcome
from reef_mcp.services.errors import RemoteConnectionError
from reef_mcp.services.executors import run_command
from reef_mcp.services.runtime import GATEWAY_SERVICE, RUNTIME_BIN

logger = logging.getLogger(__name__)

SETTLE_INTERVAL = 3.0
KILL_WAIT = 1.0

Verifier = Callable[[ConnectionParameters], Awaitable[bool]]


async def _gateway_healthy(params: ConnectionParameters) -> bool:
    check = await run_command(params, f"{RUNTIME_BIN} health --json 2>/dev/null")
    return check.ok


async def _service_active(params: ConnectionParameters) -> bool:
    check = await run_command(
        params, f"systemctl --user is-active {GATEWAY_SERVICE} 2>/dev/null"
    )
    return check.stdout.strip() == "active"


async def _process_gone(params: ConnectionParameters) -> bool:
    # pgrep exits 1 when nothing matches
    check = await run_command(params, f"pgrep -f {GATEWAY_SERVICE} > /dev/null 2>&1")
    return check.exit_code == 1


def _gateway_output(issued: CommandResult, healthy: bool) -> str:
    return issued.stdout.strip() or f"restarted via {RUNTIME_BIN} gateway restart"


def _service_output(issued: CommandResult, healthy: bool) -> str:
    return issued.combined or "restarted via systemd"


def _kill_output(issued: CommandResult, gone: bool) -> str:
    if gone:
        return "Runtime process killed. The service must still be restarted."
    return "Could not kill the runtime process. Check the host manually."


@dataclass(frozen=True)
class _Tier:
    method: RestartMethod
    issue: str
    verify: Verifier
    describe: Callable[[CommandResult, bool], str]
    next: RestartMethod | None


_TIERS: dict[RestartMethod, _Tier] = {
    RestartMethod.GATEWAY: _Tier(
        method=RestartMethod.GATEWAY,
        issue=f"{RUNTIME_BIN} gateway restart 2>&1",
        verify=_gateway_healthy,
        describe=_gateway_output,
        next=RestartMethod.SERVICE_MANAGER,
    ),
    RestartMethod.SERVICE_MANAGER: _Tier(
        method=RestartMethod.SERVICE_MANAGER,
        issue=f"systemctl --user restart {GATEWAY_SERVICE} 2>&1",
        verify=_service_active,
        describe=_service_output,
        next=RestartMethod.FORCED_KILL,
    ),
    RestartMethod.FORCED_KILL: _Tier(
        method=RestartMethod.FORCED_KILL,
        issue=f"pkill -KILL -f {GATEWAY_SERVICE} 2>&1",
        verify=_process_gone,
        describe=_kill_output,
        next=None,
    ),
}


async def restart_runtime(
    params: ConnectionParameters,
    settle_interval: float = SETTLE_INTERVAL,
    kill_wait: float = KILL_WAIT,
) -> RestartOutcome:
    """Restart the runtime gateway, falling back tier by tier.

    Never raises for remote failures: connection errors end the machine at
    the current tier with ``success=False``.

    Args:
        params: Connection parameters for the target host
        settle_interval: Seconds to wait after a restart before verifying
        kill_wait: Seconds to wait after a forced kill before re-probing

    Returns:
        RestartOutcome attributed to the tier whose issuing step completed
    """
    state = RestartMethod.GATEWAY

    while True:
        tier = _TIERS[state]
        try:
            issued = await run_command(params, tier.issue)

            # pkill's exit code only reports whether anything matched
            if not issued.ok and tier.next is not None:
                logger.warning(
                    "Restart on %s: tier=%s issuing failed (exit %d), advancing to tier=%s",
                    params.host,
                    state.value,
                    issued.exit_code,
                    tier.next.value,
                )
                state = tier.next
                continue

            wait = kill_wait if tier.next is None else settle_interval
            await asyncio.sleep(wait)
            verified = await tier.verify(params)
        except RemoteConnectionError as e:
            logger.error("Restart on %s aborted at tier=%s: %s", params.host, state.value, e)
            return RestartOutcome(success=False, method=state, output=str(e))

        log = logger.info if verified else logger.warning
        log(
            "Restart on %s: tier=%s issued, verification %s",
            params.host,
            state.value,
            "succeeded" if verified else "failed",
        )
        return RestartOutcome(
            success=verified,
            method=state,
            output=tier.describe(issued, verified),
        )
