"""Orchestrator outcome models."""

from dataclasses import dataclass
from enum import Enum


class RestartMethod(str, Enum):
    """Restart tiers in priority order."""

    GATEWAY = "gateway"
    SERVICE_MANAGER = "service-manager"
    FORCED_KILL = "forced-kill"


@dataclass(frozen=True)
class RestartOutcome:
    """Result of one restart attempt."""

    success: bool
    method: RestartMethod
    output: str


MIGRATION_METHOD = "tar-transfer"


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of one agent migration."""

    success: bool
    method: str = MIGRATION_METHOD
    error: str | None = None
