"""Data models for Reef MCP."""

from reef_mcp.models.command import CommandResult, TransferResult
from reef_mcp.models.fleet import (
    AgentRow,
    FleetOverview,
    FleetResult,
    FleetTarget,
    InstanceInfo,
    Settled,
)
from reef_mcp.models.outcomes import (
    MIGRATION_METHOD,
    MigrationOutcome,
    RestartMethod,
    RestartOutcome,
)
from reef_mcp.models.runtime import (
    ActionResult,
    AgentHealth,
    AgentInfo,
    Binding,
    ChatReply,
    CommandReport,
    FileEntry,
    HealthReport,
    InstanceDiagnostics,
)
from reef_mcp.models.ssh import ConnectionParameters, SSHHost

__all__ = [
    "ActionResult",
    "AgentHealth",
    "AgentInfo",
    "AgentRow",
    "Binding",
    "ChatReply",
    "CommandReport",
    "CommandResult",
    "ConnectionParameters",
    "FileEntry",
    "FleetOverview",
    "FleetResult",
    "FleetTarget",
    "HealthReport",
    "InstanceDiagnostics",
    "InstanceInfo",
    "MIGRATION_METHOD",
    "MigrationOutcome",
    "RestartMethod",
    "RestartOutcome",
    "SSHHost",
    "Settled",
    "TransferResult",
]
