"""Fleet fan-out data models."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from reef_mcp.models.runtime import InstanceDiagnostics
from reef_mcp.models.ssh import ConnectionParameters

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one unit in an all-settled join."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        """Whether the unit completed without raising."""
        return self.error is None


@dataclass
class FleetTarget:
    """A host to visit, with optional agents to visit on it.

    ``agents`` of ``None`` means discover them on the host.
    """

    name: str
    params: ConnectionParameters
    agents: list[str] | None = None


@dataclass
class FleetResult:
    """Result from a single host (or host/agent pair) in a fan-out."""

    host: str
    success: bool
    value: Any = None
    error: str | None = None
    agent_id: str | None = None


@dataclass
class AgentRow:
    """One agent row of the fleet overview."""

    instance: str
    agent_id: str
    agent_name: str
    agent_emoji: str = ""
    channels: list[str] = field(default_factory=list)
    workspace_size: str = "?"
    has_api_key: bool = False
    has_gmail_binding: bool = False
    gmail_watch_active: bool = False
    has_telegram_binding: bool = False


@dataclass
class InstanceInfo:
    """One host row of the fleet overview."""

    instance: str
    diagnostics: InstanceDiagnostics


@dataclass
class FleetOverview:
    """Fleet-wide overview; ``errors`` maps failed hosts to their error."""

    agents: list[AgentRow] = field(default_factory=list)
    instances: list[InstanceInfo] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
