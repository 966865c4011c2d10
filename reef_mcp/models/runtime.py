"""Agent runtime diagnostic models."""

from dataclasses import dataclass, field
from typing import Literal


@dataclass
class HealthReport:
    """Host-level health snapshot."""

    process_running: bool
    disk: str
    memory: str
    uptime: str
    output: str


@dataclass
class AgentInfo:
    """One agent as reported by the runtime."""

    id: str
    identity_name: str = ""
    identity_emoji: str = ""
    workspace: str = ""
    agent_dir: str = ""
    model: str = ""
    is_default: bool = False


@dataclass
class AgentHealth:
    """Per-agent directory and process probe."""

    exists: bool
    dir_size: str
    last_activity: str
    process_running: bool


@dataclass
class FileEntry:
    """One entry of a remote directory listing."""

    name: str
    type: Literal["file", "directory"]


@dataclass
class ChatReply:
    """Reply from a buffered agent chat."""

    reply: str
    agent_id: str
    model: str = ""
    session_id: str = ""


@dataclass
class CommandReport:
    """Raw output of a diagnostic command."""

    output: str
    exit_code: int


@dataclass
class ActionResult:
    """Outcome of a runtime management action."""

    success: bool
    output: str


@dataclass
class Binding:
    """Channel-to-agent routing rule."""

    agent_id: str
    channel: str
    account_id: str | None = None

    @property
    def label(self) -> str:
        """``channel`` or ``channel:account``."""
        return f"{self.channel}:{self.account_id}" if self.account_id else self.channel

    def to_config(self) -> dict[str, object]:
        """Serialize to the runtime's ``bindings`` config shape."""
        match: dict[str, str] = {"channel": self.channel}
        if self.account_id:
            match["accountId"] = self.account_id
        return {"match": match, "agentId": self.agent_id}


@dataclass
class InstanceDiagnostics:
    """Integration probes for one host."""

    runtime_version: str = "unknown"
    gog_accounts: list[str] = field(default_factory=list)
    pubsub_endpoint: str = "none"
    tailscale_funnel: str = "none"
    gcp_project: str = "none"
    active_gmail_watches: list[str] = field(default_factory=list)
