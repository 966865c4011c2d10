"""Remote execution primitives and orchestrators for Reef MCP."""

from reef_mcp.services.archive import backup_agent, backup_directory, deploy_agent
from reef_mcp.services.connection import close_connection, connect, open_session
from reef_mcp.services.errors import (
    FileTooLargeError,
    MigrationStepError,
    RemoteConnectionError,
    RemoteFileError,
    TransferError,
)
from reef_mcp.services.executors import pull_file, push_file, run_command
from reef_mcp.services.files import list_directory, read_remote_file, write_remote_file
from reef_mcp.services.fleet import (
    fan_out,
    fan_out_agents,
    fleet_agent_health,
    fleet_backup,
    fleet_health,
    fleet_hygiene,
    fleet_overview,
    settle_all,
)
from reef_mcp.services.migration import migrate_agent
from reef_mcp.services.restart import restart_runtime
from reef_mcp.services.state import get_config, reset_state, set_config
from reef_mcp.services.streaming import StreamSession, stream_command

__all__ = [
    "FileTooLargeError",
    "MigrationStepError",
    "RemoteConnectionError",
    "RemoteFileError",
    "StreamSession",
    "TransferError",
    "backup_agent",
    "backup_directory",
    "close_connection",
    "connect",
    "deploy_agent",
    "fan_out",
    "fan_out_agents",
    "fleet_agent_health",
    "fleet_backup",
    "fleet_health",
    "fleet_hygiene",
    "fleet_overview",
    "get_config",
    "list_directory",
    "migrate_agent",
    "open_session",
    "pull_file",
    "push_file",
    "read_remote_file",
    "reset_state",
    "restart_runtime",
    "run_command",
    "set_config",
    "settle_all",
    "stream_command",
    "write_remote_file",
]
