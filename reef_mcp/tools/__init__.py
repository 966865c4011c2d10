"""MCP tools for Reef MCP."""

from reef_mcp.tools.operations import (
    agents,
    backup,
    chat,
    fleet_overview,
    fleet_sweep,
    health,
    hosts,
    list_dir,
    migrate,
    read_file,
    restart,
    run,
    upgrade,
    write_file,
)

ALL_TOOLS = [
    hosts,
    run,
    health,
    agents,
    read_file,
    write_file,
    list_dir,
    restart,
    migrate,
    backup,
    upgrade,
    chat,
    fleet_sweep,
    fleet_overview,
]

__all__ = [
    "ALL_TOOLS",
    "agents",
    "backup",
    "chat",
    "fleet_overview",
    "fleet_sweep",
    "health",
    "hosts",
    "list_dir",
    "migrate",
    "read_file",
    "restart",
    "run",
    "upgrade",
    "write_file",
]
