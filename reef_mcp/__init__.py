"""Reef MCP: remote execution and orchestration for an agent-runtime fleet."""

__version__ = "0.1.0"
