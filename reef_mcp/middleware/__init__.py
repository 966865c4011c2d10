"""Reef MCP middleware components."""

from reef_mcp.middleware.base import ReefMiddleware
from reef_mcp.middleware.errors import ErrorHandlingMiddleware, classify_error
from reef_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "ReefMiddleware",
    "classify_error",
]
