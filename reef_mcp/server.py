"""Reef MCP FastMCP server.

A thin wrapper wiring the MCP server to the tools in ``reef_mcp.tools``.
All remote work is delegated to ``reef_mcp.services``.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from reef_mcp.config import Settings
from reef_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from reef_mcp.services import get_config
from reef_mcp.tools import ALL_TOOLS
from reef_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = [
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
]


def _configure_logging(settings: Settings) -> None:
    """Configure the ``reef_mcp`` logger and silence third-party noise.

    Runs at import time so logging is ready however the server is started.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    reef_logger = logging.getLogger("reef_mcp")
    reef_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if not reef_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        reef_logger.addHandler(handler)
        reef_logger.propagate = False

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.WARNING)
        noisy.handlers = []
        noisy.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging(Settings.from_env())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Load the fleet hosts at startup.

    Yields:
        Dict with the host aliases
    """
    logger.info("Reef MCP server starting up")
    hosts = get_config().get_hosts()
    logger.info(
        "Loaded %d fleet host(s): %s",
        len(hosts),
        ", ".join(sorted(hosts)) if hosts else "(none)",
    )
    try:
        yield {"hosts": sorted(hosts)}
    finally:
        logger.info("Reef MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings) -> None:
    """Add middleware: ErrorHandling (innermost), then Logging."""
    server.add_middleware(ErrorHandlingMiddleware(include_traceback=settings.include_traceback))
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create the MCP server with middleware, tools and the health route."""
    settings = settings or Settings.from_env()
    server = FastMCP("reef_mcp", lifespan=app_lifespan)

    configure_middleware(server, settings)

    for tool in ALL_TOOLS:
        server.tool(tool)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


mcp = create_server()
