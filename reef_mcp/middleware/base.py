"""Base middleware for Reef MCP."""

import logging

from fastmcp.server.middleware import Middleware


class ReefMiddleware(Middleware):
    """FastMCP middleware with an injectable logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize middleware.

        Args:
            logger: Optional custom logger. Defaults to the subclass module's logger.
        """
        self.logger = logger or logging.getLogger(type(self).__module__)
