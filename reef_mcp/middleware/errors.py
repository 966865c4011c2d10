"""Error handling middleware: classify, count and log failed requests."""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from reef_mcp.middleware.base import ReefMiddleware
from reef_mcp.services.errors import (
    MigrationStepError,
    RemoteConnectionError,
    RemoteFileError,
    TransferError,
)
from reef_mcp.utils.validation import PolicyError

ErrorCallback = Callable[[Exception, MiddlewareContext], None]

_CATEGORIES: list[tuple[type[BaseException], str]] = [
    (PolicyError, "policy"),
    (RemoteConnectionError, "connection"),
    (TransferError, "transfer"),
    (RemoteFileError, "remote"),
    (MigrationStepError, "remote"),
]


def classify_error(error: BaseException) -> str:
    """Category of an error, looking through ``ToolError`` wrappers.

    Returns one of ``policy``, ``connection``, ``transfer``, ``remote``
    or ``internal``.
    """
    seen: BaseException | None = error
    while seen is not None:
        for kind, category in _CATEGORIES:
            if isinstance(seen, kind):
                return category
        seen = seen.__cause__
    return "internal"


class ErrorHandlingMiddleware(ReefMiddleware):
    """Logs every failed request once, counted by category, then re-raises.

    Policy rejections are the caller's mistake and log at WARNING; everything
    else logs at ERROR.

    Example:
        >>> middleware = ErrorHandlingMiddleware(include_traceback=True)
        >>> mcp.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Whether to log the full traceback.
            error_callback: Optional callback receiving (exception, context).
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._error_counts: dict[str, int] = defaultdict(int)

    def get_error_stats(self) -> dict[str, int]:
        """Error counts keyed by category."""
        return dict(self._error_counts)

    def reset_stats(self) -> None:
        """Reset error statistics."""
        self._error_counts.clear()

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Run the next handler, logging and re-raising anything it raises."""
        try:
            return await call_next(context)
        except Exception as e:
            category = classify_error(e)
            self._error_counts[category] += 1

            level = logging.WARNING if category == "policy" else logging.ERROR
            self.logger.log(
                level,
                "Error in %s [%s]: %s: %s",
                context.method,
                category,
                type(e).__name__,
                e,
                exc_info=self.include_traceback,
            )

            if self.error_callback:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning("Error callback failed: %s", callback_error)

            raise
