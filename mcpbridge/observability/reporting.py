"""
Error reporting for unexpected failures.

The server hands every exception that is not a ToolError to an
ErrorReporter exactly once before re-raising it. The transport behind the
reporter (an error-monitoring service, a metrics pipeline) is outside the
framework; the default simply logs.
"""

import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ErrorReporter(Protocol):
    """Collaborator notified of unexpected tool, resource and prompt failures."""

    def notify(self, error: BaseException, metadata: dict[str, Any]) -> None:
        """
        Report an unexpected failure.

        Args:
            error: The exception, which the caller re-raises afterwards
            metadata: Identifies the failing component, e.g. {"tool": "bugsnag_get_build"}
        """
        ...


class LoggingErrorReporter:
    """Reports unexpected failures as ERROR log records with traceback."""

    def __init__(self, logger_name: str = "mcpbridge.errors") -> None:
        self._logger = logging.getLogger(logger_name)
        self.reported = 0

    def notify(self, error: BaseException, metadata: dict[str, Any]) -> None:
        self.reported += 1
        self._logger.error(
            "Unhandled %s: %s %s",
            type(error).__name__,
            error,
            metadata,
            exc_info=(type(error), error, error.__traceback__),
            extra={k: v for k, v in metadata.items() if k in ("tool", "client")},
        )


class NullReporter:
    """Reporter used when error reporting is disabled."""

    def notify(self, error: BaseException, metadata: dict[str, Any]) -> None:
        logger.debug("Error reporting disabled, dropping %s", type(error).__name__)


def create_reporter(enabled: bool) -> ErrorReporter:
    """
    Create the reporter for the configured observability settings.

    Args:
        enabled: Whether unexpected failures are reported

    Returns:
        ErrorReporter implementation
    """
    return LoggingErrorReporter() if enabled else NullReporter()


__all__ = [
    "ErrorReporter",
    "LoggingErrorReporter",
    "NullReporter",
    "create_reporter",
]
