"""Logging setup for the MCP server process.

The stdio transport owns stdout, so all log output goes to stderr.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging (ELK/Datadog style)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "tool": getattr(record, "tool", None),
            "client": getattr(record, "client", None),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str = "INFO", structured: bool = False, stream: TextIO | None = None
) -> logging.Handler:
    """
    Install a single stderr handler on the root logger.

    Calling this again replaces the handler installed by a previous call
    rather than stacking a second one.

    Args:
        level: Logging level name
        structured: Emit JSON lines instead of the plain format
        stream: Output stream (default: sys.stderr)

    Returns:
        The installed handler
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_mcpbridge_handler", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if structured else logging.Formatter(PLAIN_FORMAT))
    handler._mcpbridge_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))
    return handler
