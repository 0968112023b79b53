"""
Internal module for tool error results and execution logging.

This module is not part of the public API - do not import directly.
Use mcpbridge.framework.tools.tool_executor instead.
"""

import json
import logging
from typing import Any

from mcp.types import CallToolResult, TextContent

logger = logging.getLogger(__name__)


def create_error_result(tool_title: str, message: str) -> CallToolResult:
    """
    Build the expected-error payload returned to the host.

    Args:
        tool_title: Title of the tool as declared in its descriptor
        message: Error message from the ToolError

    Returns:
        CallToolResult flagged with isError and a single text line
    """
    return CallToolResult(
        isError=True,
        content=[TextContent(type="text", text=f"Error executing {tool_title}: {message}")],
    )


def structured_content_as_text(structured: dict[str, Any]) -> TextContent:
    """Mirror structured content as a JSON text block."""
    return TextContent(type="text", text=json.dumps(structured, default=str))


def _extra(tool_name: str, correlation_id: str | None) -> dict[str, Any]:
    return {"tool": tool_name, "correlation_id": correlation_id}


def log_execution_start(tool_name: str, correlation_id: str | None = None) -> None:
    logger.debug("Executing tool: %s", tool_name, extra=_extra(tool_name, correlation_id))


def log_execution_complete(
    tool_name: str, execution_time_ms: float, correlation_id: str | None = None
) -> None:
    """
    Log successful completion of tool execution.

    Args:
        tool_name: Name of the tool
        execution_time_ms: Execution time in milliseconds
        correlation_id: Id of the invocation being logged
    """
    logger.info(
        "Tool '%s' completed in %sms",
        tool_name,
        execution_time_ms,
        extra=_extra(tool_name, correlation_id),
    )


def log_tool_error(tool_name: str, error: Exception, correlation_id: str | None = None) -> None:
    """
    Log an expected tool error.

    Args:
        tool_name: Name of the tool that failed
        error: The ToolError raised by the handler
        correlation_id: Id of the invocation being logged
    """
    logger.info(
        "Tool '%s' returned error: %s", tool_name, error, extra=_extra(tool_name, correlation_id)
    )


def log_execution_error(
    tool_name: str, error: Exception, correlation_id: str | None = None
) -> None:
    """
    Log an unexpected tool failure.

    Args:
        tool_name: Name of the tool that failed
        error: Exception that occurred
        correlation_id: Id of the invocation being logged
    """
    logger.exception(
        "Tool '%s' failed: %s", tool_name, error, extra=_extra(tool_name, correlation_id)
    )


def log_validation_failure(
    tool_name: str, error_msg: str, correlation_id: str | None = None
) -> None:
    """Arguments rejected by the input schema; the handler was not called."""
    logger.warning(
        "Tool '%s' input validation failed: %s",
        tool_name,
        error_msg,
        extra=_extra(tool_name, correlation_id),
    )
