"""
Internal module for sync/async handler bridging and timing.

This module is not part of the public API - do not import directly.
Use mcpbridge.framework.tools.tool_executor instead.
"""

import inspect
import time
from typing import Any


async def safe_await_if_needed(result: Any) -> Any:
    """
    Await a result if it's awaitable, otherwise return as-is.

    Lets handlers be written as plain functions or coroutines.

    Args:
        result: Value that may or may not be awaitable

    Returns:
        Awaited result if awaitable, original value otherwise
    """
    if inspect.isawaitable(result):
        return await result
    return result


def measure_execution_time(start: float) -> float:
    """
    Calculate execution time in milliseconds from a perf_counter start.

    Args:
        start: Value of time.perf_counter() taken before execution

    Returns:
        Execution time in milliseconds
    """
    return round((time.perf_counter() - start) * 1000, 2)
