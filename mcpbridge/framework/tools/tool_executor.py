"""
Execution wrapper for registered tools.

A ToolExecutor is the only code path through which the host reaches a tool
handler. For every invocation it:

1. Validates arguments against the tool's input schema
2. Invokes the handler with (arguments, ToolContext)
3. Enforces the output contract (declared outputSchema => structuredContent)
4. Mirrors structured content as text when the handler gave no text
5. Classifies failures:
   - ToolError (including input validation) -> error result, not reported
   - anything else -> reported once to the ErrorReporter, then re-raised
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from mcp.types import CallToolResult, ToolAnnotations
from mcp.types import Tool as MCPTool

from mcpbridge.framework.errors import ToolError, ToolInputError, ToolOutputContractError

from ._tool_async import measure_execution_time, safe_await_if_needed
from ._tool_errors import (
    create_error_result,
    log_execution_complete,
    log_execution_error,
    log_execution_start,
    log_tool_error,
    log_validation_failure,
    structured_content_as_text,
)
from ._tool_validation import validate_arguments
from .schema import (
    build_annotations,
    build_description,
    build_input_schema,
    build_output_schema,
    build_tool_name,
)
from .tool_interface import ToolContext, ToolDescriptor

if TYPE_CHECKING:
    from mcpbridge.framework.cache import CacheService
    from mcpbridge.observability.reporting import ErrorReporter

logger = logging.getLogger(__name__)

HandlerResult = Union[CallToolResult, dict[str, Any], None]
ToolHandler = Callable[[dict[str, Any], ToolContext], Union[Awaitable[HandlerResult], HandlerResult]]


@dataclass
class ToolExecutor:
    """A tool handler bound to its registration payload and error policy."""

    name: str
    title: str
    descriptor: ToolDescriptor
    handler: ToolHandler
    description: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any] | None
    annotations: ToolAnnotations
    reporter: "ErrorReporter"
    cache: "CacheService | None" = None
    stats: dict[str, int] = field(
        default_factory=lambda: {"executions": 0, "tool_errors": 0, "failures": 0}
    )

    @classmethod
    def build(
        cls,
        *,
        client_prefix: str,
        client_name: str,
        descriptor: ToolDescriptor,
        handler: ToolHandler,
        reporter: "ErrorReporter",
        cache: "CacheService | None" = None,
    ) -> "ToolExecutor":
        """
        Build the registration payload for a descriptor and bind the handler.

        Args:
            client_prefix: Owning client's tool prefix
            client_name: Owning client's display name
            descriptor: Tool descriptor
            handler: Callable invoked with (arguments, ToolContext)
            reporter: Collaborator notified of unexpected failures
            cache: Shared cache handed to handlers via ToolContext

        Returns:
            ToolExecutor ready to be registered with the server
        """
        title = f"{client_name}: {descriptor.title}"
        return cls(
            name=build_tool_name(client_prefix, descriptor.title),
            title=title,
            descriptor=descriptor,
            handler=handler,
            description=build_description(descriptor),
            input_schema=build_input_schema(descriptor),
            output_schema=build_output_schema(descriptor),
            annotations=build_annotations(title, descriptor),
            reporter=reporter,
            cache=cache,
        )

    def to_mcp_tool(self) -> MCPTool:
        """Registration record consumed by the MCP runtime."""
        return MCPTool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
            outputSchema=self.output_schema,
            annotations=self.annotations,
        )

    async def execute(
        self, arguments: dict[str, Any] | None, request_context: Any | None = None
    ) -> CallToolResult | None:
        """
        Run the handler under validation, output-contract and error policy.

        Args:
            arguments: Arguments from the host
            request_context: MCP request context, if invoked through the runtime

        Returns:
            The (possibly normalized) handler result, or an error result for
            expected failures

        Raises:
            Exception: Any unexpected failure, unchanged, after reporting it
        """
        arguments = arguments or {}
        context = ToolContext(tool_name=self.name, cache=self.cache, request_context=request_context)
        cid = context.correlation_id
        self.stats["executions"] += 1
        log_execution_start(self.name, cid)
        start = time.perf_counter()

        try:
            validate_arguments(self.name, self.input_schema, arguments)
            result = await safe_await_if_needed(self.handler(arguments, context))
            if isinstance(result, dict):
                result = CallToolResult.model_validate(result)
            if result is not None:
                self._check_output_contract(result)
                self._mirror_structured_content(result)
            log_execution_complete(self.name, measure_execution_time(start), cid)
            return result
        except ToolError as e:
            self.stats["tool_errors"] += 1
            if isinstance(e, ToolInputError):
                log_validation_failure(self.name, e.message, cid)
            else:
                log_tool_error(self.name, e, cid)
            return create_error_result(self.descriptor.title, e.message)
        except Exception as e:
            self.stats["failures"] += 1
            log_execution_error(self.name, e, cid)
            self.reporter.notify(e, {"tool": self.name})
            raise

    def _check_output_contract(self, result: CallToolResult) -> None:
        if result.isError:
            return
        if self.output_schema is not None and result.structuredContent is None:
            raise ToolOutputContractError(self.descriptor.title)

    @staticmethod
    def _mirror_structured_content(result: CallToolResult) -> None:
        if result.structuredContent is not None and not result.content:
            result.content = [structured_content_as_text(result.structuredContent)]
