"""
Tool descriptor models and the Tool base class.

Every tool exposed to the host is described by a ToolDescriptor: plain data
from which the server derives the tool's input schema, description text and
side-effect annotations. Descriptors and parameters are immutable once built.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mcp.types import CallToolResult
from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from mcpbridge.framework.cache import CacheService


class Parameter(BaseModel):
    """A single named tool argument."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    type: dict[str, Any] = Field(
        default_factory=lambda: {"type": "string"},
        description="JSON Schema fragment for the argument value",
    )
    required: bool = False
    description: str | None = None
    constraints: list[str] | None = None
    examples: list[Any] | None = None


class ToolExample(BaseModel):
    """Example invocation rendered into the tool description."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    expected_output: str | None = None


class ToolDescriptor(BaseModel):
    """
    Declarative description of a tool.

    `parameters` and `input_schema` both contribute to the input schema;
    see schema.build_input_schema for the merge rule. The side-effect flags
    default to None, meaning "use the safe default" (read-only,
    non-destructive, idempotent, closed-world).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = Field(..., min_length=1)
    summary: str
    purpose: str = ""
    use_cases: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    examples: list[ToolExample] = Field(default_factory=list)
    hints: list[str] = Field(default_factory=list)
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None
    output_description: str | None = None

    read_only: bool | None = None
    destructive: bool | None = None
    idempotent: bool | None = None
    open_world: bool | None = None

    @field_validator("parameters")
    @classmethod
    def _unique_parameter_names(cls, value: list[Parameter]) -> list[Parameter]:
        seen: set[str] = set()
        for param in value:
            if param.name in seen:
                msg = f"Duplicate parameter name: {param.name}"
                raise ValueError(msg)
            seen.add(param.name)
        return value


@dataclass
class ToolContext:
    """
    Context passed to every tool invocation.

    Carries the shared cache and, when invoked through the MCP runtime, the
    active request context (session, request id, progress token).
    """

    tool_name: str
    cache: "CacheService | None" = None
    request_context: Any | None = None
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def cache_key(self, *parts: Any) -> str:
        """Build a cache key from parts.

        Example:
            ctx.cache_key("builds", project_id, build_id)
            -> "bugsnag_get_build:builds:abc:123"
        """
        return ":".join(str(p) for p in (self.tool_name, *parts))


class Tool(ABC):
    """
    Base class for tool implementations.

    Subclasses set `name` and `definition` and implement `execute`. Tools
    are stateless with respect to the framework; anything shared goes
    through ToolContext.
    """

    name: str
    definition: ToolDescriptor

    @abstractmethod
    async def execute(self, args: dict[str, Any], context: ToolContext) -> CallToolResult:
        """
        Execute the tool with validated arguments.

        Raises:
            ToolError: For expected, user-actionable failures
        """
        ...
