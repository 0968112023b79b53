"""
Tool system - descriptors, schema building, discovery and execution.
"""

from .schema import (
    build_annotations,
    build_description,
    build_input_schema,
    build_output_schema,
    build_tool_name,
)
from .tool_executor import ToolExecutor, ToolHandler
from .tool_factory import ToolDiscoveryConfig, ToolFactory
from .tool_interface import (
    Parameter,
    Tool,
    ToolContext,
    ToolDescriptor,
    ToolExample,
)
from .tool_registry import ToolRegistry

__all__ = [
    # Descriptors
    "Parameter",
    "Tool",
    "ToolContext",
    "ToolDescriptor",
    # Discovery
    "ToolDiscoveryConfig",
    "ToolExample",
    # Execution
    "ToolExecutor",
    "ToolFactory",
    "ToolHandler",
    "ToolRegistry",
    # Schema
    "build_annotations",
    "build_description",
    "build_input_schema",
    "build_output_schema",
    "build_tool_name",
]
