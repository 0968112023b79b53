"""
Internal module for tool input validation and tool shape checks.

This module is not part of the public API - do not import directly.
Use mcpbridge.framework.tools.tool_executor / tool_factory instead.
"""

from typing import Any

from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate

from mcpbridge.framework.errors import ToolInputError

REQUIRED_DEFINITION_FIELDS = (
    "title",
    "summary",
    "purpose",
    "use_cases",
    "parameters",
    "examples",
    "hints",
)
LIST_DEFINITION_FIELDS = ("parameters", "examples", "hints", "use_cases")


def validate_arguments(tool_name: str, schema: dict[str, Any], arguments: dict[str, Any]) -> None:
    """
    Validate tool arguments against the tool's input schema.

    Args:
        tool_name: Registered tool name (for error context)
        schema: JSON Schema built for the tool
        arguments: Arguments received from the host

    Raises:
        ToolInputError: If the arguments do not match the schema
    """
    try:
        validate(instance=arguments, schema=schema)
    except JSONSchemaValidationError as e:
        path = [str(p) for p in e.absolute_path]
        where = f" at '{'.'.join(path)}'" if path else ""
        msg = f"Invalid arguments{where}: {e.message}"
        raise ToolInputError(msg, tool_name=tool_name, path=path) from e


def _definition_field(definition: Any, field: str) -> tuple[bool, Any]:
    if isinstance(definition, dict):
        return field in definition, definition.get(field)
    return hasattr(definition, field), getattr(definition, field, None)


def validate_tool(tool: Any) -> None:
    """
    Validate that an object has the shape of a tool.

    Args:
        tool: Candidate tool instance

    Raises:
        ValueError: Describing the first missing or malformed member
    """
    name = getattr(tool, "name", None)
    if not name or not isinstance(name, str):
        msg = "Tool must have a valid name property"
        raise ValueError(msg)

    definition = getattr(tool, "definition", None)
    if definition is None or isinstance(definition, (str, bytes, int, float, list, tuple)):
        msg = "Tool must have a valid definition property"
        raise ValueError(msg)

    if not callable(getattr(tool, "execute", None)):
        msg = "Tool must have a valid execute method"
        raise ValueError(msg)

    for field in REQUIRED_DEFINITION_FIELDS:
        present, _ = _definition_field(definition, field)
        if not present:
            msg = f"Tool definition must have a '{field}' property"
            raise ValueError(msg)

    for field in LIST_DEFINITION_FIELDS:
        _, value = _definition_field(definition, field)
        if not isinstance(value, (list, tuple)):
            msg = f"Tool definition {field} must be an array"
            raise ValueError(msg)
