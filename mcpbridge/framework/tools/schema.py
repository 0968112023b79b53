"""
Schema translation and annotation inference.

Pure functions turning a ToolDescriptor into the pieces of an MCP tool
registration: JSON Schema for input and output, the free-text description
the host's model reads, and side-effect annotations.

The description layout is parsed as free text downstream, so section order
and the omit-when-empty rule are fixed:

    summary
    **Parameters:**          (from parameters, else from raw input_schema)
    **Output Description:**
    **Use Cases:**           (numbered, single line)
    **Examples:**            (numbered, JSON code blocks)
    **Hints:**               (numbered, single line)
"""

import json
import re
from typing import Any

from mcp.types import ToolAnnotations

from .tool_interface import Parameter, ToolDescriptor

_WHITESPACE_RUN = re.compile(r"\s+")


def slugify_title(title: str) -> str:
    """Lower-case a title and replace whitespace runs with underscores."""
    return _WHITESPACE_RUN.sub("_", title).lower()


def build_tool_name(prefix: str, title: str) -> str:
    """Derive the registered tool name, e.g. ("bugsnag", "Get Build") -> "bugsnag_get_build"."""
    return f"{prefix}_{slugify_title(title)}"


def is_object_schema(schema: Any) -> bool:
    """True if schema is a JSON Schema describing an object."""
    return isinstance(schema, dict) and schema.get("type") == "object"


def has_object_properties(schema: Any) -> bool:
    """True for an object schema, or an untyped schema that declares `properties`."""
    if is_object_schema(schema):
        return True
    return (
        isinstance(schema, dict)
        and "type" not in schema
        and isinstance(schema.get("properties"), dict)
    )


# ============================================================================
# Input / Output Schemas
# ============================================================================


def _parameter_node(param: Parameter) -> dict[str, Any]:
    node = dict(param.type)
    if param.description:
        node["description"] = param.description
    return node


def build_input_schema(descriptor: ToolDescriptor) -> dict[str, Any]:
    """
    Build the JSON Schema for a tool's arguments in one pass.

    Declared parameters are laid down first. Properties of a raw object
    `input_schema` are applied after them: they may add properties and, on a
    name collision, replace the parameter's node and required-ness. A
    declared parameter is never dropped from `properties`.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in descriptor.parameters:
        properties[param.name] = _parameter_node(param)
        if param.required:
            required.append(param.name)

    raw = descriptor.input_schema
    if has_object_properties(raw):
        raw_required = set(raw.get("required", []))
        for name, node in raw.get("properties", {}).items():
            # Boolean subschemas (true/false) are kept as-is
            properties[name] = dict(node) if isinstance(node, dict) else node
            if name in raw_required:
                if name not in required:
                    required.append(name)
            elif name in required:
                required.remove(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def build_output_schema(descriptor: ToolDescriptor) -> dict[str, Any] | None:
    """Pass the output schema through only if it is object-shaped."""
    if is_object_schema(descriptor.output_schema):
        return dict(descriptor.output_schema)
    return None


# ============================================================================
# Description
# ============================================================================


def readable_type_name(node: Any) -> str:
    """Short human name for a JSON Schema node."""
    if not isinstance(node, dict):
        return "any"
    if "enum" in node:
        return "enum"
    if "const" in node:
        return "literal"
    if "anyOf" in node or "oneOf" in node:
        variants = [
            v
            for v in node.get("anyOf", node.get("oneOf", []))
            if not (isinstance(v, dict) and v.get("type") == "null")
        ]
        if len(variants) == 1:
            return readable_type_name(variants[0])
        return "union"

    json_type = node.get("type")
    if json_type in ("string", "boolean", "array", "object"):
        return json_type
    if json_type in ("number", "integer"):
        return "number"
    return "any"


def _format_parameter(param: Parameter) -> str:
    line = f"- {param.name} ({readable_type_name(param.type)})"
    if param.required:
        line += " *required*"
    if param.description:
        line += f": {param.description}"
    if param.examples:
        line += f" (e.g. {', '.join(str(e) for e in param.examples)})"
    if param.constraints:
        line += "\n  - " + "\n  - ".join(param.constraints)
    return line


def _format_schema_property(name: str, node: Any, required: set[str]) -> str:
    line = f"- {name} ({readable_type_name(node)})"
    if name in required:
        line += " *required*"
    if not isinstance(node, dict):
        return line
    if node.get("description"):
        line += f": {node['description']}"
    if node.get("examples"):
        line += f" (e.g. {', '.join(str(e) for e in node['examples'])})"
    return line


def _numbered_inline(items: list[str]) -> str:
    return " ".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def build_description(descriptor: ToolDescriptor) -> str:
    """Render the deterministic description text for a tool."""
    description = descriptor.summary

    if descriptor.parameters:
        description += "\n\n**Parameters:**\n" + "\n".join(
            _format_parameter(p) for p in descriptor.parameters
        )
    elif has_object_properties(descriptor.input_schema):
        raw = descriptor.input_schema
        required = set(raw.get("required", []))
        lines = [
            _format_schema_property(name, node, required)
            for name, node in raw.get("properties", {}).items()
        ]
        if lines:
            description += "\n\n**Parameters:**\n" + "\n".join(lines)

    if descriptor.output_description:
        description += f"\n\n**Output Description:** {descriptor.output_description}"

    if descriptor.use_cases:
        description += f"\n\n**Use Cases:** {_numbered_inline(descriptor.use_cases)}"

    if descriptor.examples:
        rendered = []
        for idx, example in enumerate(descriptor.examples, start=1):
            block = (
                f"{idx}. {example.description}\n```json\n"
                f"{json.dumps(example.parameters, indent=2, ensure_ascii=False)}\n```"
            )
            if example.expected_output:
                block += f"\nExpected Output: {example.expected_output}"
            rendered.append(block)
        description += "\n\n**Examples:**\n" + "\n\n".join(rendered)

    if descriptor.hints:
        description += f"\n\n**Hints:** {_numbered_inline(descriptor.hints)}"

    return description.strip()


# ============================================================================
# Annotations
# ============================================================================


def build_annotations(title: str, descriptor: ToolDescriptor) -> ToolAnnotations:
    """Infer side-effect hints, defaulting to the safest assumption."""
    return ToolAnnotations(
        title=title,
        readOnlyHint=True if descriptor.read_only is None else descriptor.read_only,
        destructiveHint=False if descriptor.destructive is None else descriptor.destructive,
        idempotentHint=True if descriptor.idempotent is None else descriptor.idempotent,
        openWorldHint=False if descriptor.open_world is None else descriptor.open_world,
    )
