"""
Tool registry for a client's discovered tools.

Bridges a ToolFactory and the server's register callback: every discovered
tool is recorded here under its own name and handed to the server, which
derives the public tool name, schemas and annotations from its definition.

Usage:
    class BuildsClient(Client):
        def register_tools(self, register, get_input):
            registry = ToolRegistry(ToolFactory([GetBuildTool, ListBuildsTool], self))
            registry.register_all_tools(register)
"""

import logging
from typing import TYPE_CHECKING

from mcpbridge.framework.errors import DuplicateToolError

from .tool_factory import ToolDiscoveryConfig, ToolFactory
from .tool_interface import Tool, ToolDescriptor

if TYPE_CHECKING:
    from mcpbridge.framework.clients import RegisterToolFunction

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of one client's tools.

    Write operations (register_tool, register_all_tools) happen at startup
    only; clear() exists for tests.
    """

    def __init__(self, factory: ToolFactory) -> None:
        self._factory = factory
        self._tools: dict[str, Tool] = {}

    def register_tool(self, tool: Tool) -> None:
        """
        Record a single tool.

        Raises:
            DuplicateToolError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool | None:
        """Get a specific tool by name."""
        return self._tools.get(name)

    def get_all_tools(self) -> list[Tool]:
        """Get all registered tools in registration order."""
        return list(self._tools.values())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_tool_count(self) -> int:
        """Get the count of registered tools."""
        return len(self._tools)

    def register_all_tools(
        self, register: "RegisterToolFunction", config: ToolDiscoveryConfig | None = None
    ) -> int:
        """
        Discover tools and register each with the server.

        Args:
            register: The client's register callback from the server
            config: Discovery options (exclusions, custom tools)

        Returns:
            Number of tools registered
        """
        tools = self._factory.discover_tools(config)
        self.clear()

        for tool in tools:
            self.register_tool(tool)
            definition = tool.definition
            if isinstance(definition, dict):
                definition = ToolDescriptor.model_validate(definition)
            register(definition, tool.execute)

        logger.info("Registered %s tools", len(tools))
        return len(tools)

    def clear(self) -> None:
        """Clear all registered tools (used by tests)."""
        self._tools.clear()
