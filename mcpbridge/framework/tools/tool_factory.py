"""
Tool factory: instantiation and validation of a client's tool classes.

Tools come from an explicit, static list of classes handed to the factory
at startup (plus any custom classes named in the discovery config); there
is no filesystem scanning. Each class is instantiated once and the instance
is cached by class, so repeated discovery is cheap and returns the same
objects.

Discovery fails fast: the first class that cannot be constructed, or whose
instance does not have the shape of a tool, aborts the whole call with a
ToolDiscoveryError naming that class.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from mcpbridge.framework.errors import DuplicateToolError, ToolDiscoveryError

from ._tool_validation import validate_tool
from .tool_interface import Tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDiscoveryConfig:
    """Options for a discovery pass.

    Attributes:
        exclude_tools: Tool names removed after validation
        custom_tools: Extra tool classes discovered after the built-in list
    """

    exclude_tools: tuple[str, ...] = ()
    custom_tools: tuple[type, ...] = ()


class ToolFactory:
    """
    Builds the validated, deduplicated tool list for one client.

    Usage:
        factory = ToolFactory([GetBuildTool, ListBuildsTool], client)
        tools = factory.discover_tools(ToolDiscoveryConfig(exclude_tools=("list_builds",)))
    """

    def __init__(self, tool_classes: Iterable[type], *tool_args: Any) -> None:
        """
        Args:
            tool_classes: Tool classes, in registration order
            *tool_args: Positional arguments passed to every tool constructor
        """
        self._tool_classes: list[type] = list(tool_classes)
        self._tool_args = tool_args
        self._instances: dict[type, Tool] = {}
        self._discovered: list[Tool] | None = None

    def _instantiate(self, tool_class: type) -> Tool:
        cached = self._instances.get(tool_class)
        if cached is not None:
            return cached

        try:
            tool = tool_class(*self._tool_args)
            validate_tool(tool)
        except Exception as e:
            raise ToolDiscoveryError(tool_class.__name__, e) from e

        self._instances[tool_class] = tool
        logger.debug("Instantiated tool %s from %s", tool.name, tool_class.__name__)
        return tool

    def discover_tools(self, config: ToolDiscoveryConfig | None = None) -> list[Tool]:
        """
        Instantiate, validate and filter all tool classes.

        Args:
            config: Exclusions and custom tool classes

        Returns:
            Tools in class order, minus excluded names

        Raises:
            ToolDiscoveryError: If any class fails to construct or validate
            DuplicateToolError: If two classes produce the same tool name
        """
        config = config or ToolDiscoveryConfig()
        excluded = set(config.exclude_tools)

        tools: list[Tool] = []
        seen: set[str] = set()
        for tool_class in [*self._tool_classes, *config.custom_tools]:
            tool = self._instantiate(tool_class)
            if tool.name in seen:
                raise DuplicateToolError(tool.name)
            seen.add(tool.name)
            if tool.name in excluded:
                logger.debug("Excluding tool %s", tool.name)
                continue
            tools.append(tool)

        self._discovered = tools
        logger.info("Discovered %s tools (%s excluded)", len(tools), len(seen) - len(tools))
        return list(tools)

    def _discovered_tools(self) -> list[Tool]:
        if self._discovered is None:
            return self.discover_tools()
        return self._discovered

    def create_tool(self, name: str) -> Tool | None:
        """Get the discovered tool with this name, if any."""
        for tool in self._discovered_tools():
            if tool.name == name:
                return tool
        return None

    def is_tool_available(self, name: str) -> bool:
        """Check whether a tool with this name was discovered."""
        return self.create_tool(name) is not None

    def get_tool_count(self) -> int:
        """Number of discovered tools."""
        return len(self._discovered_tools())

    def clear(self) -> None:
        """Drop cached instances and discovery results (used by tests)."""
        self._instances.clear()
        self._discovered = None
