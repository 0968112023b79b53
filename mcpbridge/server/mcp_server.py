"""MCP server hosting client tools.

This module provides the server wrapper that:
1. Owns the low-level `mcp.server.Server`, the shared cache and the error reporter
2. Adds clients: each client registers tools (and optionally resources and prompts)
3. Maps list_tools/call_tool onto the registered ToolExecutors
4. Runs over the stdio transport

Architecture:
- Host → MCP runtime → BridgeMCPServer → ToolExecutor → client handler → backend API
- Argument validation happens in the executor, so the runtime's own input
  validation is turned off

Example:
    # Start the server with one client class
    BUGSNAG_AUTH_TOKEN=... mcpbridge --client my_clients.bugsnag:BugsnagClient

    # Or in code
    server = BridgeMCPServer(load_config())
    server.add_client(MyClient({"api_key": "..."}))
    await server.run_stdio()
"""

import argparse
import asyncio
import importlib
import json
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    ElicitResult,
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    ResourceTemplate,
    TextContent,
    Tool,
)

from mcpbridge.framework.cache import CacheService
from mcpbridge.framework.clients import (
    Client,
    ClientRegistry,
    PromptHandler,
    PromptSpec,
    ResourceHandler,
)
from mcpbridge.framework.errors import (
    ConfigurationError,
    DuplicateToolError,
    ToolError,
    ToolNotFoundError,
)
from mcpbridge.framework.tools._tool_async import safe_await_if_needed
from mcpbridge.framework.tools.tool_executor import ToolExecutor, ToolHandler
from mcpbridge.framework.tools.tool_interface import ToolDescriptor
from mcpbridge.observability.logging import configure_logging
from mcpbridge.observability.reporting import ErrorReporter, create_reporter
from mcpbridge.server.config import Config, load_config

logger = logging.getLogger(__name__)

_TEMPLATE_VARIABLE = re.compile(r"\\\{(\w+)\\\}")


@dataclass(frozen=True)
class _RegisteredResource:
    name: str
    uri_template: str
    pattern: re.Pattern[str]
    handler: ResourceHandler

    def match(self, uri: str) -> dict[str, str] | None:
        matched = self.pattern.fullmatch(uri)
        return matched.groupdict() if matched else None


@dataclass(frozen=True)
class _RegisteredPrompt:
    name: str
    spec: PromptSpec
    handler: PromptHandler


def _template_pattern(uri_template: str) -> re.Pattern[str]:
    """Compile `scheme://name/{var}` into a regex with one named group per variable."""
    return re.compile(_TEMPLATE_VARIABLE.sub(r"(?P<\1>[^/]+)", re.escape(uri_template)))


class BridgeMCPServer:
    """MCP server exposing the tools of every added client.

    Attributes:
        config: Loaded configuration
        server: Low-level MCP server instance
        cache: Shared cache handed to tool handlers
        reporter: Collaborator notified of unexpected failures
    """

    def __init__(self, config: Config | None = None, reporter: ErrorReporter | None = None) -> None:
        """Initialize the server.

        Args:
            config: Configuration (default: load_config())
            reporter: Error reporter (default: chosen from config.observability)
        """
        self.config = config or load_config()
        self.reporter = reporter or create_reporter(self.config.observability.error_reporting)
        self.cache = CacheService(self.config.cache)
        self.server = Server(self.config.server.name, version=self.config.server.version)
        self.clients: list[Client] = []

        self._executors: dict[str, ToolExecutor] = {}
        self._resources: list[_RegisteredResource] = []
        self._prompts: dict[str, _RegisteredPrompt] = {}

        self._register_handlers()
        logger.info("Created MCP server: %s", self.config.server.name)

    # ------------------------------------------------------------------
    # Client registration
    # ------------------------------------------------------------------

    def add_client(self, client: Client) -> None:
        """Register everything a client provides.

        Nothing is kept if any registration callback fails.

        Raises:
            DuplicateToolError: If one of the client's tools has a name already in use
        """
        pending_tools: dict[str, ToolExecutor] = {}
        pending_resources: list[_RegisteredResource] = []
        pending_prompts: dict[str, _RegisteredPrompt] = {}

        def register(descriptor: ToolDescriptor, handler: ToolHandler) -> ToolExecutor:
            executor = ToolExecutor.build(
                client_prefix=client.prefix,
                client_name=client.name,
                descriptor=descriptor,
                handler=handler,
                reporter=self.reporter,
                cache=self.cache,
            )
            if executor.name in self._executors or executor.name in pending_tools:
                raise DuplicateToolError(executor.name)
            pending_tools[executor.name] = executor
            logger.debug("Registered tool %s", executor.name, extra={"client": client.name})
            return executor

        def register_resource(name: str, path: str, handler: ResourceHandler) -> str:
            uri_template = f"{client.prefix}://{name}/{path}"
            pending_resources.append(
                _RegisteredResource(
                    name=name,
                    uri_template=uri_template,
                    pattern=_template_pattern(uri_template),
                    handler=handler,
                )
            )
            logger.debug("Registered resource %s", uri_template, extra={"client": client.name})
            return uri_template

        def register_prompt(name: str, spec: PromptSpec, handler: PromptHandler) -> None:
            if name in self._prompts or name in pending_prompts:
                logger.warning("Prompt %s registered twice, keeping the latest", name)
            pending_prompts[name] = _RegisteredPrompt(name=name, spec=spec, handler=handler)

        client.register_tools(register, self._get_input)

        register_resources = getattr(client, "register_resources", None)
        if callable(register_resources):
            register_resources(register_resource)

        register_prompts = getattr(client, "register_prompts", None)
        if callable(register_prompts):
            register_prompts(register_prompt)

        self._executors.update(pending_tools)
        self._resources.extend(pending_resources)
        self._prompts.update(pending_prompts)
        self.clients.append(client)
        logger.info(
            "Added client %s with %s tools",
            client.name,
            len(pending_tools),
            extra={"client": client.name},
        )

    async def _get_input(self, message: str, requested_schema: dict[str, Any]) -> ElicitResult:
        """Ask the user for input through the session of the current request."""
        try:
            ctx = self.server.request_context
        except LookupError as e:
            msg = "User input can only be requested while handling a request"
            raise ToolError(msg, cause=e) from e
        return await ctx.session.elicit(message, requested_schema)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_tool(self, name: str) -> ToolExecutor | None:
        """Get the executor registered under a tool name."""
        return self._executors.get(name)

    def tool_names(self) -> list[str]:
        """Registered tool names in registration order."""
        return list(self._executors)

    def get_cache(self) -> CacheService:
        return self.cache

    # ------------------------------------------------------------------
    # MCP handlers
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        """Register MCP request handlers on the low-level server."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.list_tools()

        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
            return await self.call_tool(name, arguments)

        @self.server.list_resource_templates()
        async def list_resource_templates() -> list[ResourceTemplate]:
            return self.list_resource_templates()

        @self.server.read_resource()
        async def read_resource(uri: Any) -> list[ReadResourceContents]:
            return await self.read_resource(str(uri))

        @self.server.list_prompts()
        async def list_prompts() -> list[Prompt]:
            return self.list_prompts()

        @self.server.get_prompt()
        async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
            return await self.get_prompt(name, arguments)

    def list_tools(self) -> list[Tool]:
        """Registration records of every tool."""
        return [executor.to_mcp_tool() for executor in self._executors.values()]

    def _current_request_context(self) -> Any | None:
        try:
            return self.server.request_context
        except LookupError:
            return None

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Dispatch a tool call to its executor.

        Raises:
            ToolNotFoundError: If no tool is registered under the name
            Exception: Unexpected handler failures, after they were reported
        """
        executor = self._executors.get(name)
        if executor is None:
            raise ToolNotFoundError(name, available=self.tool_names())

        result = await executor.execute(arguments, self._current_request_context())
        return result if result is not None else CallToolResult(content=[])

    def list_resource_templates(self) -> list[ResourceTemplate]:
        return [
            ResourceTemplate(uriTemplate=resource.uri_template, name=resource.name)
            for resource in self._resources
        ]

    async def read_resource(self, uri: str) -> list[ReadResourceContents]:
        """Read a resource through the first template matching the URI.

        Raises:
            ValueError: If no registered template matches
            Exception: Handler failures, after they were reported
        """
        for resource in self._resources:
            variables = resource.match(uri)
            if variables is None:
                continue
            try:
                result = await safe_await_if_needed(
                    resource.handler(uri, variables, self._current_request_context())
                )
            except Exception as e:
                logger.exception("Resource %s failed for %s", resource.name, uri)
                self.reporter.notify(e, {"resource": resource.name, "uri": uri})
                raise
            if isinstance(result, (dict, list)):
                return [ReadResourceContents(content=json.dumps(result), mime_type="application/json")]
            return [ReadResourceContents(content=str(result), mime_type="text/plain")]

        msg = f"Unknown resource: {uri}"
        raise ValueError(msg)

    def list_prompts(self) -> list[Prompt]:
        return [
            Prompt(
                name=prompt.name,
                description=prompt.spec.description or None,
                arguments=[
                    PromptArgument(name=arg_name, description=arg_description, required=required)
                    for arg_name, arg_description, required in prompt.spec.arguments
                ],
            )
            for prompt in self._prompts.values()
        ]

    async def get_prompt(self, name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        """Render a prompt; a plain string result becomes a single user message."""
        prompt = self._prompts.get(name)
        if prompt is None:
            msg = f"Unknown prompt: {name}"
            raise ValueError(msg)

        try:
            result = await safe_await_if_needed(prompt.handler(arguments or {}))
        except Exception as e:
            logger.exception("Prompt %s failed", name)
            self.reporter.notify(e, {"prompt": name})
            raise

        if isinstance(result, GetPromptResult):
            return result
        return GetPromptResult(
            description=prompt.spec.description or None,
            messages=[
                PromptMessage(role="user", content=TextContent(type="text", text=str(result)))
            ],
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def run_stdio(self) -> None:
        """Run the MCP server using stdio transport."""
        logger.info("Starting %s on stdio with %s tools", self.config.server.name, len(self._executors))

        async with stdio_server() as (read, write):
            await self.server.run(read, write, self.server.create_initialization_options())


def load_client_class(reference: str) -> type[Client]:
    """Import a client class from a `package.module:ClassName` reference.

    Raises:
        ConfigurationError: If the reference is malformed or cannot be imported
    """
    module_name, _, class_name = reference.partition(":")
    if not module_name or not class_name:
        msg = f"Client reference must look like 'package.module:ClassName', got '{reference}'"
        raise ConfigurationError(msg)

    try:
        module = importlib.import_module(module_name)
        client_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        msg = f"Cannot load client class '{reference}': {e}"
        raise ConfigurationError(msg) from e

    if not (isinstance(client_class, type) and issubclass(client_class, Client)):
        msg = f"'{reference}' is not a Client subclass"
        raise ConfigurationError(msg)
    return client_class


async def serve(server: BridgeMCPServer, registry: ClientRegistry) -> int:
    """Configure clients from the environment and, if any configured, serve over stdio.

    Returns:
        Number of clients configured (the server only ran when > 0)
    """
    count = await registry.configure_from_env(server)
    if count == 0:
        return 0
    await server.run_stdio()
    return count


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Supports command-line arguments:
    --config: Path to YAML config file (default: ./mcpbridge_config.yml)
    --log-level: Logging level (overrides config and MCP_LOG_LEVEL)
    --client: Client class to register, as package.module:ClassName (repeatable)
    """
    parser = argparse.ArgumentParser(
        description="MCP server exposing backend API clients as tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the tools of one client, configured from its environment variables
  BUGSNAG_AUTH_TOKEN=... mcpbridge --client my_clients.bugsnag:BugsnagClient

  # Only enable some of the registered clients
  MCP_CLIENTS=bugsnag mcpbridge --client a:BugsnagClient --client b:PactflowClient
        """,
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )
    parser.add_argument(
        "--client",
        action="append",
        default=[],
        metavar="MODULE:CLASS",
        help="Client class to register (repeatable)",
    )
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    configure_logging(
        args.log_level or config.server.log_level,
        structured=config.observability.structured_logging,
    )

    try:
        registry = ClientRegistry(config.clients)
        for reference in args.client:
            registry.register(load_client_class(reference))

        server = BridgeMCPServer(config)
        count = asyncio.run(serve(server, registry))

    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)

    except Exception as e:
        logger.exception("Server error: %s", e)
        sys.exit(1)

    if count == 0:
        required = registry.get_required_env_vars()
        logger.error(
            "No clients configured. Set the environment variables of at least one client: %s",
            ", ".join(required) or "(no clients registered)",
        )
        sys.exit(1)


__all__ = ["BridgeMCPServer", "load_client_class", "main", "serve"]
