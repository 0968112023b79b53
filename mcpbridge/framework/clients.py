"""
Clients and the client registry.

A Client groups the tools that talk to one upstream backend. It declares a
tool-name prefix, a configuration namespace and a configuration schema;
the registry resolves that configuration (from environment variables or
request headers), instantiates the client and adds it to the server.

Environment variables follow `<CONFIG_PREFIX>_<KEY>` (upper-cased,
separators normalized to "_"), e.g. config_prefix "api-hub" and key
"api_key" -> API_HUB_API_KEY. Header configuration is opt-in per client
class through a `from_headers` classmethod (see HeaderConfigurableMixin),
using `X-<Config-Prefix>-<Key>` names, e.g. X-Api-Hub-Api-Key.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from pydantic import BaseModel, ConfigDict

from mcpbridge.framework.errors import DuplicateToolError, EndpointNotAllowedError

if TYPE_CHECKING:
    from mcp.types import ElicitResult

    from mcpbridge.framework.tools.tool_executor import ToolExecutor, ToolHandler
    from mcpbridge.framework.tools.tool_interface import ToolDescriptor
    from mcpbridge.server.config import ClientsConfig

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")

RegisterToolFunction = Callable[["ToolDescriptor", "ToolHandler"], "ToolExecutor"]
GetInputFunction = Callable[[str, dict[str, Any]], Awaitable["ElicitResult"]]
ResourceHandler = Callable[[str, dict[str, str], Any], Any]
RegisterResourceFunction = Callable[[str, str, ResourceHandler], str]
PromptHandler = Callable[[dict[str, str]], Any]
ConfigResolver = Callable[["ClientRegistryEntry", str], "str | None"]


class ConfigField(BaseModel):
    """Schema entry for one client configuration key."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    required: bool = True
    description: str = ""
    url: bool = False


@dataclass(frozen=True)
class PromptSpec:
    """Prompt metadata registered by a client."""

    description: str = ""
    arguments: tuple[tuple[str, str, bool], ...] = ()  # (name, description, required)


RegisterPromptFunction = Callable[[str, PromptSpec, PromptHandler], None]


class ServerLike(Protocol):
    """What the registry needs from the server."""

    def add_client(self, client: "Client") -> None: ...


class Client(ABC):
    """
    Base class for backend clients.

    Subclasses set the class attributes and implement register_tools. They
    may also define register_resources(register) and
    register_prompts(register); the server calls those only when present.
    """

    name: ClassVar[str]
    prefix: ClassVar[str]
    config_prefix: ClassVar[str]
    config_schema: ClassVar[dict[str, ConfigField] | None] = None

    def __init__(self, config: dict[str, str], host: Any | None = None) -> None:
        self.config = config
        self.host = host

    async def initialize(self) -> None:
        """Async setup run after construction when registered with async_init=True."""
        return None

    @abstractmethod
    def register_tools(self, register: RegisterToolFunction, get_input: GetInputFunction) -> None:
        """Call `register(descriptor, handler)` once per tool."""
        ...


def env_var_name(config_prefix: str, key: str) -> str:
    """`<CONFIG_PREFIX>_<KEY>` with separators normalized, e.g. ("api-hub", "api_key") -> API_HUB_API_KEY."""
    return f"{_SEPARATORS.sub('_', config_prefix)}_{_SEPARATORS.sub('_', key)}".upper()


def header_name(config_prefix: str, key: str) -> str:
    """Header carrying a config key, e.g. ("bugsnag", "auth_token") -> X-Bugsnag-Auth-Token."""
    parts = env_var_name(config_prefix, key).split("_")
    return "X-" + "-".join(part.capitalize() for part in parts if part)


def env_resolver(environ: Mapping[str, str] | None = None) -> ConfigResolver:
    """
    Build a resolver reading `<CONFIG_PREFIX>_<KEY>` environment variables.

    Args:
        environ: Environment mapping (default: os.environ at call time)
    """

    def resolve(entry: "ClientRegistryEntry", key: str) -> str | None:
        env = os.environ if environ is None else environ
        return env.get(env_var_name(entry.config_prefix, key))

    return resolve


def _header_value(headers: Mapping[str, Any], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() != wanted:
            continue
        if isinstance(value, (list, tuple)):
            return value[0] if value else None
        return value
    return None


class HeaderConfigurableMixin:
    """Adds `from_headers` so a Client can be configured per HTTP request."""

    @classmethod
    def from_headers(cls, headers: Mapping[str, Any], host: Any | None = None) -> "Client | None":
        """
        Instantiate the client from `X-<Config-Prefix>-<Key>` headers.

        Returns:
            Client instance, or None if a required header is missing
        """
        schema: dict[str, ConfigField] = cls.config_schema or {}  # type: ignore[attr-defined]
        values: dict[str, str] = {}
        for key, config_field in schema.items():
            value = _header_value(headers, header_name(cls.config_prefix, key))  # type: ignore[attr-defined]
            if value:
                values[key] = value
            elif config_field.required:
                return None
        return cls(values, host)  # type: ignore[call-arg]


@dataclass(frozen=True)
class ClientRegistryEntry:
    """Registry entry for a client class."""

    client_class: type[Client]
    name: str
    config: dict[str, ConfigField] | None
    needs_host: bool = False
    async_init: bool = False

    @property
    def config_prefix(self) -> str:
        return self.client_class.config_prefix

    @property
    def supports_headers(self) -> bool:
        return callable(getattr(self.client_class, "from_headers", None))

    def instantiate(self, config: dict[str, str], host: Any | None) -> Client:
        if self.needs_host:
            return self.client_class(config, host)
        return self.client_class(config)


def matches_allowed_endpoint(url: str, allowed: tuple[str, ...]) -> bool:
    """
    Check a URL against exact endpoints and /regex/ patterns.

    Invalid regex patterns are logged and ignored.
    """
    for pattern in allowed:
        if len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/"):
            try:
                if re.search(pattern[1:-1], url):
                    return True
            except re.error as e:
                logger.warning("Invalid regex pattern in MCP_ALLOWED_ENDPOINTS: %s (%s)", pattern, e)
        elif url == pattern:
            return True
    return False


@dataclass
class ClientRegistry:
    """
    Central registry for all clients.

    Entries are registered at startup and never mutated afterwards;
    clear() exists for tests.
    """

    clients_config: "ClientsConfig | None" = None
    _entries: list[ClientRegistryEntry] = field(default_factory=list)
    _configured: list[Client] = field(default_factory=list)

    def register(
        self,
        client_class: type[Client],
        *,
        name: str | None = None,
        needs_host: bool = False,
        async_init: bool = False,
    ) -> ClientRegistryEntry:
        """
        Register a client class.

        Args:
            client_class: Client subclass (the factory)
            name: Display name for logging (default: client_class.name)
            needs_host: Pass the server to the constructor
            async_init: Await client.initialize() before adding it

        Returns:
            The new registry entry
        """
        entry = ClientRegistryEntry(
            client_class=client_class,
            name=name or client_class.name,
            config=client_class.config_schema,
            needs_host=needs_host,
            async_init=async_init,
        )
        self._entries.append(entry)
        return entry

    def _is_enabled(self, entry: ClientRegistryEntry) -> bool:
        enabled = self.clients_config.enabled_clients if self.clients_config else None
        if enabled is None:
            return True
        return entry.name.lower() in enabled

    def get_all(self) -> list[ClientRegistryEntry]:
        """All registered entries in registration order, minus disabled clients."""
        return [entry for entry in self._entries if self._is_enabled(entry)]

    def configured_clients(self) -> list[Client]:
        """Clients successfully added to a server, in activation order."""
        return list(self._configured)

    def _validate_endpoints(self, entry: ClientRegistryEntry, values: Mapping[str, Any]) -> None:
        allowed = self.clients_config.allowed_endpoints if self.clients_config else None
        if allowed is None or not entry.config:
            return
        for key, config_field in entry.config.items():
            value = values.get(key)
            if config_field.url and value and not matches_allowed_endpoint(value, allowed):
                raise EndpointNotAllowedError(value, client=entry.name, key=key)

    async def _activate(self, server: ServerLike, entry: ClientRegistryEntry, client: Client) -> None:
        if entry.async_init:
            await client.initialize()
        server.add_client(client)
        self._configured.append(client)
        logger.info("Configured %s client", entry.name, extra={"client": entry.name})

    async def configure(
        self, server: ServerLike, resolver: ConfigResolver, host: Any | None = None
    ) -> int:
        """
        Resolve configuration and activate every registered client.

        A client whose required keys do not all resolve is skipped. Failures
        of a single client (resolver, constructor, initialize, disallowed
        endpoint) are logged and do not stop the remaining clients. Duplicate
        tool names are fatal and propagate.

        Args:
            server: Server that receives each activated client
            resolver: Called as resolver(entry, key) for every config key
            host: Passed to constructors of entries with needs_host (default: server)

        Returns:
            Number of clients configured
        """
        host = server if host is None else host
        count = 0

        for entry in self.get_all():
            if entry.config is None:
                logger.debug("Skipping %s: no configuration schema", entry.name)
                continue
            try:
                values: dict[str, str] = {}
                missing: list[str] = []
                for key, config_field in entry.config.items():
                    value = resolver(entry, key)
                    if value:
                        values[key] = value
                    elif config_field.required:
                        missing.append(key)

                if missing:
                    logger.debug(
                        "Skipping %s: missing %s",
                        entry.name,
                        ", ".join(env_var_name(entry.config_prefix, k) for k in missing),
                    )
                    continue

                self._validate_endpoints(entry, values)
                client = entry.instantiate(values, host)
                await self._activate(server, entry, client)
                count += 1
            except DuplicateToolError:
                raise
            except Exception as e:
                logger.exception("Error initializing %s client: %s", entry.name, e)

        return count

    async def configure_from_env(
        self, server: ServerLike, environ: Mapping[str, str] | None = None
    ) -> int:
        """Configure clients from `<CONFIG_PREFIX>_<KEY>` environment variables."""
        return await self.configure(server, env_resolver(environ))

    async def configure_from_headers(
        self, server: ServerLike, headers: Mapping[str, Any], host: Any | None = None
    ) -> int:
        """
        Configure clients from request headers.

        Only client classes exposing `from_headers` take part; others are
        skipped silently.

        Returns:
            Number of clients configured
        """
        host = server if host is None else host
        count = 0

        for entry in self.get_all():
            if not entry.supports_headers:
                continue
            try:
                client = entry.client_class.from_headers(headers, host)  # type: ignore[attr-defined]
                if client is None:
                    continue
                self._validate_endpoints(entry, client.config)
                await self._activate(server, entry, client)
                count += 1
            except DuplicateToolError:
                raise
            except Exception as e:
                logger.exception("Error initializing %s client from headers: %s", entry.name, e)

        return count

    def get_http_auth_headers(self) -> list[str]:
        """Sorted header names clients accept for configuration (for CORS allow-lists)."""
        headers: set[str] = set()
        for entry in self.get_all():
            for key in entry.config or {}:
                headers.add(header_name(entry.config_prefix, key))
        return sorted(headers)

    def get_http_auth_headers_help(self) -> list[str]:
        """Human-readable header help, grouped by header-capable client."""
        messages: list[str] = []
        for entry in self.get_all():
            if not entry.supports_headers or not entry.config:
                continue
            messages.append(f"\n  {entry.name}:")
            for key, config_field in entry.config.items():
                tag = " (required)" if config_field.required else " (optional)"
                messages.append(
                    f"    - {header_name(entry.config_prefix, key)}{tag}: {config_field.description}"
                )
        return messages

    def get_required_env_vars(self) -> list[str]:
        """Required environment variables across all enabled clients."""
        return [
            env_var_name(entry.config_prefix, key)
            for entry in self.get_all()
            for key, config_field in (entry.config or {}).items()
            if config_field.required
        ]

    def clear(self) -> None:
        """Clear all registrations (used by tests)."""
        self._entries.clear()
        self._configured.clear()
