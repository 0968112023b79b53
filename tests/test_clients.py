"""
Tests for the client registry: config resolution, filtering and endpoint checks.
"""

from typing import Any

import pytest

from mcpbridge.framework.clients import (
    Client,
    ClientRegistry,
    ConfigField,
    HeaderConfigurableMixin,
    env_var_name,
    header_name,
    matches_allowed_endpoint,
)
from mcpbridge.framework.errors import DuplicateToolError
from mcpbridge.server.config import ClientsConfig, Config
from mcpbridge.server.mcp_server import BridgeMCPServer
from tests.conftest import BuildsClient, RecordingReporter


class FakeServer:
    def __init__(self) -> None:
        self.clients: list[Client] = []

    def add_client(self, client: Client) -> None:
        self.clients.append(client)


class IssuesClient(HeaderConfigurableMixin, Client):
    name = "Issues"
    prefix = "issues"
    config_prefix = "issue-tracker"
    config_schema = {
        "auth_token": ConfigField(description="Personal access token"),
        "project_id": ConfigField(required=False, description="Default project"),
    }

    def register_tools(self, register, get_input) -> None:
        pass


class InitClient(Client):
    name = "Init"
    prefix = "init"
    config_prefix = "init"
    config_schema = {"token": ConfigField()}

    def __init__(self, config: dict[str, str], host: Any | None = None) -> None:
        super().__init__(config, host)
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    def register_tools(self, register, get_input) -> None:
        pass


class BrokenClient(Client):
    name = "Broken"
    prefix = "broken"
    config_prefix = "broken"
    config_schema = {"token": ConfigField()}

    def __init__(self, config: dict[str, str], host: Any | None = None) -> None:
        msg = "cannot connect"
        raise RuntimeError(msg)

    def register_tools(self, register, get_input) -> None:
        pass


class SchemalessClient(Client):
    name = "Schemaless"
    prefix = "schemaless"
    config_prefix = "schemaless"

    def register_tools(self, register, get_input) -> None:
        pass


def resolver_from(values: dict[str, str]):
    return lambda entry, key: values.get(env_var_name(entry.config_prefix, key))


class TestNaming:
    """Test environment variable and header naming."""

    def test_env_var_name(self) -> None:
        """Test prefix and key are upper-cased and separators normalized."""
        assert env_var_name("issue-tracker", "auth_token") == "ISSUE_TRACKER_AUTH_TOKEN"

    def test_header_name(self) -> None:
        """Test header names are title-cased with dashes."""
        assert header_name("issue-tracker", "auth_token") == "X-Issue-Tracker-Auth-Token"


class TestConfigure:
    """Test configuring clients through a resolver."""

    async def test_configures_clients_with_required_config(self) -> None:
        """Test a client with all required keys is instantiated and added."""
        registry = ClientRegistry()
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure(server, resolver_from({"BUILDS_API_KEY": "secret"}))

        assert count == 1
        assert server.clients[0].config == {"api_key": "secret"}
        assert registry.configured_clients() == server.clients

    async def test_missing_required_key_skips_only_that_client(self) -> None:
        """Test an unconfigured client is skipped while others proceed."""
        registry = ClientRegistry()
        registry.register(IssuesClient)
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure(server, resolver_from({"BUILDS_API_KEY": "secret"}))

        assert count == 1
        assert [c.name for c in server.clients] == ["Builds"]

    async def test_construction_failure_isolated(self) -> None:
        """Test a client whose constructor raises does not stop the others."""
        registry = ClientRegistry()
        registry.register(BrokenClient)
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure(
            server, resolver_from({"BROKEN_TOKEN": "t", "BUILDS_API_KEY": "k"})
        )

        assert count == 1
        assert [c.name for c in server.clients] == ["Builds"]

    async def test_resolver_failure_isolated(self) -> None:
        """Test a raising resolver only affects the current client."""

        def resolver(entry, key):
            if entry.name == "Issues":
                msg = "vault unavailable"
                raise RuntimeError(msg)
            return "value"

        registry = ClientRegistry()
        registry.register(IssuesClient)
        registry.register(BuildsClient)

        count = await registry.configure(FakeServer(), resolver)

        assert count == 1

    async def test_async_init_awaited(self) -> None:
        """Test initialize runs before the client is added when requested."""
        registry = ClientRegistry()
        registry.register(InitClient, async_init=True)
        server = FakeServer()

        await registry.configure(server, resolver_from({"INIT_TOKEN": "t"}))

        assert server.clients[0].initialized is True

    async def test_needs_host_passes_server(self) -> None:
        """Test clients flagged needs_host receive the server."""
        registry = ClientRegistry()
        registry.register(BuildsClient, needs_host=True)
        server = FakeServer()

        await registry.configure(server, resolver_from({"BUILDS_API_KEY": "k"}))

        assert server.clients[0].host is server

    async def test_schemaless_client_skipped(self) -> None:
        """Test a client without a config schema is not configured from env."""
        registry = ClientRegistry()
        registry.register(SchemalessClient)

        assert await registry.configure(FakeServer(), resolver_from({})) == 0

    async def test_duplicate_tool_names_are_fatal(self) -> None:
        """Test duplicate tool names propagate instead of being logged."""

        class CollidingServer(FakeServer):
            def add_client(self, client: Client) -> None:
                raise DuplicateToolError("builds_get_build")

        registry = ClientRegistry()
        registry.register(BuildsClient)

        with pytest.raises(DuplicateToolError):
            await registry.configure(CollidingServer(), resolver_from({"BUILDS_API_KEY": "k"}))

    async def test_failed_registration_leaves_no_tools(self) -> None:
        """Test a client failing after its tools registered contributes nothing."""

        class BrokenResourcesClient(BuildsClient):
            def register_resources(self, register_resource) -> None:
                msg = "resource listing failed"
                raise RuntimeError(msg)

        registry = ClientRegistry()
        registry.register(BrokenResourcesClient)
        server = BridgeMCPServer(Config(), reporter=RecordingReporter())

        count = await registry.configure(server, resolver_from({"BUILDS_API_KEY": "k"}))

        assert count == 0
        assert server.tool_names() == []
        assert server.clients == []
        assert registry.configured_clients() == []

    async def test_client_can_register_after_failed_one(self) -> None:
        """Test a working client with the same tool names registers after a failed one."""

        class BrokenResourcesClient(BuildsClient):
            def register_resources(self, register_resource) -> None:
                msg = "resource listing failed"
                raise RuntimeError(msg)

        registry = ClientRegistry()
        registry.register(BrokenResourcesClient)
        registry.register(BuildsClient)
        server = BridgeMCPServer(Config(), reporter=RecordingReporter())

        count = await registry.configure(server, resolver_from({"BUILDS_API_KEY": "k"}))

        assert count == 1
        assert server.tool_names() == ["builds_get_build", "builds_list_builds"]

    async def test_configure_from_env(self) -> None:
        """Test the environment strategy reads PREFIX_KEY variables."""
        registry = ClientRegistry()
        registry.register(IssuesClient)
        server = FakeServer()

        count = await registry.configure_from_env(
            server, {"ISSUE_TRACKER_AUTH_TOKEN": "tok", "ISSUE_TRACKER_PROJECT_ID": "p1"}
        )

        assert count == 1
        assert server.clients[0].config == {"auth_token": "tok", "project_id": "p1"}


class TestEnabledClients:
    """Test filtering by the enabled clients setting."""

    async def test_only_enabled_clients_configured(self) -> None:
        """Test clients not listed are ignored, case-insensitively."""
        registry = ClientRegistry(ClientsConfig(enabled_clients=("BUILDS",)))
        registry.register(IssuesClient)
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure(
            server,
            resolver_from({"ISSUE_TRACKER_AUTH_TOKEN": "t", "BUILDS_API_KEY": "k"}),
        )

        assert count == 1
        assert [e.name for e in registry.get_all()] == ["Builds"]


class TestAllowedEndpoints:
    """Test URL settings against the allowed endpoints list."""

    def test_exact_match(self) -> None:
        """Test exact URLs match only themselves."""
        allowed = ("https://api.example.com",)

        assert matches_allowed_endpoint("https://api.example.com", allowed) is True
        assert matches_allowed_endpoint("https://api.example.com/v2", allowed) is False

    def test_regex_match(self) -> None:
        """Test /regex/ patterns are searched in the URL."""
        allowed = (r"/^https:\/\/[a-z]+\.example\.com$/",)

        assert matches_allowed_endpoint("https://eu.example.com", allowed) is True
        assert matches_allowed_endpoint("https://evil.com", allowed) is False

    def test_invalid_regex_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test an invalid pattern is logged and does not match."""
        assert matches_allowed_endpoint("https://x.com", ("/[unclosed/",)) is False
        assert "Invalid regex pattern in MCP_ALLOWED_ENDPOINTS" in caplog.text

    async def test_disallowed_endpoint_skips_client(self) -> None:
        """Test a client with a disallowed URL is not configured."""
        registry = ClientRegistry(ClientsConfig(allowed_endpoints=("https://builds.example.com",)))
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure(
            server,
            resolver_from({"BUILDS_API_KEY": "k", "BUILDS_ENDPOINT": "https://evil.com"}),
        )

        assert count == 0
        assert server.clients == []

    async def test_allowed_endpoint_configures_client(self) -> None:
        """Test a client with an allowed URL is configured."""
        registry = ClientRegistry(ClientsConfig(allowed_endpoints=("https://builds.example.com",)))
        registry.register(BuildsClient)

        count = await registry.configure(
            FakeServer(),
            resolver_from({"BUILDS_API_KEY": "k", "BUILDS_ENDPOINT": "https://builds.example.com"}),
        )

        assert count == 1


class TestHeaders:
    """Test the header configuration strategy."""

    async def test_configure_from_headers(self) -> None:
        """Test header-capable clients are configured case-insensitively."""
        registry = ClientRegistry()
        registry.register(IssuesClient)
        registry.register(BuildsClient)
        server = FakeServer()

        count = await registry.configure_from_headers(
            server, {"x-issue-tracker-auth-token": ["tok"], "X-Builds-Api-Key": "ignored"}
        )

        assert count == 1
        assert server.clients[0].name == "Issues"
        assert server.clients[0].config == {"auth_token": "tok"}

    async def test_missing_required_header(self) -> None:
        """Test a client without its required header is skipped."""
        registry = ClientRegistry()
        registry.register(IssuesClient)

        assert await registry.configure_from_headers(FakeServer(), {}) == 0

    def test_http_auth_headers(self) -> None:
        """Test header names are collected and sorted."""
        registry = ClientRegistry()
        registry.register(IssuesClient)
        registry.register(BuildsClient)

        assert registry.get_http_auth_headers() == [
            "X-Builds-Api-Key",
            "X-Builds-Endpoint",
            "X-Issue-Tracker-Auth-Token",
            "X-Issue-Tracker-Project-Id",
        ]

    def test_http_auth_headers_help(self) -> None:
        """Test help lines only cover header-capable clients."""
        registry = ClientRegistry()
        registry.register(IssuesClient)
        registry.register(BuildsClient)

        assert registry.get_http_auth_headers_help() == [
            "\n  Issues:",
            "    - X-Issue-Tracker-Auth-Token (required): Personal access token",
            "    - X-Issue-Tracker-Project-Id (optional): Default project",
        ]


class TestRegistryState:
    """Test registry bookkeeping."""

    def test_required_env_vars(self) -> None:
        """Test required variables are listed for startup messages."""
        registry = ClientRegistry()
        registry.register(BuildsClient)
        registry.register(IssuesClient)

        assert registry.get_required_env_vars() == ["BUILDS_API_KEY", "ISSUE_TRACKER_AUTH_TOKEN"]

    def test_clear(self) -> None:
        """Test clear drops all entries."""
        registry = ClientRegistry()
        registry.register(BuildsClient)

        registry.clear()

        assert registry.get_all() == []
