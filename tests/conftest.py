"""Shared fixtures for the mcpbridge test suite."""

from pathlib import Path
from typing import Any

import pytest
from mcp.types import CallToolResult, TextContent

from mcpbridge.framework.cache import CacheService
from mcpbridge.framework.clients import Client, ConfigField
from mcpbridge.framework.tools.tool_interface import Parameter, ToolDescriptor
from mcpbridge.server.config import CacheConfig, Config, reset_config

ISOLATED_ENV_VARS = (
    "CACHE_ENABLED",
    "CACHE_TTL",
    "MCP_CLIENTS",
    "MCP_ALLOWED_ENDPOINTS",
    "MCP_LOG_LEVEL",
    "MCP_SERVER_NAME",
    "MCP_STRUCTURED_LOGGING",
    "MCP_ERROR_REPORTING",
    "BUILDS_API_KEY",
    "BUILDS_ENDPOINT",
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep host environment and stray config files out of every test."""
    for name in ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()


class RecordingReporter:
    """ErrorReporter that remembers every notification."""

    def __init__(self) -> None:
        self.calls: list[tuple[BaseException, dict[str, Any]]] = []

    def notify(self, error: BaseException, metadata: dict[str, Any]) -> None:
        self.calls.append((error, metadata))


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def cache() -> CacheService:
    return CacheService(CacheConfig())


@pytest.fixture
def config() -> Config:
    return Config()


def make_descriptor(**overrides: Any) -> ToolDescriptor:
    """Descriptor with sensible defaults for tests."""
    values: dict[str, Any] = {
        "title": "Get Build",
        "summary": "Fetch a single build",
        "parameters": [
            Parameter(name="build_id", required=True, description="Build identifier"),
        ],
    }
    values.update(overrides)
    return ToolDescriptor(**values)


def text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)])


class BuildsClient(Client):
    """Minimal client exposing two tools."""

    name = "Builds"
    prefix = "builds"
    config_prefix = "builds"
    config_schema = {
        "api_key": ConfigField(description="API key for the builds service"),
        "endpoint": ConfigField(required=False, url=True, description="Custom API endpoint"),
    }

    def register_tools(self, register, get_input) -> None:
        async def get_build(args: dict[str, Any], context: Any) -> CallToolResult:
            return text_result(f"build {args['build_id']}")

        async def list_builds(args: dict[str, Any], context: Any) -> CallToolResult:
            return text_result("[]")

        register(make_descriptor(), get_build)
        register(make_descriptor(title="List Builds", summary="List builds", parameters=[]), list_builds)
