"""
mcpbridge: expose backend REST API clients as MCP tools.

Public API modules:
- mcpbridge.framework.tools: Tool descriptors, schema building and execution
- mcpbridge.framework.clients: Client base class and client registry
- mcpbridge.framework.cache: Shared TTL cache for tool handlers
- mcpbridge.server: MCP server, configuration and CLI entry point
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mcpbridge")
except PackageNotFoundError:
    # Development checkout, not installed via pip
    __version__ = "0.1.0"

__all__ = ["__version__"]
