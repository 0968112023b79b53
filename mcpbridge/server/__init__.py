"""MCP Server Core.

This package contains the host integration:
- mcp_server.py: BridgeMCPServer and the CLI entry point
- config.py: Server configuration
"""
