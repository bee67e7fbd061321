"""
MCP server for GMS.
"""

from .server import GmsMcpServerOptions, create_gms_mcp_server, start_mcp_server

__all__ = ["GmsMcpServerOptions", "create_gms_mcp_server", "start_mcp_server"]
