#!/usr/bin/env python3
"""
GMS MCP Server
A Model Context Protocol server that provides read-only tools for inspecting
goals and task trees stored by GMS.
"""

import asyncio

from gms.mcp import start_mcp_server

if __name__ == "__main__":
    asyncio.run(start_mcp_server())
