"""
GMS MCP Server

A Model Context Protocol server that exposes read-only tools for inspecting
goals and their task trees.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastmcp import FastMCP

from ..core.config import Backend, load_settings
from ..core.database import SqliteGoalRepository
from ..core.logging_setup import configure_logging
from ..core.paths import get_db_path
from ..core.repository import GoalRepository, InMemoryGoalRepository
from .handlers import GmsToolDeps
from .tools import register_all_tools

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = """\
GMS stores goals, each with a tree of tasks.
Use gms_list_goals to find a goal, gms_get_goal for its full task tree,
and gms_get_task for one task with its parent and dependencies.
Every tool returns a JSON envelope with a contract "version" field.
Errors carry a [GMS_*] code in the message.
"""


@dataclass
class GmsMcpServerOptions:
    """Options for building the MCP server."""

    name: str = "gms-mcp-server"
    version: str = "0.1.0"
    bootstrap: bool = True
    repository: Optional[GoalRepository] = None


def build_repository() -> GoalRepository:
    """Create the goal repository selected by GMS_BACKEND."""
    settings = load_settings()
    if settings.backend == Backend.MEMORY:
        return InMemoryGoalRepository()
    return SqliteGoalRepository(get_db_path())


async def create_gms_mcp_server(
    options: Optional[GmsMcpServerOptions] = None,
) -> FastMCP:
    """
    Build an MCP server with every GMS tool registered.

    When no repository is supplied one is built from the environment
    configuration. The repository is bootstrapped unless
    ``options.bootstrap`` is false.
    """
    options = options or GmsMcpServerOptions()
    repository = options.repository or build_repository()
    if options.bootstrap:
        await repository.bootstrap()

    mcp = FastMCP(
        options.name, instructions=SERVER_INSTRUCTIONS, version=options.version
    )
    register_all_tools(mcp, GmsToolDeps(goal_repository=repository))
    logger.debug("Registered GMS tools on %s %s", options.name, options.version)
    return mcp


async def start_mcp_server(
    options: Optional[GmsMcpServerOptions] = None,
    port: Optional[int] = None,
) -> None:
    """
    Build the server and serve it until the client disconnects.

    Runs over stdio by default, or SSE when ``port`` is given.
    """
    configure_logging()
    mcp = await create_gms_mcp_server(options)
    if port:
        logger.info("Starting MCP server with SSE transport on port %s", port)
        await mcp.run_async(transport="sse", port=port)
    else:
        logger.info("Starting MCP server with stdio transport")
        await mcp.run_async(transport="stdio")
