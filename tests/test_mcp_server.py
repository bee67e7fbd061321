"""
End-to-end tests for the MCP server through an in-memory fastmcp client.
"""

import asyncio
import json
from pathlib import Path

import pytest
from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError

from gms.core.database import SqliteGoalRepository
from gms.core.repository import InMemoryGoalRepository
from gms.mcp import GmsMcpServerOptions, create_gms_mcp_server
from gms.mcp.server import build_repository


@pytest.fixture
def server(memory_repository) -> FastMCP:
    options = GmsMcpServerOptions(repository=memory_repository)
    return asyncio.run(create_gms_mcp_server(options))


def call_tool(server: FastMCP, name: str, arguments: dict) -> dict:
    """Call a tool and decode its JSON text payload."""

    async def _call():
        async with Client(server) as client:
            return await client.call_tool(name, arguments)

    result = asyncio.run(_call())
    return json.loads(result.content[0].text)


def test_server_name(server: FastMCP):
    assert server.name == "gms-mcp-server"


def test_get_goal_over_mcp(server: FastMCP):
    payload = call_tool(server, "gms_get_goal", {"goalId": "g1"})

    assert payload["version"] == "1.0"
    assert payload["goal"]["id"] == "g1"
    assert payload["goal"]["tasks"][0]["subTasks"][0]["id"] == "t2"


def test_get_task_over_mcp(server: FastMCP):
    payload = call_tool(server, "gms_get_task", {"goalId": "g1", "taskId": "t2"})

    assert payload["goalId"] == "g1"
    assert payload["task"]["id"] == "t2"
    assert payload["parentId"] == "t1"
    assert payload["dependencies"] == []
    assert payload["subTasksCount"] == 0


def test_root_task_parent_is_null(server: FastMCP):
    payload = call_tool(server, "gms_get_task", {"goalId": "g1", "taskId": "t1"})

    assert payload["parentId"] is None
    assert payload["subTasksCount"] == 1


def test_unknown_task_is_a_tool_error(server: FastMCP):
    with pytest.raises(ToolError, match="GMS_TASK_NOT_FOUND"):
        call_tool(server, "gms_get_task", {"goalId": "g1", "taskId": "t404"})


def test_unknown_goal_is_a_tool_error(server: FastMCP):
    with pytest.raises(ToolError, match="GMS_GOAL_NOT_FOUND"):
        call_tool(server, "gms_get_goal", {"goalId": "g404"})


def test_blank_goal_id_is_invalid_input(server: FastMCP):
    with pytest.raises(ToolError, match="GMS_INVALID_INPUT"):
        call_tool(server, "gms_get_goal", {"goalId": "   "})


def test_list_tasks_over_mcp(server: FastMCP):
    payload = call_tool(
        server, "gms_list_tasks", {"goalId": "g1", "status": "pending,completed"}
    )

    assert [item["id"] for item in payload["items"]] == ["t1", "t2"]
    assert payload["total"] == 2


def test_progress_over_mcp(server: FastMCP):
    payload = call_tool(server, "gms_get_progress", {"goalId": "g1"})

    assert payload["totalTasks"] == 3
    assert payload["completedTasks"] == 1


def test_repeated_calls_return_identical_text(server: FastMCP):
    first = call_tool(server, "gms_get_goal", {"goalId": "g1"})
    second = call_tool(server, "gms_get_goal", {"goalId": "g1"})

    assert first == second


def test_bootstrap_creates_sqlite_store(tmp_path: Path):
    db_path = tmp_path / "store" / "gms.db"
    options = GmsMcpServerOptions(repository=SqliteGoalRepository(db_path))

    asyncio.run(create_gms_mcp_server(options))

    assert db_path.exists()


def test_bootstrap_can_be_skipped(tmp_path: Path):
    db_path = tmp_path / "gms.db"
    options = GmsMcpServerOptions(
        repository=SqliteGoalRepository(db_path), bootstrap=False
    )

    asyncio.run(create_gms_mcp_server(options))

    assert not db_path.exists()


class TestBuildRepository:
    """Repository selection from the environment."""

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("GMS_BACKEND", "memory")

        assert isinstance(build_repository(), InMemoryGoalRepository)

    def test_sqlite_backend_uses_db_path(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("GMS_DB_PATH", str(tmp_path / "env.db"))

        repository = build_repository()

        assert isinstance(repository, SqliteGoalRepository)
        assert repository.db_path == tmp_path / "env.db"
