"""
Pytest configuration and fixtures for gms tests.
"""

from pathlib import Path
from typing import Iterator

import pytest

from gms.core.config import reset_settings
from gms.core.database import SqliteGoalRepository, initialize_database
from gms.core.models import Goal
from gms.core.repository import InMemoryGoalRepository
from gms.mcp.handlers import GmsToolDeps

ENV_VARS = ("GMS_BACKEND", "GMS_DB_PATH", "GMS_SNAPSHOT_PATH", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch) -> Iterator[None]:
    """
    Run each test against a clean environment.

    Clears GMS variables and the cached settings so one test's
    configuration never leaks into the next.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def make_goal_payload() -> dict:
    """
    Goal g1 in wire (camelCase) form.

    Tree:
        t1 (completed, research)
          t2 (pending, action)
        t3 (in_progress, depends on t1)
    """
    return {
        "id": "g1",
        "description": "Ship the onboarding flow",
        "status": "in_progress",
        "priority": "high",
        "tenantId": "acme",
        "tasks": [
            {
                "id": "t1",
                "description": "Research signup funnels",
                "status": "completed",
                "priority": "high",
                "type": "research",
                "result": "Three-step funnel converts best",
                "subTasks": [
                    {
                        "id": "t2",
                        "description": "Draft signup copy",
                        "status": "pending",
                        "priority": "medium",
                        "type": "action",
                        "parentId": "t1",
                    }
                ],
            },
            {
                "id": "t3",
                "description": "Build the signup form",
                "status": "in_progress",
                "priority": "critical",
                "dependencies": ["t1"],
            },
        ],
    }


@pytest.fixture
def sample_goal() -> Goal:
    """The g1 sample goal as a model."""
    return Goal.model_validate(make_goal_payload())


@pytest.fixture
def memory_repository(sample_goal: Goal) -> InMemoryGoalRepository:
    """In-memory repository preloaded with the sample goal."""
    return InMemoryGoalRepository([sample_goal])


@pytest.fixture
def deps(memory_repository: InMemoryGoalRepository) -> GmsToolDeps:
    """Tool dependencies backed by the in-memory repository."""
    return GmsToolDeps(goal_repository=memory_repository)


@pytest.fixture
def test_db(tmp_path: Path) -> Path:
    """
    Create a temporary database with the goal schema applied.

    Returns:
        Path: Path to the initialized database file
    """
    db_path = tmp_path / "gms.db"
    initialize_database(db_path)
    return db_path


@pytest.fixture
def sqlite_repository(test_db: Path) -> SqliteGoalRepository:
    """SQLite repository over the temporary test database."""
    return SqliteGoalRepository(test_db)
