"""
Tests for goal repositories.

Every test runs against both the in-memory and the SQLite implementation.
"""

import asyncio
from pathlib import Path

import pytest

from gms.core.database import SqliteGoalRepository
from gms.core.errors import ConcurrentModificationError
from gms.core.models import Goal, Priority, TaskStatus
from gms.core.repository import (
    GoalRepository,
    GoalSearchFilter,
    InMemoryGoalRepository,
    next_version,
    text_score,
)


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, test_db: Path) -> GoalRepository:
    """An empty repository of each kind."""
    if request.param == "memory":
        return InMemoryGoalRepository()
    return SqliteGoalRepository(test_db)


def _goal(goal_id: str, description: str = "Plan things", **kwargs) -> Goal:
    return Goal(id=goal_id, description=description, **kwargs)


def test_repositories_satisfy_protocol(repository):
    assert isinstance(repository, GoalRepository)


def test_get_missing_goal_returns_none(repository):
    assert asyncio.run(repository.get_by_id("missing")) is None


def test_upsert_then_get(repository, sample_goal: Goal):
    saved = asyncio.run(repository.upsert(sample_goal))
    fetched = asyncio.run(repository.get_by_id("g1"))

    assert saved.version == 1
    assert saved.created_at is not None
    assert saved.updated_at is not None
    assert fetched == saved
    assert fetched.tasks[0].sub_tasks[0].id == "t2"


def test_upsert_increments_version(repository, sample_goal: Goal):
    first = asyncio.run(repository.upsert(sample_goal))
    second = asyncio.run(repository.upsert(first))

    assert second.version == 2
    assert second.created_at == first.created_at


def test_upsert_with_stale_version_fails(repository, sample_goal: Goal):
    asyncio.run(repository.upsert(sample_goal))

    with pytest.raises(ConcurrentModificationError):
        asyncio.run(repository.upsert(sample_goal, expected_version=5))


def test_upsert_with_matching_version_succeeds(repository, sample_goal: Goal):
    asyncio.run(repository.upsert(sample_goal))

    saved = asyncio.run(repository.upsert(sample_goal, expected_version=1))

    assert saved.version == 2


def test_returned_goals_are_copies(repository, sample_goal: Goal):
    """Mutating a fetched goal does not change what is stored."""
    asyncio.run(repository.upsert(sample_goal))
    fetched = asyncio.run(repository.get_by_id("g1"))
    fetched.tasks.clear()

    assert len(asyncio.run(repository.get_by_id("g1")).tasks) == 2


def test_list_with_total_pages_and_counts(repository):
    for goal_id in ("a", "b", "c"):
        asyncio.run(repository.upsert(_goal(goal_id)))

    page = asyncio.run(repository.list_with_total(limit=2, offset=0))
    rest = asyncio.run(repository.list_with_total(limit=2, offset=2))

    assert page.total == 3
    assert len(page.items) == 2
    assert len(rest.items) == 1
    seen = {goal.id for goal in page.items + rest.items}
    assert seen == {"a", "b", "c"}


def test_list_is_newest_first_and_deterministic(repository):
    for goal_id in ("a", "b", "c"):
        asyncio.run(repository.upsert(_goal(goal_id)))

    first = asyncio.run(repository.list_with_total())
    second = asyncio.run(repository.list_with_total())

    stamps = [goal.updated_at for goal in first.items]
    assert stamps == sorted(stamps, reverse=True)
    assert [g.id for g in first.items] == [g.id for g in second.items]


def test_list_filters_by_metadata(repository):
    asyncio.run(repository.upsert(_goal("a", status="completed", tenant_id="t1")))
    asyncio.run(repository.upsert(_goal("b", priority="critical", tenant_id="t1")))
    asyncio.run(repository.upsert(_goal("c", tenant_id="t2")))

    completed = asyncio.run(
        repository.list_with_total(
            filter=GoalSearchFilter(status=TaskStatus.COMPLETED)
        )
    )
    tenant = asyncio.run(
        repository.list_with_total(filter=GoalSearchFilter(tenant_id="t1"))
    )
    critical = asyncio.run(
        repository.list_with_total(
            filter=GoalSearchFilter(priority=Priority.CRITICAL, tenant_id="t1")
        )
    )

    assert [g.id for g in completed.items] == ["a"]
    assert tenant.total == 2
    assert [g.id for g in critical.items] == ["b"]


def test_search_ranks_closer_matches_first(repository):
    asyncio.run(repository.upsert(_goal("long", "Migrate the billing database")))
    asyncio.run(repository.upsert(_goal("short", "Billing")))
    asyncio.run(repository.upsert(_goal("other", "Hire a designer")))

    hits = asyncio.run(repository.search("billing", k=10))

    assert [goal.id for goal, _ in hits] == ["short", "long"]
    assert hits[0][1] == 1.0


def test_search_respects_k_and_filter(repository):
    asyncio.run(repository.upsert(_goal("a", "Write docs", tenant_id="x")))
    asyncio.run(repository.upsert(_goal("b", "Write tests", tenant_id="y")))

    only_one = asyncio.run(repository.search("write", k=1))
    filtered = asyncio.run(
        repository.search("write", filter=GoalSearchFilter(tenant_id="y"))
    )

    assert len(only_one) == 1
    assert [goal.id for goal, _ in filtered] == ["b"]


def test_search_folds_non_ascii_case(repository):
    asyncio.run(repository.upsert(_goal("g1", "Éducation numérique")))
    asyncio.run(repository.upsert(_goal("g2", "Plan the offsite")))

    hits = asyncio.run(repository.search("éducation"))

    assert [goal.id for goal, _ in hits] == ["g1"]


def test_blank_search_returns_nothing(repository):
    asyncio.run(repository.upsert(_goal("a")))

    assert asyncio.run(repository.search("   ")) == []


def test_delete_by_ids(repository):
    for goal_id in ("a", "b"):
        asyncio.run(repository.upsert(_goal(goal_id)))

    asyncio.run(repository.delete_by_ids(["a", "unknown"]))

    assert asyncio.run(repository.get_by_id("a")) is None
    assert asyncio.run(repository.get_by_id("b")) is not None


class TestHelpers:
    """Test repository helper functions."""

    def test_next_version_for_new_goal(self):
        assert next_version("g", None, None) == 1

    def test_next_version_checks_expected(self):
        with pytest.raises(ConcurrentModificationError):
            next_version("g", 2, 1)

    def test_text_score(self):
        assert text_score("Billing", "bill") == round(4 / 7, 4)
        assert text_score("Billing", "payroll") == 0.0
        assert text_score("Billing", "") == 0.0


def test_in_memory_preload_is_visible(memory_repository):
    goal = asyncio.run(memory_repository.get_by_id("g1"))

    assert goal is not None
    assert goal.description == "Ship the onboarding flow"


def test_sqlite_bootstrap_creates_schema(tmp_path: Path):
    db_path = tmp_path / "nested" / "gms.db"
    repository = SqliteGoalRepository(db_path)

    asyncio.run(repository.bootstrap())

    assert db_path.exists()
    assert asyncio.run(repository.list_with_total()).total == 0
