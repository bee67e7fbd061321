"""
Storage-agnostic goal repository contract and an in-memory implementation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from .errors import ConcurrentModificationError
from .models import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, Goal, Priority, TaskStatus


@dataclass
class GoalSearchFilter:
    """Metadata filter for listing and searching goals."""

    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    tenant_id: Optional[str] = None
    goal_id: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.priority is None
            and self.tenant_id is None
            and self.goal_id is None
        )

    def matches(self, goal: Goal) -> bool:
        """True if the goal satisfies every set field."""
        if self.status is not None and goal.status != self.status:
            return False
        if self.priority is not None and goal.priority != self.priority:
            return False
        if self.tenant_id is not None and goal.tenant_id != self.tenant_id:
            return False
        if self.goal_id is not None and goal.id != self.goal_id:
            return False
        return True


@dataclass
class GoalListResult:
    """A page of goals with the total count of matching goals."""

    items: List[Goal] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_PAGE_LIMIT
    offset: int = 0


@runtime_checkable
class GoalRepository(Protocol):
    """
    Goal persistence contract.

    Implementations own storage, indexing and concurrency. Tools only read
    through ``get_by_id``, ``list_with_total`` and ``search``.
    """

    async def bootstrap(self) -> None:
        """Create collections, tables or indexes. Called once at startup."""
        ...

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        """Return the goal with the given id, or None if absent."""
        ...

    async def upsert(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        """
        Insert or replace a goal.

        When ``expected_version`` is given the stored version must match,
        otherwise ConcurrentModificationError is raised.
        """
        ...

    async def list_with_total(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        filter: Optional[GoalSearchFilter] = None,
    ) -> GoalListResult:
        """List goals with deterministic ordering and a total count."""
        ...

    async def search(
        self,
        query: str,
        k: int = 10,
        filter: Optional[GoalSearchFilter] = None,
    ) -> List[Tuple[Goal, float]]:
        """Rank goals against a text query. Returns (goal, score) pairs."""
        ...

    async def delete_by_ids(self, ids: Sequence[str]) -> None:
        """Delete goals by id. Unknown ids are ignored."""
        ...


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def next_version(
    goal_id: str, stored_version: Optional[int], expected_version: Optional[int]
) -> int:
    """
    Compute the version to store for a write.

    Raises:
        ConcurrentModificationError: If ``expected_version`` does not match
    """
    if expected_version is not None and stored_version != expected_version:
        raise ConcurrentModificationError(goal_id, expected_version)
    return 1 if stored_version is None else stored_version + 1


def text_score(description: str, query: str) -> float:
    """
    Naive relevance score in [0, 1] for a substring query.

    Returns 0.0 when the query does not occur in the description.
    """
    needle = query.strip().lower()
    haystack = description.lower()
    if not needle or needle not in haystack:
        return 0.0
    return round(len(needle) / len(haystack), 4)


def clamp_page(limit: int, offset: int) -> Tuple[int, int]:
    return max(1, min(MAX_PAGE_LIMIT, limit)), max(0, offset)


class InMemoryGoalRepository:
    """Dict-backed GoalRepository. Stored goals are copied in and out."""

    def __init__(self, goals: Optional[Sequence[Goal]] = None) -> None:
        self._goals: Dict[str, Goal] = {}
        for goal in goals or []:
            self._goals[goal.id] = goal.model_copy(deep=True)

    async def bootstrap(self) -> None:
        return None

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        goal = self._goals.get(goal_id)
        return goal.model_copy(deep=True) if goal else None

    async def upsert(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        stored = self._goals.get(goal.id)
        version = next_version(
            goal.id, stored.version if stored else None, expected_version
        )
        now = utc_now()
        saved = goal.model_copy(
            deep=True,
            update={
                "version": version,
                "created_at": goal.created_at
                or (stored.created_at if stored else None)
                or now,
                "updated_at": now,
            },
        )
        self._goals[goal.id] = saved
        return saved.model_copy(deep=True)

    def _filtered(self, filter: Optional[GoalSearchFilter]) -> List[Goal]:
        goals = [g for g in self._goals.values() if filter is None or filter.matches(g)]
        # Newest first, id as tie-breaker
        goals.sort(key=lambda g: g.id)
        goals.sort(key=lambda g: g.updated_at or "", reverse=True)
        return goals

    async def list_with_total(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        filter: Optional[GoalSearchFilter] = None,
    ) -> GoalListResult:
        limit, offset = clamp_page(limit, offset)
        goals = self._filtered(filter)
        page = goals[offset : offset + limit]
        return GoalListResult(
            items=[g.model_copy(deep=True) for g in page],
            total=len(goals),
            limit=limit,
            offset=offset,
        )

    async def search(
        self,
        query: str,
        k: int = 10,
        filter: Optional[GoalSearchFilter] = None,
    ) -> List[Tuple[Goal, float]]:
        scored = [
            (goal, text_score(goal.description, query))
            for goal in self._filtered(filter)
        ]
        hits = [(g.model_copy(deep=True), s) for g, s in scored if s > 0]
        hits.sort(key=lambda pair: pair[1], reverse=True)
        return hits[: max(1, k)]

    async def delete_by_ids(self, ids: Sequence[str]) -> None:
        for goal_id in ids:
            self._goals.pop(goal_id, None)
