"""
SQLite-backed goal repository for GMS.

Each goal is stored as one row: the full camelCase JSON payload plus the
columns used for filtering and ordering.
"""

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from .models import DEFAULT_PAGE_LIMIT, Goal
from .repository import (
    GoalListResult,
    GoalSearchFilter,
    clamp_page,
    next_version,
    text_score,
    utc_now,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    description TEXT NOT NULL,
    status TEXT NOT NULL,
    priority TEXT NOT NULL,
    tenant_id TEXT,
    payload TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1 CHECK (version >= 1),
    created_at TEXT,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_goals_status ON goals (status);
CREATE INDEX IF NOT EXISTS idx_goals_priority ON goals (priority);
CREATE INDEX IF NOT EXISTS idx_goals_tenant_id ON goals (tenant_id);
CREATE INDEX IF NOT EXISTS idx_goals_updated_at ON goals (updated_at);
"""


def initialize_database(db_path: Path) -> None:
    """
    Create the database file and apply the schema.

    Safe to call on an existing database.

    Raises:
        sqlite3.Error: If schema application fails
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()


def _where_clause(filter: Optional[GoalSearchFilter]) -> Tuple[str, List[str]]:
    if filter is None:
        return "", []
    conditions = []
    params: List[str] = []
    if filter.status is not None:
        conditions.append("status = ?")
        params.append(filter.status.value)
    if filter.priority is not None:
        conditions.append("priority = ?")
        params.append(filter.priority.value)
    if filter.tenant_id is not None:
        conditions.append("tenant_id = ?")
        params.append(filter.tenant_id)
    if filter.goal_id is not None:
        conditions.append("id = ?")
        params.append(filter.goal_id)
    if not conditions:
        return "", []
    return " WHERE " + " AND ".join(conditions), params


def _row_to_goal(row: sqlite3.Row) -> Goal:
    return Goal.model_validate_json(row["payload"])


class SqliteGoalRepository:
    """GoalRepository persisted in a single SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def get_db_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a connection to the SQLite database with proper cleanup."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    async def bootstrap(self) -> None:
        await asyncio.to_thread(initialize_database, self.db_path)
        logger.info("Goal store ready at %s", self.db_path)

    def _get_by_id(self, goal_id: str) -> Optional[Goal]:
        with self.get_db_connection() as conn:
            row = conn.execute(
                "SELECT payload FROM goals WHERE id = ?", (goal_id,)
            ).fetchone()
            return _row_to_goal(row) if row else None

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        return await asyncio.to_thread(self._get_by_id, goal_id)

    def _upsert(self, goal: Goal, expected_version: Optional[int]) -> Goal:
        with self.get_db_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT version, created_at FROM goals WHERE id = ?", (goal.id,)
                ).fetchone()
                version = next_version(
                    goal.id, row["version"] if row else None, expected_version
                )
                now = utc_now()
                saved = goal.model_copy(
                    deep=True,
                    update={
                        "version": version,
                        "created_at": goal.created_at
                        or (row["created_at"] if row else None)
                        or now,
                        "updated_at": now,
                    },
                )
                conn.execute(
                    """
                    INSERT INTO goals (
                        id,
                        description,
                        status,
                        priority,
                        tenant_id,
                        payload,
                        version,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        description = excluded.description,
                        status = excluded.status,
                        priority = excluded.priority,
                        tenant_id = excluded.tenant_id,
                        payload = excluded.payload,
                        version = excluded.version,
                        created_at = excluded.created_at,
                        updated_at = excluded.updated_at
                    """,
                    (
                        saved.id,
                        saved.description,
                        saved.status.value,
                        saved.priority.value,
                        saved.tenant_id,
                        saved.model_dump_json(by_alias=True),
                        saved.version,
                        saved.created_at,
                        saved.updated_at,
                    ),
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            return saved

    async def upsert(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        return await asyncio.to_thread(self._upsert, goal, expected_version)

    def _list_with_total(
        self, limit: int, offset: int, filter: Optional[GoalSearchFilter]
    ) -> GoalListResult:
        limit, offset = clamp_page(limit, offset)
        where, params = _where_clause(filter)
        with self.get_db_connection() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) AS n FROM goals{where}", params
            ).fetchone()["n"]
            rows = conn.execute(
                f"SELECT payload FROM goals{where} "
                "ORDER BY updated_at DESC, id ASC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
        return GoalListResult(
            items=[_row_to_goal(row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def list_with_total(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        filter: Optional[GoalSearchFilter] = None,
    ) -> GoalListResult:
        return await asyncio.to_thread(self._list_with_total, limit, offset, filter)

    def _search(
        self, query: str, k: int, filter: Optional[GoalSearchFilter]
    ) -> List[Tuple[Goal, float]]:
        needle = query.strip().lower()
        if not needle:
            return []
        where, params = _where_clause(filter)
        # SQLite lower() folds ASCII only, so matching happens in Python
        with self.get_db_connection() as conn:
            rows = conn.execute(
                "SELECT description, payload FROM goals"
                f"{where} ORDER BY updated_at DESC, id ASC",
                params,
            ).fetchall()
        hits = []
        for row in rows:
            score = text_score(row["description"], query)
            if score > 0:
                hits.append((_row_to_goal(row), score))
        hits.sort(key=lambda pair: pair[1], reverse=True)
        return hits[: max(1, k)]

    async def search(
        self,
        query: str,
        k: int = 10,
        filter: Optional[GoalSearchFilter] = None,
    ) -> List[Tuple[Goal, float]]:
        return await asyncio.to_thread(self._search, query, k, filter)

    def _delete_by_ids(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        with self.get_db_connection() as conn:
            conn.execute(f"DELETE FROM goals WHERE id IN ({placeholders})", list(ids))
            conn.commit()

    async def delete_by_ids(self, ids: Sequence[str]) -> None:
        await asyncio.to_thread(self._delete_by_ids, ids)
