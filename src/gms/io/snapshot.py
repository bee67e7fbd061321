"""
JSONL snapshot export/import utilities for GMS.

Format: a leading meta record, then one goal per line sorted by id.

    {"type": "meta", "schema_version": "1"}
    {"type": "goal", "goal": {...camelCase goal...}}
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from ..core.models import MAX_PAGE_LIMIT, Goal
from ..core.repository import GoalRepository

SNAPSHOT_SCHEMA_VERSION = "1"


async def _all_goals(repository: GoalRepository) -> List[Goal]:
    goals: List[Goal] = []
    offset = 0
    while True:
        page = await repository.list_with_total(limit=MAX_PAGE_LIMIT, offset=offset)
        goals.extend(page.items)
        offset += len(page.items)
        if not page.items or offset >= page.total:
            return goals


async def export_snapshot(repository: GoalRepository, snapshot_path: Path) -> int:
    """
    Export every goal in the repository to a deterministic JSONL snapshot.

    Returns:
        Number of goals written
    """
    goals = sorted(await _all_goals(repository), key=lambda goal: goal.id)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)

    with snapshot_path.open("w", encoding="utf-8", newline="\n") as handle:
        meta = {"type": "meta", "schema_version": SNAPSHOT_SCHEMA_VERSION}
        handle.write(json.dumps(meta, sort_keys=True) + "\n")
        for goal in goals:
            payload = goal.model_dump(mode="json", by_alias=True)
            record = {"type": "goal", "goal": payload}
            handle.write(json.dumps(record, sort_keys=True) + "\n")

    return len(goals)


async def import_snapshot(repository: GoalRepository, snapshot_path: Path) -> int:
    """
    Import a JSONL snapshot into a repository, replacing goals with the same id.

    Returns:
        Number of goals imported

    Raises:
        FileNotFoundError: If the snapshot file does not exist
        ValueError: If snapshot records are invalid
    """
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Snapshot not found: {snapshot_path}")

    meta_record, goals = _parse_snapshot(snapshot_path)
    _validate_meta(meta_record)

    for goal in goals:
        await repository.upsert(goal)
    return len(goals)


def _parse_snapshot(snapshot_path: Path) -> Tuple[Dict[str, Any], List[Goal]]:
    meta_record: Dict[str, Any] | None = None
    goals: List[Goal] = []
    seen_ids = set()

    with snapshot_path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                record = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON on line {line_number}: {exc}") from exc

            if not isinstance(record, dict):
                raise ValueError(
                    f"Snapshot record on line {line_number} must be an object"
                )

            record_type = record.get("type")
            if record_type == "meta":
                if meta_record is not None or goals:
                    raise ValueError(
                        f"Meta record on line {line_number} must be the first record"
                    )
                meta_record = record
            elif record_type == "goal":
                if meta_record is None:
                    raise ValueError("Snapshot is missing a leading meta record")
                try:
                    goal = Goal.model_validate(record.get("goal"))
                except ValidationError as exc:
                    raise ValueError(
                        f"Invalid goal on line {line_number}: {exc}"
                    ) from exc
                if goal.id in seen_ids:
                    raise ValueError(
                        f"Duplicate goal id '{goal.id}' on line {line_number}"
                    )
                seen_ids.add(goal.id)
                goals.append(goal)
            else:
                raise ValueError(
                    f"Unknown record type {record_type!r} on line {line_number}"
                )

    if meta_record is None:
        raise ValueError("Snapshot is missing a leading meta record")
    return meta_record, goals


def _validate_meta(meta_record: Dict[str, Any]) -> None:
    version = meta_record.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise ValueError(
            f"Unsupported snapshot schema_version {version!r}, "
            f"expected {SNAPSHOT_SCHEMA_VERSION!r}"
        )
