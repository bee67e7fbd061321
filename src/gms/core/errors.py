"""
Domain errors for GMS.

Every error carries a symbolic code that is also embedded in its message as
``[CODE]`` so callers that only see the text can still classify it.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Canonical error codes for structured error identification."""

    GOAL_NOT_FOUND = "GMS_GOAL_NOT_FOUND"
    TASK_NOT_FOUND = "GMS_TASK_NOT_FOUND"
    INVALID_INPUT = "GMS_INVALID_INPUT"
    INVARIANT_VIOLATION = "GMS_INVARIANT_VIOLATION"
    CONCURRENT_MODIFICATION = "GMS_CONCURRENT_MODIFICATION"


class GmsError(Exception):
    """Base class for coded GMS errors."""

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"[{self.code}] {detail}")


class GoalNotFoundError(GmsError):
    code = ErrorCode.GOAL_NOT_FOUND

    def __init__(self, goal_id: str) -> None:
        self.goal_id = goal_id
        super().__init__(f"Goal not found: {goal_id}")


class TaskNotFoundError(GmsError):
    code = ErrorCode.TASK_NOT_FOUND

    def __init__(self, goal_id: str, task_id: str) -> None:
        self.goal_id = goal_id
        self.task_id = task_id
        super().__init__(f"Task not found in goal {goal_id}: {task_id}")


class InvalidInputError(GmsError):
    code = ErrorCode.INVALID_INPUT


class DependencyCycleError(GmsError):
    code = ErrorCode.INVARIANT_VIOLATION

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Dependency cycle detected involving task {task_id}")


class ConcurrentModificationError(GmsError):
    """Raised when a goal's stored version differs from the expected one."""

    code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, goal_id: str, expected_version: int) -> None:
        self.goal_id = goal_id
        self.expected_version = expected_version
        super().__init__(
            f"Goal {goal_id} was modified concurrently "
            f"(expected version {expected_version}). Re-read and retry."
        )
