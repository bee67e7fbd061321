"""
Tests for coded domain errors.
"""

from gms.core.errors import (
    ConcurrentModificationError,
    ErrorCode,
    GmsError,
    GoalNotFoundError,
    InvalidInputError,
    TaskNotFoundError,
)


def test_goal_not_found_message_embeds_code():
    error = GoalNotFoundError("g9")

    assert error.code == ErrorCode.GOAL_NOT_FOUND
    assert str(error) == "[GMS_GOAL_NOT_FOUND] Goal not found: g9"
    assert error.goal_id == "g9"


def test_task_not_found_names_goal_and_task():
    error = TaskNotFoundError("g1", "t9")

    assert str(error).startswith("[GMS_TASK_NOT_FOUND]")
    assert "g1" in str(error)
    assert "t9" in str(error)


def test_invalid_input_is_a_gms_error():
    error = InvalidInputError("goal_id: Field required")

    assert isinstance(error, GmsError)
    assert error.detail == "goal_id: Field required"
    assert str(error) == "[GMS_INVALID_INPUT] goal_id: Field required"


def test_concurrent_modification_reports_expected_version():
    error = ConcurrentModificationError("g1", 3)

    assert error.code == ErrorCode.CONCURRENT_MODIFICATION
    assert "expected version 3" in str(error)
