"""
Shared helpers for GMS tool handlers.
"""

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import GoalNotFoundError, InvalidInputError
from ..core.models import Envelope, Goal
from ..core.repository import GoalRepository

RequestT = TypeVar("RequestT", bound=BaseModel)


async def get_goal_or_throw(repository: GoalRepository, goal_id: str) -> Goal:
    """
    Fetch a goal by id.

    Raises:
        GoalNotFoundError: If the repository has no goal with that id
    """
    goal = await repository.get_by_id(goal_id)
    if goal is None:
        raise GoalNotFoundError(goal_id)
    return goal


def wrap_tool_response(envelope: Envelope) -> str:
    """Serialize a response envelope to camelCase JSON."""
    return envelope.model_dump_json(by_alias=True)


def validate_request(model: Type[RequestT], **kwargs: Any) -> RequestT:
    """
    Build a request model from tool arguments.

    Raises:
        InvalidInputError: If the arguments fail validation
    """
    try:
        return model(**kwargs)
    except ValidationError as exc:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidInputError(issues) from exc
