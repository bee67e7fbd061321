"""
Data models for GMS.

Goals and tasks use camelCase on the wire (``subTasks``, ``parentId``) and
snake_case in Python. Models accept either form and serialize by alias.
"""

from enum import StrEnum
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

RESPONSE_CONTRACT_VERSION = "1.0"

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200

CAMEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "from_attributes": True,
}


class TaskStatus(StrEnum):
    """Valid task and goal status values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PLANNED = "planned"


class Priority(StrEnum):
    """Priority for scheduling and ordering."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TaskType(StrEnum):
    """Task type for research-then-action planning."""

    RESEARCH = "research"
    ACTION = "action"
    VALIDATION = "validation"
    DECISION = "decision"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Complexity(StrEnum):
    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


def _lower_enum_value(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().lower()
    return v


def _as_int(v: Any) -> int:
    try:
        return int(v)
    except (TypeError, OverflowError) as exc:
        raise ValueError(f"must be an integer, got: {v!r}") from exc


class Task(BaseModel):
    """A node in a goal's task tree. Sub-tasks nest recursively."""

    id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: Priority = Field(default=Priority.MEDIUM)
    dependencies: List[str] = Field(
        default_factory=list, description="Ids of tasks that must finish first"
    )
    parent_id: Optional[str] = None
    sub_tasks: List["Task"] = Field(default_factory=list)
    result: Optional[str] = None
    error: Optional[str] = None
    capability_id: Optional[str] = None
    completed_at: Optional[str] = Field(
        None, description="ISO datetime when this task was marked as completed"
    )
    type: Optional[TaskType] = Field(
        None, description="Task type: research, action, validation, or decision"
    )
    acceptance_criteria: Optional[str] = Field(
        None, description="How to know this task is done"
    )
    expected_output: Optional[str] = Field(
        None, description="What this task produces for downstream tasks"
    )
    risk_level: Optional[RiskLevel] = None
    estimated_complexity: Optional[Complexity] = None
    rationale: Optional[str] = Field(
        None, description="Why this task exists in the plan"
    )
    custom_fields: Optional[Dict[str, Any]] = None
    expected_inputs: Optional[List[str]] = None
    provided_outputs: Optional[List[str]] = None

    model_config = CAMEL_CONFIG

    @model_serializer(mode="wrap")
    def drop_unset_optionals(
        self, handler: SerializerFunctionWrapHandler
    ) -> Dict[str, Any]:
        """Omit optional fields that carry no value."""
        return {key: value for key, value in handler(self).items() if value is not None}

    @field_validator(
        "status",
        "priority",
        "type",
        "risk_level",
        "estimated_complexity",
        mode="before",
    )
    @classmethod
    def normalize_enum(cls, v: Any) -> Any:
        """Accept enum values regardless of case."""
        return _lower_enum_value(v)


class GoalRef(BaseModel):
    """Reference to a parent goal."""

    id: str = Field(..., min_length=1)


class Goal(BaseModel):
    """Top-level unit of work owning a tree of tasks."""

    id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: Priority = Field(default=Priority.MEDIUM)
    tasks: List[Task] = Field(default_factory=list)
    parent_goal: Optional[GoalRef] = None
    tenant_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    version: int = Field(
        default=1,
        ge=1,
        alias="_version",
        description="Optimistic-lock version counter",
    )

    model_config = CAMEL_CONFIG

    @model_serializer(mode="wrap")
    def drop_unset_optionals(
        self, handler: SerializerFunctionWrapHandler
    ) -> Dict[str, Any]:
        """Omit optional fields that carry no value."""
        return {key: value for key, value in handler(self).items() if value is not None}

    @field_validator("status", "priority", mode="before")
    @classmethod
    def normalize_enum(cls, v: Any) -> Any:
        """Accept enum values regardless of case."""
        return _lower_enum_value(v)


# Request models for tool arguments
class _IdRequest(BaseModel):
    @field_validator("goal_id", "task_id", mode="after", check_fields=False)
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Ensure identifiers are not blank."""
        if not v.strip():
            raise ValueError("Identifier cannot be empty")
        return v.strip()


class GetGoalRequest(_IdRequest):
    """Request model for gms_get_goal."""

    goal_id: str = Field(..., min_length=1, description="Id of the goal to retrieve")


class GetTaskRequest(_IdRequest):
    """Request model for gms_get_task."""

    goal_id: str = Field(..., min_length=1, description="Id of the parent goal")
    task_id: str = Field(..., min_length=1, description="Id of the task to retrieve")


class GetProgressRequest(_IdRequest):
    """Request model for gms_get_progress."""

    goal_id: str = Field(..., min_length=1)


class ValidateGoalTreeRequest(_IdRequest):
    """Request model for gms_validate_goal_tree."""

    goal_id: str = Field(..., min_length=1)


class _PageRequest(_IdRequest):
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, description="Page size")
    offset: int = Field(default=0, description="Number of items to skip")

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Any) -> int:
        """Clamp page size into 1..MAX_PAGE_LIMIT; None means the default."""
        if v is None:
            return DEFAULT_PAGE_LIMIT
        return max(1, min(MAX_PAGE_LIMIT, _as_int(v)))

    @field_validator("offset", mode="before")
    @classmethod
    def clamp_offset(cls, v: Any) -> int:
        """Negative offsets are treated as zero."""
        if v is None:
            return 0
        return max(0, _as_int(v))


class _TaskFilterRequest(_PageRequest):
    goal_id: str = Field(..., min_length=1, description="Id of the parent goal")
    status: Optional[List[TaskStatus]] = Field(None, description="Status filter")
    priority: Optional[List[Priority]] = Field(None, description="Priority filter")
    type: Optional[List[TaskType]] = Field(None, description="Task type filter")

    @field_validator("status", "priority", "type", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> Any:
        """Accept a single value or a comma-separated string as a list."""
        if v is None or v == "null":
            return None
        if isinstance(v, str):
            return [part.strip().lower() for part in v.split(",") if part.strip()]
        return [_lower_enum_value(item) for item in v]


class ListTasksRequest(_TaskFilterRequest):
    """Request model for gms_list_tasks."""

    flat: bool = Field(default=True, description="Return a flat list instead of a tree")
    include_sub_tasks: bool = Field(
        default=True, description="Include nested sub-tasks in flat mode"
    )

    @field_validator("flat", "include_sub_tasks", mode="before")
    @classmethod
    def default_bool(cls, v: Any) -> Any:
        """None falls back to the default of True."""
        return True if v is None else v


class SearchTasksRequest(_TaskFilterRequest):
    """Request model for gms_search_tasks."""

    query: Optional[str] = Field(None, description="Case-insensitive text query")
    has_dependencies: Optional[bool] = Field(
        None, description="Only tasks with (True) or without (False) dependencies"
    )


class ListGoalsRequest(_PageRequest):
    """Request model for gms_list_goals."""

    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    tenant_id: Optional[str] = None
    query: Optional[str] = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def normalize_enum(cls, v: Any) -> Any:
        """Accept enum values regardless of case."""
        return _lower_enum_value(v)


# Response envelopes
class Envelope(BaseModel):
    """Base response envelope stamped with the contract version."""

    version: str = Field(default=RESPONSE_CONTRACT_VERSION)

    model_config = CAMEL_CONFIG


class GoalEnvelope(Envelope):
    goal: Goal


class TaskEnvelope(Envelope):
    goal_id: str
    task: Task
    parent_id: Optional[str] = Field(..., description="None for root tasks")
    dependencies: List[str]
    sub_tasks_count: int


class TaskPageEnvelope(Envelope):
    goal_id: str
    total: int
    limit: int
    offset: int
    items: List[Task]


class GoalSummary(BaseModel):
    """Compact goal view returned by gms_list_goals."""

    id: str
    description: str
    status: TaskStatus
    priority: Priority
    tenant_id: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = CAMEL_CONFIG

    @model_serializer(mode="wrap")
    def drop_unset_optionals(
        self, handler: SerializerFunctionWrapHandler
    ) -> Dict[str, Any]:
        """Omit optional fields that carry no value."""
        return {key: value for key, value in handler(self).items() if value is not None}

    @classmethod
    def from_goal(cls, goal: Goal) -> "GoalSummary":
        """Create a GoalSummary from a full goal."""
        return cls(
            id=goal.id,
            description=goal.description,
            status=goal.status,
            priority=goal.priority,
            tenant_id=goal.tenant_id,
            updated_at=goal.updated_at,
        )


class GoalPageEnvelope(Envelope):
    total: int
    limit: int
    offset: int
    items: List[GoalSummary]


class ProgressEnvelope(Envelope):
    goal_id: str
    status: TaskStatus
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    in_progress_tasks: int
    pending_tasks: int
    cancelled_tasks: int
    planned_tasks: int
    completion_rate: float
    task_type_counts: Dict[str, int]


class ValidationEnvelope(Envelope):
    goal_id: str
    valid: bool
    issues: List[str]
    task_count: int
