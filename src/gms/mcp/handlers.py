"""
Tool handlers for GMS.

Handlers are protocol-free: they take validated requests, read from the goal
repository and return typed envelopes. Errors propagate to the caller.
"""

from dataclasses import dataclass
from typing import Dict, List

from ..core.errors import TaskNotFoundError
from ..core.logging_setup import log_tool_call
from ..core.models import (
    GetGoalRequest,
    GetProgressRequest,
    GetTaskRequest,
    GoalEnvelope,
    GoalPageEnvelope,
    GoalSummary,
    ListGoalsRequest,
    ListTasksRequest,
    MAX_PAGE_LIMIT,
    ProgressEnvelope,
    SearchTasksRequest,
    Task,
    TaskEnvelope,
    TaskPageEnvelope,
    TaskStatus,
    TaskType,
    ValidateGoalTreeRequest,
    ValidationEnvelope,
)
from ..core.repository import GoalRepository, GoalSearchFilter
from ..core.task_utils import (
    filter_task_tree,
    find_parent_task_id,
    find_task_by_id,
    flatten_tasks,
    matches_filters,
    paginate,
    substring_search_tasks,
    validate_goal_invariants,
)
from .helpers import get_goal_or_throw


@dataclass
class GmsToolDeps:
    """Dependencies shared by every tool."""

    goal_repository: GoalRepository


async def handle_get_goal(deps: GmsToolDeps, request: GetGoalRequest) -> GoalEnvelope:
    """Return a goal with its full task tree."""
    with log_tool_call("gms_get_goal", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)
        return GoalEnvelope(goal=goal)


async def handle_get_task(deps: GmsToolDeps, request: GetTaskRequest) -> TaskEnvelope:
    """
    Return a task with its parent id, dependency list and subtask count.

    Raises:
        GoalNotFoundError: If the goal does not exist
        TaskNotFoundError: If the goal has no task with that id
    """
    with log_tool_call("gms_get_task", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)
        task = find_task_by_id(goal.tasks, request.task_id)
        if task is None:
            raise TaskNotFoundError(request.goal_id, request.task_id)
        return TaskEnvelope(
            goal_id=goal.id,
            task=task,
            parent_id=find_parent_task_id(goal.tasks, request.task_id),
            dependencies=list(task.dependencies),
            sub_tasks_count=len(task.sub_tasks),
        )


async def handle_list_tasks(
    deps: GmsToolDeps, request: ListTasksRequest
) -> TaskPageEnvelope:
    """
    List a goal's tasks, flat (default) or as a filtered tree.

    In flat mode ``include_sub_tasks`` controls whether nested tasks are
    listed. In tree mode ancestors of matching tasks are kept.
    """
    with log_tool_call("gms_list_tasks", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)

        def predicate(task: Task) -> bool:
            return matches_filters(task, request.status, request.priority, request.type)

        if request.flat:
            if request.include_sub_tasks:
                base = flatten_tasks(goal.tasks)
            else:
                base = goal.tasks
            filtered = [task for task in base if predicate(task)]
        else:
            filtered = filter_task_tree(goal.tasks, predicate)

        items, total = paginate(filtered, request.limit, request.offset)
        return TaskPageEnvelope(
            goal_id=goal.id,
            total=total,
            limit=request.limit,
            offset=request.offset,
            items=items,
        )


async def handle_search_tasks(
    deps: GmsToolDeps, request: SearchTasksRequest
) -> TaskPageEnvelope:
    """Search a goal's tasks by text and structural filters."""
    with log_tool_call("gms_search_tasks", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)

        candidates: List[Task] = []
        for task in flatten_tasks(goal.tasks):
            if not matches_filters(
                task, request.status, request.priority, request.type
            ):
                continue
            if (
                request.has_dependencies is not None
                and bool(task.dependencies) != request.has_dependencies
            ):
                continue
            candidates.append(task)

        matched = substring_search_tasks(candidates, request.query or "")
        items, total = paginate(matched, request.limit, request.offset)
        return TaskPageEnvelope(
            goal_id=goal.id,
            total=total,
            limit=request.limit,
            offset=request.offset,
            items=items,
        )


async def handle_list_goals(
    deps: GmsToolDeps, request: ListGoalsRequest
) -> GoalPageEnvelope:
    """
    List goals, or rank them against ``query`` when one is given.

    Listing pages through the repository; search fetches up to
    limit + offset hits and pages over them locally.
    """
    with log_tool_call("gms_list_goals"):
        search_filter = GoalSearchFilter(
            status=request.status,
            priority=request.priority,
            tenant_id=request.tenant_id,
        )
        repository_filter = None if search_filter.is_empty() else search_filter

        if request.query and request.query.strip():
            hits = await deps.goal_repository.search(
                request.query,
                k=min(request.limit + request.offset, MAX_PAGE_LIMIT),
                filter=repository_filter,
            )
            goals, total = paginate(
                [goal for goal, _ in hits], request.limit, request.offset
            )
        else:
            page = await deps.goal_repository.list_with_total(
                limit=request.limit, offset=request.offset, filter=repository_filter
            )
            goals, total = page.items, page.total

        return GoalPageEnvelope(
            total=total,
            limit=request.limit,
            offset=request.offset,
            items=[GoalSummary.from_goal(goal) for goal in goals],
        )


async def handle_get_progress(
    deps: GmsToolDeps, request: GetProgressRequest
) -> ProgressEnvelope:
    """Completion statistics by status and task type."""
    with log_tool_call("gms_get_progress", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)
        flat = flatten_tasks(goal.tasks)
        total = len(flat)

        counts: Dict[TaskStatus, int] = {status: 0 for status in TaskStatus}
        type_counts: Dict[str, int] = {task_type.value: 0 for task_type in TaskType}
        for task in flat:
            counts[task.status] += 1
            # Untyped tasks count as actions
            type_counts[(task.type or TaskType.ACTION).value] += 1

        completion_rate = (
            round(counts[TaskStatus.COMPLETED] / total, 4) if total else 0.0
        )
        return ProgressEnvelope(
            goal_id=goal.id,
            status=goal.status,
            total_tasks=total,
            completed_tasks=counts[TaskStatus.COMPLETED],
            failed_tasks=counts[TaskStatus.FAILED],
            in_progress_tasks=counts[TaskStatus.IN_PROGRESS],
            pending_tasks=counts[TaskStatus.PENDING],
            cancelled_tasks=counts[TaskStatus.CANCELLED],
            planned_tasks=counts[TaskStatus.PLANNED],
            completion_rate=completion_rate,
            task_type_counts=type_counts,
        )


async def handle_validate_goal_tree(
    deps: GmsToolDeps, request: ValidateGoalTreeRequest
) -> ValidationEnvelope:
    """Check a goal's task tree for structural problems."""
    with log_tool_call("gms_validate_goal_tree", request.goal_id):
        goal = await get_goal_or_throw(deps.goal_repository, request.goal_id)
        result = validate_goal_invariants(goal)
        return ValidationEnvelope(
            goal_id=goal.id,
            valid=result.valid,
            issues=result.issues,
            task_count=len(flatten_tasks(goal.tasks)),
        )
