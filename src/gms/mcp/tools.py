"""
MCP tools for the GMS server.

Parameters use the camelCase names of the published tool schemas.
"""

from typing import List, Optional, Union

from fastmcp import FastMCP

from ..core.models import (
    DEFAULT_PAGE_LIMIT,
    GetGoalRequest,
    GetProgressRequest,
    GetTaskRequest,
    ListGoalsRequest,
    ListTasksRequest,
    SearchTasksRequest,
    ValidateGoalTreeRequest,
)
from .handlers import (
    GmsToolDeps,
    handle_get_goal,
    handle_get_progress,
    handle_get_task,
    handle_list_goals,
    handle_list_tasks,
    handle_search_tasks,
    handle_validate_goal_tree,
)
from .helpers import validate_request, wrap_tool_response

FilterValues = Optional[Union[List[str], str]]


def register_goal_tools(mcp: FastMCP, deps: GmsToolDeps) -> None:
    """Register goal-level tools with the MCP server."""

    @mcp.tool()
    async def gms_get_goal(goalId: str) -> str:
        """
        Retrieve a single goal and its full task tree by goalId.

        Returns the goal object with all nested tasks, statuses, and metadata.
        Use this when you need the complete current state of a specific goal.
        Use gms_list_goals instead to browse or search across goals.

        Args:
            goalId: Id of the goal to retrieve

        Returns:
            JSON envelope: { version, goal }
        """
        request = validate_request(GetGoalRequest, goal_id=goalId)
        return wrap_tool_response(await handle_get_goal(deps, request))

    @mcp.tool()
    async def gms_list_goals(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        tenantId: Optional[str] = None,
        query: Optional[str] = None,
        limit: Optional[int] = DEFAULT_PAGE_LIMIT,
        offset: Optional[int] = 0,
    ) -> str:
        """
        List or search goals with optional filters and pagination.

        Without a query, returns goals newest first, filtered by
        status/priority/tenantId. With a query, ranks goals by how well their
        description matches it.

        Args:
            status: Filter goals by status
            priority: Filter goals by priority (low, medium, high, critical)
            tenantId: Filter goals by tenant identifier
            query: Text to match against goal descriptions
            limit: Maximum number of goals to return (1-200)
            offset: Number of goals to skip

        Returns:
            JSON envelope: { version, total, limit, offset, items[] } where each
            item has id, description, status, priority, tenantId, updatedAt
        """
        request = validate_request(
            ListGoalsRequest,
            status=status,
            priority=priority,
            tenant_id=tenantId,
            query=query,
            limit=limit,
            offset=offset,
        )
        return wrap_tool_response(await handle_list_goals(deps, request))

    @mcp.tool()
    async def gms_get_progress(goalId: str) -> str:
        """
        Get completion statistics for a goal.

        Counts tasks by status and by type, and reports a completion rate
        between 0 and 1. Use this to check how far along a goal is.

        Args:
            goalId: Id of the goal

        Returns:
            JSON envelope: { version, goalId, status, totalTasks, completedTasks,
            failedTasks, inProgressTasks, pendingTasks, cancelledTasks,
            plannedTasks, completionRate, taskTypeCounts }
        """
        request = validate_request(GetProgressRequest, goal_id=goalId)
        return wrap_tool_response(await handle_get_progress(deps, request))

    @mcp.tool()
    async def gms_validate_goal_tree(goalId: str) -> str:
        """
        Check a goal's task tree for structural issues.

        Detects duplicate task ids, invalid parent references, missing or
        self-referencing dependencies, and dependency cycles.

        Args:
            goalId: Id of the goal whose task tree to validate

        Returns:
            JSON envelope: { version, goalId, valid, issues[], taskCount }
        """
        request = validate_request(ValidateGoalTreeRequest, goal_id=goalId)
        return wrap_tool_response(await handle_validate_goal_tree(deps, request))


def register_task_tools(mcp: FastMCP, deps: GmsToolDeps) -> None:
    """Register task-level tools with the MCP server."""

    @mcp.tool()
    async def gms_get_task(goalId: str, taskId: str) -> str:
        """
        Retrieve a single task within a goal, with parent and dependency context.

        Args:
            goalId: Id of the parent goal
            taskId: Id of the task to retrieve

        Returns:
            JSON envelope: { version, goalId, task, parentId, dependencies,
            subTasksCount }. parentId is null for root tasks.
        """
        request = validate_request(GetTaskRequest, goal_id=goalId, task_id=taskId)
        return wrap_tool_response(await handle_get_task(deps, request))

    @mcp.tool()
    async def gms_list_tasks(
        goalId: str,
        status: FilterValues = None,
        priority: FilterValues = None,
        type: FilterValues = None,
        flat: Optional[bool] = True,
        includeSubTasks: Optional[bool] = True,
        limit: Optional[int] = DEFAULT_PAGE_LIMIT,
        offset: Optional[int] = 0,
    ) -> str:
        """
        List tasks for a goal with optional filters.

        Set flat=true (default) for a flat list; flat=false for the nested tree
        with ancestors of matching tasks kept. includeSubTasks=true (default)
        includes nested tasks in flat mode.

        Args:
            goalId: Id of the goal
            status: Filter by status(es)
            priority: Filter by priority(ies)
            type: Filter by type(s): research, action, validation, decision
            flat: Return a flat list instead of a tree
            includeSubTasks: Include nested sub-tasks when flat
            limit: Page size (1-200)
            offset: Number of items to skip

        Returns:
            JSON envelope: { version, goalId, total, limit, offset, items[] }
        """
        request = validate_request(
            ListTasksRequest,
            goal_id=goalId,
            status=status,
            priority=priority,
            type=type,
            flat=flat,
            include_sub_tasks=includeSubTasks,
            limit=limit,
            offset=offset,
        )
        return wrap_tool_response(await handle_list_tasks(deps, request))

    @mcp.tool()
    async def gms_search_tasks(
        goalId: str,
        query: Optional[str] = None,
        status: FilterValues = None,
        priority: FilterValues = None,
        type: FilterValues = None,
        hasDependencies: Optional[bool] = None,
        limit: Optional[int] = DEFAULT_PAGE_LIMIT,
        offset: Optional[int] = 0,
    ) -> str:
        """
        Search tasks within a goal.

        The query is a case-insensitive substring match against task
        descriptions, results, and errors. Structural filters apply first.

        Args:
            goalId: Id of the goal
            query: Search text
            status: Filter by status(es)
            priority: Filter by priority(ies)
            type: Filter by type(s)
            hasDependencies: Only tasks with (true) or without (false) dependencies
            limit: Page size (1-200)
            offset: Number of items to skip

        Returns:
            JSON envelope: { version, goalId, total, limit, offset, items[] }
        """
        request = validate_request(
            SearchTasksRequest,
            goal_id=goalId,
            query=query,
            status=status,
            priority=priority,
            type=type,
            has_dependencies=hasDependencies,
            limit=limit,
            offset=offset,
        )
        return wrap_tool_response(await handle_search_tasks(deps, request))


def register_all_tools(mcp: FastMCP, deps: GmsToolDeps) -> None:
    """Register all tools with the MCP server."""
    register_goal_tools(mcp, deps)
    register_task_tools(mcp, deps)
