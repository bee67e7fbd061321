"""
Tree utilities for goal task hierarchies.

All functions are pure: they never mutate the tasks they are given.
"""

from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from .errors import DependencyCycleError
from .models import Goal, Priority, Task, TaskStatus, TaskType

T = TypeVar("T")


def flatten_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Flatten a task tree into a list in DFS pre-order."""
    out: List[Task] = []

    def visit(task: Task) -> None:
        out.append(task)
        for child in task.sub_tasks:
            visit(child)

    for task in tasks:
        visit(task)
    return out


def count_tasks(tasks: Iterable[Task]) -> int:
    """Total number of tasks in the tree, nested ones included."""
    return len(flatten_tasks(tasks))


def find_task_by_id(tasks: Iterable[Task], task_id: str) -> Optional[Task]:
    """Find a task anywhere in the hierarchy by id."""
    for task in flatten_tasks(tasks):
        if task.id == task_id:
            return task
    return None


def find_parent_task_id(tasks: Iterable[Task], task_id: str) -> Optional[str]:
    """
    Find the id of the parent of ``task_id``.

    Returns:
        The parent id, or None if the task is a root task or does not exist
    """
    stack: List[Tuple[Task, Optional[str]]] = [(task, None) for task in tasks]
    while stack:
        node, parent_id = stack.pop()
        if node.id == task_id:
            return parent_id
        for child in node.sub_tasks:
            stack.append((child, node.id))
    return None


def execution_order(tasks: Iterable[Task]) -> List[Task]:
    """
    Order tasks so that every task comes after the tasks it depends on.

    Dependencies may reference any task in the tree. Unknown ids are ignored.

    Raises:
        DependencyCycleError: If the dependencies form a cycle
    """
    flat = flatten_tasks(tasks)
    by_id = {task.id: task for task in flat}
    visiting: Set[str] = set()
    visited: Set[str] = set()
    result: List[Task] = []

    def visit(task: Task) -> None:
        if task.id in visited:
            return
        if task.id in visiting:
            raise DependencyCycleError(task.id)
        visiting.add(task.id)
        for dep_id in task.dependencies:
            dep = by_id.get(dep_id)
            if dep is not None:
                visit(dep)
        visiting.discard(task.id)
        visited.add(task.id)
        result.append(task)

    for task in flat:
        visit(task)
    return result


@dataclass
class GoalInvariantResult:
    """Outcome of goal-tree invariant validation."""

    valid: bool
    issues: List[str] = field(default_factory=list)


def validate_goal_invariants(goal: Goal) -> GoalInvariantResult:
    """
    Validate structural invariants of a goal's task tree.

    Checks:
    - task ids are unique
    - a child's parent_id, when set, names its actual parent
    - dependencies reference existing tasks and never the task itself
    - dependencies are acyclic
    """
    issues: List[str] = []
    flat = flatten_tasks(goal.tasks)
    by_id: Dict[str, Task] = {}
    duplicates: List[str] = []

    for task in flat:
        if task.id in by_id and task.id not in duplicates:
            duplicates.append(task.id)
        by_id[task.id] = task
    if duplicates:
        issues.append(f"Duplicate task IDs: {', '.join(duplicates)}")

    for task in flat:
        for child in task.sub_tasks:
            if child.parent_id is not None and child.parent_id != task.id:
                issues.append(
                    f"Task {child.id} parentId mismatch: "
                    f"expected {task.id}, got {child.parent_id}"
                )
        for dep in task.dependencies:
            if dep not in by_id:
                issues.append(f"Task {task.id} depends on missing task {dep}")
            if dep == task.id:
                issues.append(f"Task {task.id} depends on itself")

    graph = {task.id: list(task.dependencies) for task in flat}
    visiting: Set[str] = set()
    visited: Set[str] = set()
    cycles: List[str] = []

    def dfs(node_id: str) -> None:
        if node_id in visiting:
            if node_id not in cycles:
                cycles.append(node_id)
            return
        if node_id in visited:
            return
        visiting.add(node_id)
        for dep in graph.get(node_id, []):
            dfs(dep)
        visiting.discard(node_id)
        visited.add(node_id)

    for node_id in graph:
        dfs(node_id)
    if cycles:
        issues.append(f"Dependency cycles detected near: {', '.join(cycles)}")

    return GoalInvariantResult(valid=not issues, issues=issues)


def matches_filters(
    task: Task,
    status: Optional[Sequence[TaskStatus]] = None,
    priority: Optional[Sequence[Priority]] = None,
    task_type: Optional[Sequence[TaskType]] = None,
) -> bool:
    """True if the task passes every non-empty filter."""
    if status and task.status not in status:
        return False
    if priority and task.priority not in priority:
        return False
    if task_type and (task.type is None or task.type not in task_type):
        return False
    return True


def filter_task_tree(
    tasks: Iterable[Task], predicate: Callable[[Task], bool]
) -> List[Task]:
    """
    Hierarchy-preserving filter.

    A node is kept if it matches the predicate or any of its descendants does.
    Returned nodes are copies; the input tree is left untouched.
    """
    kept: List[Task] = []
    for task in tasks:
        children = filter_task_tree(task.sub_tasks, predicate)
        if predicate(task) or children:
            kept.append(task.model_copy(update={"sub_tasks": children}))
    return kept


def paginate(items: Sequence[T], limit: int, offset: int) -> Tuple[List[T], int]:
    """Slice a page out of ``items``. Returns the page and the total count."""
    safe_offset = max(0, offset)
    safe_limit = max(1, limit)
    return list(items[safe_offset : safe_offset + safe_limit]), len(items)


def substring_search_tasks(tasks: Iterable[Task], query: str) -> List[Task]:
    """Case-insensitive match of ``query`` against description, result and error."""
    needle = query.strip().lower()
    if not needle:
        return list(tasks)
    return [
        task
        for task in tasks
        if any(
            needle in text.lower()
            for text in (task.description, task.result, task.error)
            if text
        )
    ]
