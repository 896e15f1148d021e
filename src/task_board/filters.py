"""Board filtering and statistics.

Everything here is a pure function of the tasks it is given.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from task_board.models import Filters, Task


@dataclass
class Column:
    """Filtered ids of one status bucket, in bucket order."""

    status: str
    task_ids: list[str] = field(default_factory=list)


@dataclass
class TaskStats:
    """Summary counts shown above the board."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    blocked: int = 0
    overdue: int = 0
    completion_rate: int = 0


def matches(task: Task, filters: Filters) -> bool:
    """Check a task against every active constraint.

    A task without a due date passes a configured date range.
    """
    if filters.assignees and task.assignee_id not in filters.assignees:
        return False
    if filters.priorities and task.priority not in filters.priorities:
        return False
    if filters.labels and not set(filters.labels).issubset(task.labels):
        return False
    if filters.search and filters.search.lower() not in task.title.lower():
        return False
    if filters.date_range is not None and task.due_date is not None:
        start, end = filters.date_range
        if task.due_date < start or task.due_date > end:
            return False
    return True


def filter_columns(
    tasks: Mapping[str, Task],
    ids_by_status: Mapping[str, list[str]],
    filters: Filters,
) -> list[Column]:
    """Return one column per status bucket holding the ids that pass the filters.

    Args:
        tasks: Task mapping by id
        ids_by_status: Status buckets in display order
        filters: Active filters

    Returns:
        List of columns in bucket order; ids keep their bucket order
    """
    columns = []
    for status, task_ids in ids_by_status.items():
        kept = [task_id for task_id in task_ids if task_id in tasks and matches(tasks[task_id], filters)]
        columns.append(Column(status=status, task_ids=kept))
    return columns


def task_stats(tasks: Mapping[str, Task], today: date) -> TaskStats:
    """Compute board statistics. Overdue means due before today and not done."""
    stats = TaskStats(total=len(tasks))
    for task in tasks.values():
        if task.status == "done":
            stats.completed += 1
        elif task.status == "in_progress":
            stats.in_progress += 1
        elif task.status == "blocked":
            stats.blocked += 1
        if task.due_date is not None and task.due_date < today and task.status != "done":
            stats.overdue += 1
    if stats.total:
        stats.completion_rate = round(stats.completed / stats.total * 100)
    return stats
