"""Task board state engine."""

from task_board.critical_path import completion_depths, critical_path
from task_board.filters import Column, filter_columns, task_stats
from task_board.models import ApiError, Filters, PayloadError, Task, TaskBoardError, TaskDependency, TimeEntry
from task_board.selection import Selection
from task_board.store import TaskStore, mark_selection_done
from task_board.sync import InMemoryChannel, PushChannel, RealtimeSync, start_sync
from task_board.time_ledger import TimeLedger

__all__ = [
    "ApiError",
    "Column",
    "Filters",
    "InMemoryChannel",
    "PayloadError",
    "PushChannel",
    "RealtimeSync",
    "Selection",
    "Task",
    "TaskBoardError",
    "TaskDependency",
    "TaskStore",
    "TimeEntry",
    "TimeLedger",
    "completion_depths",
    "critical_path",
    "filter_columns",
    "mark_selection_done",
    "start_sync",
    "task_stats",
]
