"""Data models for the task board."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

VALID_STATUSES = ("todo", "in_progress", "review", "blocked", "done")
VALID_PRIORITIES = ("low", "medium", "high", "urgent")
VALID_DEPENDENCY_TYPES = ("blocks", "relates", "duplicate")


class TaskBoardError(Exception):
    """Base error for task board operations."""


class PayloadError(TaskBoardError, ValueError):
    """Raised when a server payload cannot be turned into a model."""


class ApiError(TaskBoardError):
    """Raised when a request to the task service fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Task:
    """Represents a task on the board."""

    id: str
    title: str
    description: str = ""
    status: str = "todo"
    priority: str = "medium"
    project_id: str | None = None
    assignee_id: str | None = None
    due_date: date | None = None
    estimate_hours: float | None = None
    labels: list[str] = field(default_factory=list)
    order_index: float = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TaskDependency:
    """Represents a "from must precede to" edge between two tasks."""

    from_task_id: str
    to_task_id: str
    type: str = "blocks"


@dataclass
class TimeEntry:
    """A tracked span of work on a task. ``ended_at`` is None while running."""

    id: str
    task_id: str
    user_id: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_ms: int | None = None
    note: str | None = None

    @property
    def running(self) -> bool:
        return self.ended_at is None


@dataclass
class Filters:
    """Board filter settings. Empty values place no constraint."""

    assignees: list[str] = field(default_factory=list)
    priorities: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    search: str | None = None
    date_range: tuple[date, date] | None = None


def validate_status(status: str) -> str:
    if status not in VALID_STATUSES:
        raise ValueError(f"Unknown status: '{status}'. Expected one of: {', '.join(VALID_STATUSES)}")
    return status


def validate_priority(priority: str) -> str:
    if priority not in VALID_PRIORITIES:
        raise ValueError(f"Unknown priority: '{priority}'. Expected one of: {', '.join(VALID_PRIORITIES)}")
    return priority


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken to be UTC. A trailing ``Z`` is accepted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise PayloadError(f"Invalid timestamp: {value!r}") from e
    else:
        raise PayloadError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> date:
    """Parse a calendar date. Full timestamps are truncated to their date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise PayloadError(f"Invalid date: {value!r}") from e
    return parse_timestamp(value).date()


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _require_mapping(payload: Any, kind: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise PayloadError(f"{kind} payload must be an object, got {type(payload).__name__}")
    return payload


def _require_str(payload: dict[str, Any], key: str, kind: str) -> str:
    value = payload.get(key)
    if value is None or value == "":
        raise PayloadError(f"{kind} payload is missing '{key}'")
    return str(value)


def _dedupe_labels(labels: Any) -> list[str]:
    if labels is None:
        return []
    if not isinstance(labels, (list, tuple)):
        raise PayloadError(f"Task labels must be a list, got {type(labels).__name__}")
    seen: dict[str, None] = {}
    for label in labels:
        seen.setdefault(str(label), None)
    return list(seen)


def task_from_payload(payload: Any) -> Task:
    """Convert a task service payload to a Task.

    Args:
        payload: Decoded JSON object in the service's camelCase shape

    Returns:
        Task object

    Raises:
        PayloadError: If a required field is missing or a value is out of range
    """
    data = _require_mapping(payload, "Task")
    task_id = _require_str(data, "id", "Task")
    title = _require_str(data, "title", "Task")

    status = data.get("status", "todo")
    if status not in VALID_STATUSES:
        raise PayloadError(f"Task {task_id} has unknown status '{status}'")
    priority = data.get("priority", "medium")
    if priority not in VALID_PRIORITIES:
        raise PayloadError(f"Task {task_id} has unknown priority '{priority}'")

    estimate = data.get("estimateHours")
    if estimate is not None:
        try:
            estimate = float(estimate)
        except (TypeError, ValueError) as e:
            raise PayloadError(f"Task {task_id} has invalid estimateHours {estimate!r}") from e

    now = utc_now()
    created_at = parse_timestamp(data["createdAt"]) if data.get("createdAt") else now
    updated_at = parse_timestamp(data["updatedAt"]) if data.get("updatedAt") else created_at

    return Task(
        id=task_id,
        title=title,
        description=data.get("description") or "",
        status=status,
        priority=priority,
        project_id=data.get("projectId"),
        assignee_id=data.get("assigneeId"),
        due_date=parse_date(data["dueDate"]) if data.get("dueDate") else None,
        estimate_hours=estimate,
        labels=_dedupe_labels(data.get("labels")),
        order_index=data.get("orderIndex") or 0,
        created_at=created_at,
        updated_at=updated_at,
    )


def task_to_payload(task: Task) -> dict[str, Any]:
    """Convert a Task back to the task service's camelCase shape."""
    payload: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "labels": list(task.labels),
        "orderIndex": task.order_index,
        "createdAt": _format_timestamp(task.created_at),
        "updatedAt": _format_timestamp(task.updated_at),
    }
    if task.project_id is not None:
        payload["projectId"] = task.project_id
    if task.assignee_id is not None:
        payload["assigneeId"] = task.assignee_id
    if task.due_date is not None:
        payload["dueDate"] = task.due_date.isoformat()
    if task.estimate_hours is not None:
        payload["estimateHours"] = task.estimate_hours
    return payload


def dependency_from_payload(payload: Any) -> TaskDependency:
    """Convert a dependency payload (``fromTaskId``/``toTaskId``/``type``)."""
    data = _require_mapping(payload, "Dependency")
    dep_type = data.get("type", "blocks")
    if dep_type not in VALID_DEPENDENCY_TYPES:
        raise PayloadError(f"Unknown dependency type '{dep_type}'")
    return TaskDependency(
        from_task_id=_require_str(data, "fromTaskId", "Dependency"),
        to_task_id=_require_str(data, "toTaskId", "Dependency"),
        type=dep_type,
    )


def time_entry_from_payload(payload: Any) -> TimeEntry:
    """Convert a time entry payload to a TimeEntry."""
    data = _require_mapping(payload, "Time entry")
    started_at = parse_timestamp(_require_str(data, "startedAt", "Time entry"))
    ended_at = parse_timestamp(data["endedAt"]) if data.get("endedAt") else None
    if ended_at is not None and ended_at < started_at:
        raise PayloadError("Time entry endedAt must not be before startedAt")
    duration = data.get("durationMs")
    if duration is not None and not isinstance(duration, (int, float)):
        raise PayloadError(f"Time entry durationMs must be a number, got {duration!r}")
    return TimeEntry(
        id=_require_str(data, "id", "Time entry"),
        task_id=_require_str(data, "taskId", "Time entry"),
        user_id=_require_str(data, "userId", "Time entry"),
        started_at=started_at,
        ended_at=ended_at,
        duration_ms=int(duration) if duration is not None else None,
        note=data.get("note"),
    )
