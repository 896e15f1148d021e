"""Tests for data models and payload conversion."""

from datetime import date, datetime, timezone

import pytest

from task_board.models import (
    PayloadError,
    Task,
    TaskDependency,
    dependency_from_payload,
    task_from_payload,
    task_to_payload,
    time_entry_from_payload,
)


@pytest.fixture
def sample_payload() -> dict:
    """A task as the task service returns it."""
    return {
        "id": "t-1",
        "projectId": "p-1",
        "title": "Calibrate bed",
        "description": "Level the print bed",
        "status": "in_progress",
        "priority": "high",
        "labels": ["hardware", "printer", "hardware"],
        "assigneeId": "alice",
        "estimateHours": 2.5,
        "dueDate": "2024-02-01T00:00:00.000Z",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-02T12:30:00Z",
        "orderIndex": 3,
    }


def test_task_defaults() -> None:
    """Test task creation with defaults."""
    task = Task(id="1", title="Test Task")
    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.labels == []
    assert task.assignee_id is None
    assert task.due_date is None
    assert task.created_at.tzinfo is not None


def test_dependency_creation() -> None:
    """Test dependency creation."""
    dep = TaskDependency(from_task_id="a", to_task_id="b")
    assert dep.type == "blocks"


def test_task_from_payload(sample_payload: dict) -> None:
    """Test converting a service payload to a task."""
    task = task_from_payload(sample_payload)
    assert task.id == "t-1"
    assert task.project_id == "p-1"
    assert task.status == "in_progress"
    assert task.priority == "high"
    assert task.labels == ["hardware", "printer"]
    assert task.assignee_id == "alice"
    assert task.estimate_hours == 2.5
    assert task.due_date == date(2024, 2, 1)
    assert task.updated_at == datetime(2024, 1, 2, 12, 30, tzinfo=timezone.utc)
    assert task.order_index == 3


def test_task_from_minimal_payload() -> None:
    """Test that only id and title are required."""
    task = task_from_payload({"id": "t-2", "title": "Minimal"})
    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.labels == []
    assert task.updated_at == task.created_at


def test_task_from_payload_plain_due_date() -> None:
    """Test that a calendar date is accepted for dueDate."""
    task = task_from_payload({"id": "t-3", "title": "Dated", "dueDate": "2024-03-05"})
    assert task.due_date == date(2024, 3, 5)


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"title": "No id"}, "missing 'id'"),
        ({"id": "1"}, "missing 'title'"),
        ({"id": "1", "title": "x", "status": "backlog"}, "unknown status"),
        ({"id": "1", "title": "x", "priority": "p0"}, "unknown priority"),
        ({"id": "1", "title": "x", "createdAt": "yesterday"}, "Invalid timestamp"),
        ({"id": "1", "title": "x", "labels": "a,b"}, "labels must be a list"),
        (["not", "a", "dict"], "must be an object"),
    ],
)
def test_task_from_payload_rejects_malformed(payload: object, message: str) -> None:
    """Test that malformed payloads raise PayloadError."""
    with pytest.raises(PayloadError, match=message):
        task_from_payload(payload)


def test_payload_error_is_value_error() -> None:
    """Test that callers catching ValueError also catch payload errors."""
    with pytest.raises(ValueError):
        task_from_payload({})


def test_task_to_payload(sample_payload: dict) -> None:
    """Test converting a task back to the service shape."""
    payload = task_to_payload(task_from_payload(sample_payload))
    assert payload["id"] == "t-1"
    assert payload["projectId"] == "p-1"
    assert payload["assigneeId"] == "alice"
    assert payload["dueDate"] == "2024-02-01"
    assert payload["updatedAt"] == "2024-01-02T12:30:00Z"
    assert payload["labels"] == ["hardware", "printer"]


def test_task_to_payload_omits_unset_optionals() -> None:
    """Test that optional fields are left out when unset."""
    payload = task_to_payload(Task(id="1", title="Bare"))
    assert "assigneeId" not in payload
    assert "dueDate" not in payload
    assert "estimateHours" not in payload


def test_dependency_from_payload() -> None:
    """Test converting a dependency payload."""
    dep = dependency_from_payload({"fromTaskId": "a", "toTaskId": "b", "type": "relates"})
    assert dep == TaskDependency(from_task_id="a", to_task_id="b", type="relates")


def test_dependency_from_payload_rejects_unknown_type() -> None:
    """Test that unknown dependency types are rejected."""
    with pytest.raises(PayloadError, match="Unknown dependency type"):
        dependency_from_payload({"fromTaskId": "a", "toTaskId": "b", "type": "follows"})


def test_time_entry_from_payload() -> None:
    """Test converting a time entry payload."""
    entry = time_entry_from_payload(
        {
            "id": "e-1",
            "taskId": "t-1",
            "userId": "alice",
            "startedAt": "2024-01-01T09:00:00Z",
            "endedAt": "2024-01-01T10:00:00Z",
        }
    )
    assert entry.task_id == "t-1"
    assert entry.running is False
    assert entry.duration_ms is None


def test_time_entry_end_before_start_rejected() -> None:
    """Test that an entry ending before it started is rejected."""
    with pytest.raises(PayloadError, match="endedAt"):
        time_entry_from_payload(
            {
                "id": "e-1",
                "taskId": "t-1",
                "userId": "alice",
                "startedAt": "2024-01-01T10:00:00Z",
                "endedAt": "2024-01-01T09:00:00Z",
            }
        )
