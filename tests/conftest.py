"""Shared fixtures for task board tests."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from task_board.cli import configure_logging
from task_board.models import Task
from task_board.store import TaskStore

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> None:
    """Apply the CLI's default log level for commands invoked directly."""
    configure_logging("critical")


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now = self.now + timedelta(milliseconds=ms)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> TaskStore:
    return TaskStore(clock=clock)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with deterministic timestamps."""

    def factory(task_id: str, status: str = "todo", **overrides: object) -> Task:
        fields: dict[str, object] = {
            "title": f"Task {task_id}",
            "status": status,
            "priority": "low",
            "created_at": T0,
            "updated_at": T0,
        }
        fields.update(overrides)
        return Task(id=task_id, **fields)

    return factory
