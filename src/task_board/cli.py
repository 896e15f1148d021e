"""CLI for task-board."""

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import Annotated, Any, Literal

import structlog
from cyclopts import App, Parameter

from task_board.api import TaskApi
from task_board.board import BoardSession
from task_board.config import get_config
from task_board.config_commands import config_app
from task_board.critical_path import completion_depths, critical_path
from task_board.filters import task_stats
from task_board.models import Task, TaskDependency, dependency_from_payload, task_from_payload
from task_board.store import TaskStore

logger = structlog.get_logger()

app = App(
    help="task-board - Task board state engine",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_api() -> TaskApi:
    """Build a task service client from the configured settings."""
    config = get_config()
    return TaskApi(
        base_url=config.get("api.base_url"),
        timeout=config.get_float("api.timeout"),
    )


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_snapshot(path: Path) -> tuple[list[Task], list[TaskDependency]]:
    """Read a ``{"tasks": [...], "dependencies": [...]}`` JSON dump."""
    with open(path, "r") as f:
        data: dict[str, Any] = json.load(f)
    tasks = [task_from_payload(item) for item in data.get("tasks", [])]
    dependencies = [dependency_from_payload(item) for item in data.get("dependencies", [])]
    logger.debug("Snapshot loaded", path=str(path), tasks=len(tasks), dependencies=len(dependencies))
    return tasks, dependencies


@app.command
def board(
    search: str | None = None,
    priority: str | None = None,
    label: str | None = None,
    assignee: str | None = None,
) -> None:
    """Load the board from the task service and print its columns."""
    config = get_config()
    store = TaskStore(user_id=config.get("user.id"))
    store.set_filters(
        search=search,
        priorities=split_csv(priority),
        labels=split_csv(label),
        assignees=split_csv(assignee),
    )

    async def run() -> None:
        async with get_api() as api:
            await BoardSession(store, api, project_id=config.get("project.id")).load()

    asyncio.run(run())

    for column in store.columns():
        print(f"{column.status} ({len(column.task_ids)})")
        for task_id in column.task_ids:
            task = store.tasks[task_id]
            labels_str = f" [{', '.join(task.labels)}]" if task.labels else ""
            print(f"  {task.id}: {task.title} ({task.priority}){labels_str}")


@app.command
def create(
    title: str,
    description: str = "",
    priority: Literal["low", "medium", "high", "urgent"] = "medium",
    labels: str = "",
) -> None:
    """Create a new task."""
    config = get_config()

    async def run() -> Task:
        async with get_api() as api:
            return await api.create_task(
                title=title,
                description=description,
                project_id=config.get("project.id"),
                priority=priority,
                labels=split_csv(labels),
            )

    task = asyncio.run(run())
    print(f"Created task {task.id}: {task.title}")


@app.command(name="critical-path")
def critical_path_command(path: Path) -> None:
    """Print the longest dependency chain of a JSON task dump."""
    tasks, dependencies = load_snapshot(path)
    chain = critical_path(tasks, dependencies)
    if not chain:
        print("No tasks")
        return

    depths = completion_depths(tasks, dependencies)
    print(f"Critical path ({len(chain)} task(s)):\n")
    for task in chain:
        print(f"  {depths[task.id]}. {task.id}: {task.title} [{task.status}]")


@app.command
def stats(path: Path) -> None:
    """Print board statistics for a JSON task dump."""
    tasks, _ = load_snapshot(path)
    summary = task_stats({task.id: task for task in tasks}, date.today())
    print(f"Total: {summary.total}")
    print(f"Completed: {summary.completed} ({summary.completion_rate}%)")
    print(f"In progress: {summary.in_progress}")
    print(f"Blocked: {summary.blocked}")
    print(f"Overdue: {summary.overdue}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
