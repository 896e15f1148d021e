"""Loading and creating tasks for a live board."""

from collections.abc import Iterable

import structlog

from task_board.api import TaskApi
from task_board.models import Task
from task_board.store import TaskStore

logger = structlog.get_logger()


class BoardSession:
    """Connects a store to the task service for as long as a board is open.

    Responses that arrive after ``close()`` are discarded instead of being
    applied, so a board that has gone away cannot overwrite newer state.
    Request failures propagate to the caller.
    """

    def __init__(self, store: TaskStore, api: TaskApi, project_id: str | None = None) -> None:
        self.store = store
        self.api = api
        self.project_id = project_id
        self.active = True

    def close(self) -> None:
        self.active = False
        logger.debug("Board session closed", project_id=self.project_id)

    async def load(self) -> list[Task]:
        """Fetch the board's tasks and upsert them.

        Returns:
            The tasks applied to the store, or an empty list if the session
            closed while the request was in flight
        """
        tasks = await self.api.list_tasks(project_id=self.project_id)
        if not self.active:
            logger.info("Discarding tasks for closed board", count=len(tasks))
            return []
        self.store.upsert(tasks)
        return tasks

    async def create(
        self,
        title: str,
        description: str = "",
        priority: str = "medium",
        labels: Iterable[str] = (),
    ) -> Task | None:
        """Create a task on the server and add it to the board.

        Returns:
            The created task, or None if the session closed before it was applied
        """
        title = title.strip()
        if not title:
            raise ValueError("Task title must not be empty")
        task = await self.api.create_task(
            title=title,
            description=description,
            project_id=self.project_id,
            priority=priority,
            labels=labels,
        )
        if not self.active:
            logger.info("Discarding created task for closed board", task_id=task.id)
            return None
        self.store.upsert([task])
        return task
