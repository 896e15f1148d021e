"""Async client for the task service REST API using httpx."""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

import httpx
import structlog

from task_board.models import ApiError, PayloadError, Task, task_from_payload, validate_priority

logger = structlog.get_logger()

T = TypeVar("T")

LIST_TASKS_PATH = "/api/v1/project-management/tasks"
TASKS_PATH = "/api/tasks"


class TaskApi:
    """Task service client.

    Requests made under the same key supersede each other: starting a new
    ``list_tasks`` cancels the one still in flight, and whoever awaited the old
    one sees ``asyncio.CancelledError``. Failed requests are never retried.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the task service
            timeout: Request timeout in seconds
            client: Preconfigured httpx client (the caller keeps ownership)
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        logger.debug("Task API client initialized", base_url=self.base_url)

    async def __aenter__(self) -> "TaskApi":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for pending in self._inflight.values():
            pending.cancel()
        self._inflight.clear()
        if self._owns_client:
            await self.client.aclose()

    async def _keyed(self, key: str, request: Awaitable[T]) -> T:
        """Run a request, cancelling any earlier one still running under ``key``."""
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            logger.debug("Cancelling superseded request", key=key)
            previous.cancel()
        current = asyncio.ensure_future(request)
        self._inflight[key] = current
        try:
            return await current
        finally:
            if self._inflight.get(key) is current:
                del self._inflight[key]

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: On transport failure, non-2xx status or a non-JSON body
        """
        logger.debug("Sending request", method=method, path=path)
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Request failed", method=method, path=path, error=str(e))
            raise ApiError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            logger.error("Request returned error status", method=method, path=path, status_code=response.status_code)
            raise ApiError(f"HTTP {response.status_code}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON", status_code=response.status_code) from e

    async def list_tasks(self, project_id: str | None = None) -> list[Task]:
        """Fetch all tasks for the board.

        Args:
            project_id: Restrict to one project

        Returns:
            List of Task objects
        """
        logger.info("Listing tasks", project_id=project_id)
        params = {"projectId": project_id} if project_id else None
        data = await self._keyed("list_tasks", self._request("GET", LIST_TASKS_PATH, params=params))
        if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
            raise PayloadError("List tasks response must be an object with a 'tasks' list")
        tasks = [task_from_payload(item) for item in data["tasks"]]
        logger.info("Listed tasks", count=len(tasks))
        return tasks

    async def create_task(
        self,
        title: str,
        description: str = "",
        project_id: str | None = None,
        priority: str = "medium",
        labels: Iterable[str] = (),
    ) -> Task:
        """Create a task on the server."""
        validate_priority(priority)
        body = {
            "title": title,
            "description": description,
            "projectId": project_id,
            "priority": priority,
            "labels": list(dict.fromkeys(labels)),
        }
        logger.info("Creating task", title=title, project_id=project_id, priority=priority)
        data = await self._request("POST", TASKS_PATH, json=body)
        if not isinstance(data, dict) or "task" not in data:
            raise PayloadError("Create task response must contain 'task'")
        payload = data["task"]
        if isinstance(payload, dict) and payload.get("labels") is None:
            payload = {**payload, "labels": []}
        task = task_from_payload(payload)
        logger.info("Task created", task_id=task.id)
        return task

    async def update_task(self, task_id: str, **patch: Any) -> Task:
        """Patch a task on the server.

        Args:
            task_id: Task to update
            **patch: camelCase fields to send

        Returns:
            The task as returned by the server
        """
        logger.info("Updating task", task_id=task_id, fields=sorted(patch))
        data = await self._request("PATCH", f"{TASKS_PATH}/{task_id}", json=patch)
        if isinstance(data, dict) and isinstance(data.get("task"), dict):
            data = data["task"]
        return task_from_payload(data)
