"""Tests for the task service client."""

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from task_board.api import LIST_TASKS_PATH, TASKS_PATH, TaskApi
from task_board.models import ApiError, PayloadError

BASE_URL = "http://tasks.test"


def task_json(task_id: str, **overrides: object) -> dict:
    data = {
        "id": task_id,
        "projectId": "p-1",
        "title": f"Task {task_id}",
        "status": "todo",
        "priority": "medium",
        "labels": [],
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
        "orderIndex": 0,
    }
    data.update(overrides)
    return data


def make_api(handler: Callable[[httpx.Request], httpx.Response]) -> TaskApi:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return TaskApi(base_url=BASE_URL, client=client)


@pytest.mark.asyncio
async def test_list_tasks() -> None:
    """Test fetching the board's tasks."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"tasks": [task_json("1"), task_json("2", status="done")]})

    api = make_api(handler)
    tasks = await api.list_tasks(project_id="p-1")

    assert [task.id for task in tasks] == ["1", "2"]
    assert tasks[1].status == "done"
    assert requests[0].method == "GET"
    assert requests[0].url.path == LIST_TASKS_PATH
    assert requests[0].url.params["projectId"] == "p-1"


@pytest.mark.asyncio
async def test_list_tasks_without_project() -> None:
    """Test that no query string is sent without a project."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"tasks": []})

    assert await make_api(handler).list_tasks() == []
    assert "projectId" not in seen[0].url.params


@pytest.mark.asyncio
async def test_list_tasks_rejects_bad_shape() -> None:
    """Test that a response without a tasks list is a payload error."""
    api = make_api(lambda request: httpx.Response(200, json={"items": []}))
    with pytest.raises(PayloadError, match="'tasks' list"):
        await api.list_tasks()


@pytest.mark.asyncio
async def test_error_status_raises_api_error() -> None:
    """Test that a non-2xx response is surfaced, not retried."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"error": "down"})

    api = make_api(handler)
    with pytest.raises(ApiError, match="HTTP 503") as excinfo:
        await api.list_tasks()
    assert excinfo.value.status_code == 503
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_error_raises_api_error() -> None:
    """Test that connection failures become ApiError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError, match="connection refused") as excinfo:
        await make_api(handler).list_tasks()
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_create_task() -> None:
    """Test posting a new task."""
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.method == "POST"
        assert request.url.path == TASKS_PATH
        return httpx.Response(201, json={"task": task_json("9", title="New", priority="high", labels=None)})

    task = await make_api(handler).create_task(
        "New", project_id="p-1", priority="high", labels=["bug", "bug", "ui"]
    )

    assert task.id == "9"
    assert task.labels == []
    assert bodies == [
        {"title": "New", "description": "", "projectId": "p-1", "priority": "high", "labels": ["bug", "ui"]}
    ]


@pytest.mark.asyncio
async def test_create_task_rejects_unknown_priority() -> None:
    """Test that an invalid priority fails before any request is sent."""
    api = make_api(lambda request: pytest.fail("request should not be sent"))
    with pytest.raises(ValueError, match="Unknown priority"):
        await api.create_task("x", priority="p0")


@pytest.mark.asyncio
async def test_update_task() -> None:
    """Test patching a task."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.path == f"{TASKS_PATH}/5"
        assert json.loads(request.content) == {"status": "review"}
        return httpx.Response(200, json=task_json("5", status="review"))

    task = await make_api(handler).update_task("5", status="review")
    assert task.status == "review"


@pytest.mark.asyncio
async def test_new_list_cancels_previous() -> None:
    """Test that a second list request supersedes the first one in flight."""
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["projectId"] == "old":
            await release.wait()
            return httpx.Response(200, json={"tasks": [task_json("stale")]})
        return httpx.Response(200, json={"tasks": [task_json("fresh")]})

    api = make_api(handler)
    first = asyncio.ensure_future(api.list_tasks(project_id="old"))
    await asyncio.sleep(0)
    second = await api.list_tasks(project_id="new")
    release.set()

    assert [task.id for task in second] == ["fresh"]
    with pytest.raises(asyncio.CancelledError):
        await first


@pytest.mark.asyncio
async def test_context_manager_closes_owned_client() -> None:
    """Test that a client created by TaskApi is closed on exit."""
    async with TaskApi(base_url=BASE_URL) as api:
        client = api.client
    assert client.is_closed
