"""Realtime merging of server-pushed task events into the store."""

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from typing import Any

import structlog

from task_board.models import PayloadError, task_from_payload
from task_board.store import TaskStore

logger = structlog.get_logger()

TASK_CREATED = "task.created"
TASK_UPDATED = "task.updated"
TASK_DELETED = "task.deleted"
TASK_EVENTS = (TASK_CREATED, TASK_UPDATED, TASK_DELETED)

Handler = Callable[[Any], None]


class PushChannel(ABC):
    """A subscription to the server's task event namespace.

    Connecting and reconnecting are the transport's job; a channel only
    delivers decoded event payloads to registered handlers.
    """

    @abstractmethod
    def on(self, event: str, handler: Handler) -> None:
        """Register a handler for an event name."""
        pass

    @abstractmethod
    def off(self, event: str, handler: Handler) -> None:
        """Unregister a handler previously passed to ``on``."""
        pass


class InMemoryChannel(PushChannel):
    """Channel fed by local ``emit`` calls."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        """Deliver a payload to every handler of ``event``."""
        for handler in list(self._handlers.get(event, [])):
            handler(payload)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))


def _deleted_task_id(payload: Any) -> str:
    if isinstance(payload, str) and payload:
        return payload
    if isinstance(payload, dict) and payload.get("id"):
        return str(payload["id"])
    raise PayloadError(f"Deleted event must carry a task id, got {payload!r}")


class RealtimeSync:
    """Applies pushed task events to a store one at a time, in arrival order.

    Created and updated events upsert the full task; deleted events remove it.
    Both are idempotent, so redelivered events are harmless. There is no
    version check: an older update arriving after a newer one wins.
    """

    def __init__(self, store: TaskStore, channel: PushChannel) -> None:
        self.store = store
        self.channel = channel
        self._queue: deque[tuple[str, Any]] = deque()
        self._draining = False
        self._handlers: dict[str, Handler] = {}
        self.applied = 0
        self.dropped = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return bool(self._handlers)

    def start(self) -> None:
        """Subscribe to the task events. Calling it twice has no effect."""
        if self.running:
            return
        for event in TASK_EVENTS:
            handler = self._make_handler(event)
            self._handlers[event] = handler
            self.channel.on(event, handler)
        logger.info("Realtime sync started")

    def stop(self) -> None:
        """Unsubscribe. Events already queued are still applied."""
        for event, handler in self._handlers.items():
            self.channel.off(event, handler)
        self._handlers.clear()
        logger.info("Realtime sync stopped", applied=self.applied, dropped=self.dropped, failed=self.failed)

    def _make_handler(self, event: str) -> Handler:
        def handle(payload: Any) -> None:
            self.receive(event, payload)

        return handle

    def receive(self, event: str, payload: Any) -> None:
        """Queue an event and drain the queue unless a drain is already underway."""
        self._queue.append((event, payload))
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                event, payload = self._queue.popleft()
                try:
                    self._apply(event, payload)
                except Exception:
                    # a failing store listener must not strand the events queued behind it
                    self.failed += 1
                    logger.exception("Task event handler failed", event_name=event)
        finally:
            self._draining = False

    def _apply(self, event: str, payload: Any) -> None:
        try:
            if event in (TASK_CREATED, TASK_UPDATED):
                task = task_from_payload(payload)
                self.store.upsert([task])
                logger.debug("Applied task event", event_name=event, task_id=task.id)
            elif event == TASK_DELETED:
                task_id = _deleted_task_id(payload)
                self.store.remove(task_id)
                logger.debug("Applied task event", event_name=event, task_id=task_id)
            else:
                raise PayloadError(f"Unknown task event '{event}'")
        except PayloadError as e:
            self.dropped += 1
            logger.warning("Dropping malformed task event", event_name=event, error=str(e))
            return
        self.applied += 1


def start_sync(store: TaskStore, channel: PushChannel) -> RealtimeSync:
    """Start merging ``channel`` events into ``store`` and return the running sync."""
    sync = RealtimeSync(store, channel)
    sync.start()
    return sync
