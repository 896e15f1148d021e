"""Per-task time tracking."""

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

import structlog

from task_board.models import TimeEntry, utc_now

logger = structlog.get_logger()


def entry_duration_ms(entry: TimeEntry) -> int:
    """Duration of a single entry in milliseconds; 0 while it is still running."""
    if entry.duration_ms is not None:
        return entry.duration_ms
    if entry.ended_at is not None:
        return (entry.ended_at - entry.started_at) // timedelta(milliseconds=1)
    return 0


class TimeLedger:
    """Start/stop time entries grouped by task.

    Only one running entry per task is expected, but this is the caller's
    contract: starting twice opens two entries, and both count once stopped.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        user_id: str = "currentUser",
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            clock: Returns the current aware datetime (defaults to UTC now)
            user_id: User recorded on entries started through this ledger
            id_factory: Generates entry ids (defaults to random UUIDs)
        """
        self.clock = clock or utc_now
        self.user_id = user_id
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._entries: dict[str, list[TimeEntry]] = {}

    def start(self, task_id: str) -> str:
        """Open a new running entry for a task and return its id."""
        entry = TimeEntry(
            id=self.id_factory(),
            task_id=task_id,
            user_id=self.user_id,
            started_at=self.clock(),
        )
        self._entries.setdefault(task_id, []).append(entry)
        if len(self.running(task_id)) > 1:
            logger.warning("Multiple running time entries", task_id=task_id, count=len(self.running(task_id)))
        logger.debug("Time entry started", task_id=task_id, entry_id=entry.id)
        return entry.id

    def stop(self, entry_id: str) -> TimeEntry | None:
        """Stop a running entry.

        Returns:
            The stopped entry, or None if the id is unknown or already stopped
        """
        for entries in self._entries.values():
            for entry in entries:
                if entry.id == entry_id and entry.ended_at is None:
                    ended_at = self.clock()
                    entry.ended_at = ended_at
                    entry.duration_ms = (ended_at - entry.started_at) // timedelta(milliseconds=1)
                    logger.debug(
                        "Time entry stopped", task_id=entry.task_id, entry_id=entry_id, duration_ms=entry.duration_ms
                    )
                    return entry
        logger.debug("No running time entry to stop", entry_id=entry_id)
        return None

    def load(self, entries: Iterable[TimeEntry]) -> None:
        """Merge entries fetched from the server, replacing any with the same id."""
        for entry in entries:
            task_entries = self._entries.setdefault(entry.task_id, [])
            for i, existing in enumerate(task_entries):
                if existing.id == entry.id:
                    task_entries[i] = entry
                    break
            else:
                task_entries.append(entry)

    def entries(self, task_id: str) -> list[TimeEntry]:
        return list(self._entries.get(task_id, []))

    def running(self, task_id: str) -> list[TimeEntry]:
        return [entry for entry in self._entries.get(task_id, []) if entry.ended_at is None]

    def total_duration_ms(self, task_id: str) -> int:
        return sum(entry_duration_ms(entry) for entry in self._entries.get(task_id, []))

    def total_hours(self, task_id: str) -> float:
        return self.total_duration_ms(task_id) / 3_600_000
