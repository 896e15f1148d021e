"""Normalized task store with a per-status index."""

from collections.abc import Callable, Iterable
from dataclasses import fields, replace
from datetime import datetime

import structlog

from task_board.critical_path import critical_path
from task_board.filters import Column, filter_columns
from task_board.models import Filters, Task, TaskDependency, utc_now, validate_priority, validate_status
from task_board.selection import Selection
from task_board.time_ledger import TimeLedger

logger = structlog.get_logger()

Listener = Callable[["TaskStore"], None]

_PATCHABLE_FIELDS = frozenset(f.name for f in fields(Task)) - {"id"}


class TaskStore:
    """Board state: tasks by id plus status buckets of ids.

    The store is an explicit object created once per application and handed to
    whatever needs it. Every mutation builds the new mapping and buckets first
    and swaps them in together, then notifies listeners once. After every
    mutation each task id sits in exactly one bucket, the one named by its
    status, and every id in a bucket is a known task.

    Mutations that target an unknown id are no-ops.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None, user_id: str = "currentUser") -> None:
        """Initialize an empty store.

        Args:
            clock: Returns the current aware datetime (defaults to UTC now)
            user_id: User recorded on time entries started from this store
        """
        self.clock = clock or utc_now
        self.tasks: dict[str, Task] = {}
        self.ids_by_status: dict[str, list[str]] = {}
        self.dependencies: list[TaskDependency] = []
        self.filters = Filters()
        self.selection = Selection(on_change=self._notify)
        self.time_ledger = TimeLedger(clock=self.clock, user_id=user_id)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every state transition.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, tasks: dict[str, Task], ids_by_status: dict[str, list[str]]) -> None:
        self.tasks = tasks
        self.ids_by_status = ids_by_status
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _touch(self, task: Task) -> datetime:
        # updated_at never goes backwards, even if the clock does
        now = self.clock()
        return now if now >= task.updated_at else task.updated_at

    def upsert(self, tasks: Iterable[Task]) -> None:
        """Insert or replace tasks by id.

        Existing buckets are pruned of ids that are no longer known, then each
        task id is appended to its status bucket unless already there. A task
        that keeps its status keeps its position.
        """
        incoming = list(tasks)
        if not incoming:
            return

        # a repeated id resolves to its last occurrence in the batch
        final = {task.id: task for task in incoming}
        for task in final.values():
            validate_status(task.status)
        draft = {**self.tasks, **final}

        by_status = {
            status: [task_id for task_id in ids if task_id in draft and draft[task_id].status == status]
            for status, ids in self.ids_by_status.items()
        }
        for task in final.values():
            bucket = by_status.setdefault(task.status, [])
            if task.id not in bucket:
                bucket.append(task.id)

        logger.debug("Tasks upserted", count=len(incoming))
        self._commit(draft, by_status)

    def update(self, task_id: str, **patch: object) -> Task | None:
        """Merge field changes onto a task.

        A status change moves the id to the end of its new bucket.

        Args:
            task_id: Task to update
            **patch: Task fields to change

        Returns:
            The updated task, or None if the id is unknown

        Raises:
            TypeError: If the patch names a field that cannot be changed
        """
        existing = self.tasks.get(task_id)
        if existing is None:
            logger.debug("Ignoring update for unknown task", task_id=task_id)
            return None

        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot patch task fields: {', '.join(sorted(unknown))}")
        if "status" in patch:
            validate_status(str(patch["status"]))
        if "priority" in patch:
            validate_priority(str(patch["priority"]))

        updated = replace(existing, **patch)
        updated.updated_at = self._touch(existing)

        ids_by_status = self.ids_by_status
        if updated.status != existing.status:
            ids_by_status = self._migrate(task_id, existing.status, updated.status, None)
            logger.info("Task status changed", task_id=task_id, from_status=existing.status, to_status=updated.status)

        self._commit({**self.tasks, task_id: updated}, ids_by_status)
        return updated

    def move(self, task_id: str, to_status: str, index: int) -> Task | None:
        """Move a task to a status bucket at a given position.

        Moving within the same bucket reorders it. Positions past the end append.

        Returns:
            The moved task, or None if the id is unknown
        """
        validate_status(to_status)
        existing = self.tasks.get(task_id)
        if existing is None:
            logger.debug("Ignoring move for unknown task", task_id=task_id)
            return None

        moved = replace(existing, status=to_status)
        moved.updated_at = self._touch(existing)
        ids_by_status = self._migrate(task_id, existing.status, to_status, index)
        logger.debug("Task moved", task_id=task_id, to_status=to_status, index=index)
        self._commit({**self.tasks, task_id: moved}, ids_by_status)
        return moved

    def _migrate(self, task_id: str, from_status: str, to_status: str, index: int | None) -> dict[str, list[str]]:
        """Copy of the buckets with ``task_id`` moved from one bucket to another."""
        ids_by_status = dict(self.ids_by_status)
        ids_by_status[from_status] = [x for x in ids_by_status.get(from_status, []) if x != task_id]
        dest = [x for x in ids_by_status.get(to_status, []) if x != task_id]
        if index is None:
            dest.append(task_id)
        else:
            dest.insert(index, task_id)
        ids_by_status[to_status] = dest
        return ids_by_status

    def remove(self, task_id: str) -> bool:
        """Drop a task and scrub it from every bucket. Emptied buckets are dropped.

        Returns:
            True if the task was known
        """
        if task_id not in self.tasks:
            logger.debug("Ignoring removal of unknown task", task_id=task_id)
            return False

        tasks = dict(self.tasks)
        del tasks[task_id]
        ids_by_status = {}
        for status, ids in self.ids_by_status.items():
            kept = [x for x in ids if x != task_id]
            if kept or task_id not in ids:
                ids_by_status[status] = kept
        # the commit below notifies for the selection change too
        self.selection.discard(task_id, notify=False)
        logger.info("Task removed", task_id=task_id)
        self._commit(tasks, ids_by_status)
        return True

    def bulk_set_status(self, task_ids: Iterable[str], status: str) -> list[str]:
        """Set the status of many tasks in one transition.

        Unknown ids are skipped. Every known id ends up in the ``status``
        bucket and nowhere else, with its updated timestamp bumped.

        Returns:
            Ids that were applied, in request order
        """
        validate_status(status)
        tasks = dict(self.tasks)
        ids_by_status = {key: list(ids) for key, ids in self.ids_by_status.items()}
        applied: list[str] = []

        for task_id in dict.fromkeys(task_ids):
            existing = tasks.get(task_id)
            if existing is None:
                continue
            if existing.status != status:
                ids_by_status[existing.status] = [x for x in ids_by_status.get(existing.status, []) if x != task_id]
                bucket = ids_by_status.setdefault(status, [])
                if task_id not in bucket:
                    bucket.append(task_id)
            updated = replace(existing, status=status)
            updated.updated_at = self._touch(existing)
            tasks[task_id] = updated
            applied.append(task_id)

        logger.info("Bulk status update", status=status, applied=len(applied))
        if applied:
            self._commit(tasks, ids_by_status)
        return applied

    def set_filters(self, **changes: object) -> Filters:
        """Merge changes into the current filters and return them."""
        self.filters = replace(self.filters, **changes)
        logger.debug("Filters changed", fields=sorted(changes))
        self._notify()
        return self.filters

    def reset_filters(self) -> None:
        self.filters = Filters()
        self._notify()

    def columns(self) -> list[Column]:
        """Status columns filtered by the current filters."""
        return filter_columns(self.tasks, self.ids_by_status, self.filters)

    def set_dependencies(self, dependencies: Iterable[TaskDependency]) -> None:
        self.dependencies = list(dependencies)

    def critical_path(self) -> list[Task]:
        """Critical path over a snapshot of the current tasks and dependencies."""
        return critical_path(list(self.tasks.values()), self.dependencies)

    def invariant_violations(self) -> list[str]:
        """Describe every inconsistency between the tasks and the buckets."""
        problems = []
        seen: dict[str, str] = {}
        for status, ids in self.ids_by_status.items():
            for task_id in ids:
                if task_id not in self.tasks:
                    problems.append(f"{task_id} is in bucket '{status}' but not in the store")
                elif self.tasks[task_id].status != status:
                    problems.append(f"{task_id} is in bucket '{status}' but has status '{self.tasks[task_id].status}'")
                if task_id in seen:
                    problems.append(f"{task_id} appears in both '{seen[task_id]}' and '{status}'")
                seen[task_id] = status
        for task_id in self.tasks:
            if task_id not in seen:
                problems.append(f"{task_id} is missing from the status index")
        return problems


def mark_selection_done(store: TaskStore) -> list[str]:
    """Move every selected task to done."""
    return store.bulk_set_status(store.selection.ids(), "done")
