"""Selection of task ids for bulk operations."""

from collections.abc import Callable, Iterator

import structlog

logger = structlog.get_logger()


class Selection:
    """Set of selected task ids, iterated in the order they were selected.

    ``on_change`` is called once for every call that changes membership.
    """

    def __init__(self, on_change: Callable[[], None] | None = None) -> None:
        self._ids: dict[str, None] = {}
        self.on_change = on_change

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def toggle(self, task_id: str) -> bool:
        """Select the id if absent, deselect it if present.

        Returns:
            True if the id is selected after the call
        """
        if task_id in self._ids:
            del self._ids[task_id]
            logger.debug("Task deselected", task_id=task_id)
            self._changed()
            return False
        self._ids[task_id] = None
        logger.debug("Task selected", task_id=task_id)
        self._changed()
        return True

    def add(self, task_id: str) -> None:
        if task_id not in self._ids:
            self._ids[task_id] = None
            self._changed()

    def discard(self, task_id: str, notify: bool = True) -> None:
        if task_id not in self._ids:
            return
        del self._ids[task_id]
        if notify:
            self._changed()

    def clear(self) -> None:
        if not self._ids:
            return
        logger.debug("Selection cleared", count=len(self._ids))
        self._ids.clear()
        self._changed()

    def ids(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)
