"""Longest dependency chain over a project's tasks."""

from collections.abc import Iterable, Sequence

import structlog

from task_board.models import Task, TaskDependency

logger = structlog.get_logger()

# chain length ending at a task, and the predecessor that chain runs through
Link = tuple[int, str | None]


def _predecessors(task_ids: set[str], dependencies: Iterable[TaskDependency]) -> dict[str, list[str]]:
    """Map each task to the tasks that must precede it, in edge order."""
    incoming: dict[str, list[str]] = {}
    for dep in dependencies:
        if dep.from_task_id not in task_ids or dep.to_task_id not in task_ids:
            logger.debug("Skipping dependency on unknown task", from_task=dep.from_task_id, to_task=dep.to_task_id)
            continue
        incoming.setdefault(dep.to_task_id, []).append(dep.from_task_id)
    return incoming


def longest_chains(tasks: Sequence[Task], dependencies: Iterable[TaskDependency]) -> dict[str, Link]:
    """Compute the longest chain ending at every task.

    Walks the graph iteratively with a memo keyed by task id. An edge back to a
    task that is still being expanded closes a cycle and is ignored, so the walk
    terminates on cyclic input too.

    Returns:
        Mapping of task id to (chain length, previous task id on that chain)
    """
    task_ids = {task.id for task in tasks}
    incoming = _predecessors(task_ids, dependencies)
    memo: dict[str, Link] = {}
    in_progress: set[str] = set()

    for task in tasks:
        if task.id in memo:
            continue
        stack: list[tuple[str, bool]] = [(task.id, False)]
        while stack:
            node, expanded = stack.pop()
            if node in memo:
                continue
            if not expanded:
                if node in in_progress:
                    continue
                in_progress.add(node)
                stack.append((node, True))
                for pred in reversed(incoming.get(node, [])):
                    if pred in in_progress:
                        logger.warning("Dependency cycle detected", task_id=node, predecessor=pred)
                    elif pred not in memo:
                        stack.append((pred, False))
                continue

            length, previous = 0, None
            for pred in incoming.get(node, []):
                # cycle-closing edges have no memo entry yet; strict > keeps the first on ties
                if pred in memo and memo[pred][0] > length:
                    length, previous = memo[pred][0], pred
            memo[node] = (length + 1, previous)
            in_progress.discard(node)

    return memo


def _chain_to(task_id: str, chains: dict[str, Link]) -> list[str]:
    path = []
    current: str | None = task_id
    while current is not None:
        path.append(current)
        current = chains[current][1]
    path.reverse()
    return path


def completion_depths(tasks: Sequence[Task], dependencies: Iterable[TaskDependency]) -> dict[str, int]:
    """Earliest completion depth of every task: the length of its longest chain."""
    chains = longest_chains(tasks, dependencies)
    return {task.id: chains[task.id][0] for task in tasks}


def critical_path(tasks: Sequence[Task], dependencies: Iterable[TaskDependency]) -> list[Task]:
    """Return the longest chain of dependency-ordered tasks.

    Length is counted in tasks, not hours. When several chains are equally
    long the one ending at the earliest task in ``tasks`` wins.

    Args:
        tasks: All tasks of a project, in display order
        dependencies: "from precedes to" edges between those tasks

    Returns:
        Tasks of the critical path, first to last
    """
    chains = longest_chains(tasks, dependencies)
    by_id = {task.id: task for task in tasks}

    end, best = None, 0
    for task in tasks:
        if chains[task.id][0] > best:
            end, best = task.id, chains[task.id][0]
    if end is None:
        return []

    path = _chain_to(end, chains)
    logger.debug("Critical path computed", length=best, task_ids=path)
    return [by_id[task_id] for task_id in path]
