"""Graph resolution - flattens root tasks and their dependencies into one order."""

from collections.abc import Iterable, Sequence

from ..errors import CycleError, DuplicateTaskError
from .tasks import Task


def resolve_tasks(roots: Iterable[Task]) -> list[Task]:
    """
    Resolve root tasks into a dependency-respecting execution order.

    Depth-first post-order: each task's dependencies are visited in their
    declared order before the task itself, and roots in their declared
    order. Every reachable task appears exactly once, after all of its
    dependencies; unconstrained tasks keep first-encountered order.

    Args:
        roots: Requested tasks, in order

    Returns:
        Flattened list of tasks

    Raises:
        DuplicateTaskError: Two different Task objects share a name
        CycleError: The dependency graph is not acyclic
    """
    resolved: dict[str, Task] = {}
    visiting: list[Task] = []

    def visit(task: Task) -> None:
        existing = resolved.get(task.name)
        if existing is not None:
            if existing is not task:
                raise DuplicateTaskError(task.name)
            return

        for index, ancestor in enumerate(visiting):
            if ancestor.name == task.name:
                if ancestor is not task:
                    raise DuplicateTaskError(task.name)
                raise CycleError([t.name for t in visiting[index:]] + [task.name])

        visiting.append(task)
        for dependency in task.depends_on:
            visit(dependency)
        visiting.pop()

        resolved[task.name] = task

    for root in roots:
        visit(root)

    return list(resolved.values())


def task_names(tasks: Sequence[Task]) -> list[str]:
    """Names of the given tasks, in order."""
    return [t.name for t in tasks]
