"""Task definitions for workflows."""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class TaskOutcome(Enum):
    """Result of a task action that did not raise."""

    CONTINUE = "continue"
    STOP = "stop"


class TaskStatus(Enum):
    """Status of a task in a run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TaskAction = Callable[..., Awaitable["TaskOutcome | None"]]


def _as_tuple(value: Any) -> tuple:
    """Normalise a single item, an iterable or None to a tuple."""
    if value is None:
        return ()
    if isinstance(value, (str, os.PathLike, Task)):
        return (value,)
    return tuple(value)


@dataclass(frozen=True, eq=False)
class Task:
    """
    A named unit of work.

    Tasks are immutable and compared by identity. Across runs the name is
    the only thing persisted, so names must be unique within a graph.
    """

    STOP: ClassVar[TaskOutcome] = TaskOutcome.STOP

    name: str
    action: TaskAction
    # Tasks that must fully execute before this one
    depends_on: tuple[Task, ...] = ()
    # Paths staged after success and discarded after failure
    files_to_stage: tuple[str, ...] = ()
    # Run even when resuming from a checkpoint taken after this task
    required: bool = False
    # Write a checkpoint after this task succeeds
    backupable: bool = True
    description: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Task name must not be empty")
        object.__setattr__(self, "depends_on", _as_tuple(self.depends_on))
        object.__setattr__(self, "files_to_stage", tuple(str(p) for p in _as_tuple(self.files_to_stage)))

    def __repr__(self) -> str:
        return f"Task({self.name!r})"

    async def execute(self, *args: Any) -> TaskOutcome:
        """Run the action and normalise its result."""
        result = await self.action(*args)
        if result is None:
            return TaskOutcome.CONTINUE
        if not isinstance(result, TaskOutcome):
            raise TypeError(f"Task {self.name} returned {result!r}, expected TaskOutcome or None")
        return result


def task(
    name: str | None = None,
    *,
    depends_on: Task | Iterable[Task] | None = None,
    files_to_stage: str | Iterable[str] | None = None,
    required: bool = False,
    backupable: bool = True,
    description: str = "",
) -> Callable[[TaskAction], Task]:
    """
    Decorator turning an async function into a Task.

    Example:
        @task(depends_on=build, files_to_stage="CHANGELOG.md")
        async def publish(ctx):
            ...
    """

    def decorator(action: TaskAction) -> Task:
        return Task(
            name=name or action.__name__,
            action=action,
            depends_on=depends_on,
            files_to_stage=files_to_stage,
            required=required,
            backupable=backupable,
            description=description or (action.__doc__ or "").strip().split("\n")[0],
        )

    return decorator
