"""Exception types raised by the runner and its collaborators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .workflow.tasks import Task


class CheckpointRunnerError(Exception):
    """Base class for all checkpoint-runner errors."""


class TaskExecutionError(CheckpointRunnerError):
    """
    A task's action (or the staging of its files) failed.

    Carries the failing task, the original error and any stderr output the
    original error captured. Always fatal to the current run.
    """

    def __init__(self, task: Task, error: BaseException):
        super().__init__(f"An error occurred while running {task.name} task.")
        self.task = task
        self.error = error
        self.stderr: str | None = getattr(error, "stderr", None) or None


class BackupInvalidError(CheckpointRunnerError):
    """A backup file exists but cannot be used to resume."""

    def __init__(self, reason: str):
        super().__init__(f"Backup is invalid: {reason}")
        self.reason = reason


class VcsError(CheckpointRunnerError):
    """A version control command failed."""

    def __init__(self, message: str, paths: Sequence[str], returncode: int | None = None, stderr: str | None = None):
        super().__init__(message)
        self.paths = list(paths)
        self.returncode = returncode
        self.stderr = stderr


class StagingError(VcsError):
    """Staging a task's files failed."""


class DiscardError(VcsError):
    """Discarding a failed task's changes failed."""


class CommandError(CheckpointRunnerError):
    """A shell command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = ""):
        super().__init__(f"Command failed with exit code {returncode}: {command}")
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CycleError(CheckpointRunnerError):
    """The task graph contains a dependency cycle."""

    def __init__(self, path: Sequence[str]):
        super().__init__(f"Dependency cycle detected: {' -> '.join(path)}")
        self.path = list(path)


class DuplicateTaskError(CheckpointRunnerError):
    """Two different tasks share one name."""

    def __init__(self, name: str):
        super().__init__(f"Two different tasks are named {name!r}")
        self.name = name


class PipelineDefinitionError(CheckpointRunnerError):
    """A pipeline file is malformed."""
