"""Base runner classes - options, callbacks and run reports."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..constants import DEFAULT_BACKUP_EXPIRATION
from ..workflow.tasks import TaskStatus

if TYPE_CHECKING:
    from ..backup import Backup
    from ..workflow.tasks import Task

# Hooks may be plain functions or coroutines
BackupPredicate = Callable[["Backup"], "bool | Awaitable[bool]"]
BackupRestorer = Callable[..., "None | Awaitable[None]"]
BackupDataFactory = Callable[..., "dict[str, Any] | None"]


def _accept_backup(_backup: Backup) -> bool:
    return True


def _restore_nothing(_backup: Backup, *_args: Any) -> None:
    return None


def _no_backup_data(_task: Task, *_args: Any) -> dict[str, Any] | None:
    return None


@dataclass
class RunnerCallbacks:
    """
    Observer callbacks for run progress.

    Allows the CLI to display progress without coupling the runner to Rich.
    All callbacks are optional - if None, no callback is made.
    """

    on_task_start: Callable[[Task], None] | None = None
    on_task_succeeded: Callable[[Task], None] | None = None
    on_task_failed: Callable[[Task, BaseException], None] | None = None
    on_task_skipped: Callable[[Task], None] | None = None

    # Called with None when the backup file cannot be read at all
    on_backup_validation_failed: Callable[[Backup | None], None] | None = None
    on_backup_restored: Callable[[Backup], None] | None = None


@dataclass
class RunnerOptions:
    """
    Configuration of a TaskRunner.

    Attributes:
        backup_file_path: Checkpoint file; None disables backups entirely
        backup_expiration: Seconds after which a checkpoint is ignored
        validate_backup: Extra validity check, called after the built-in ones
        should_use_backup: Final say on whether a valid backup is resumed from
        restore_backup: Called with (backup, *args) before resuming
        create_backup_data: Called with (task, *args); result is stored as backup data
        callbacks: Progress observers
    """

    backup_file_path: Path | None = None
    backup_expiration: float = DEFAULT_BACKUP_EXPIRATION
    validate_backup: BackupPredicate = _accept_backup
    should_use_backup: BackupPredicate = _accept_backup
    restore_backup: BackupRestorer = _restore_nothing
    create_backup_data: BackupDataFactory = _no_backup_data
    callbacks: RunnerCallbacks = field(default_factory=RunnerCallbacks)


@dataclass
class RunReport:
    """What happened to each task during the last run."""

    statuses: dict[str, TaskStatus] = field(default_factory=dict)
    resumed_from: str | None = None
    stopped_by: str | None = None
    failed_task: str | None = None

    @property
    def success(self) -> bool:
        return self.failed_task is None

    def tasks_with(self, status: TaskStatus) -> list[str]:
        return [name for name, s in self.statuses.items() if s == status]

    @property
    def tasks_completed(self) -> int:
        return len(self.tasks_with(TaskStatus.COMPLETED))

    @property
    def tasks_skipped(self) -> int:
        return len(self.tasks_with(TaskStatus.SKIPPED))
