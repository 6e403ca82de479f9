"""Sequential runner - Executes resolved tasks one at a time with checkpoints."""

from __future__ import annotations

import asyncio
import inspect
import logging
import traceback
from collections.abc import Iterable
from typing import Any, NoReturn

from rich.console import Console

from ..backup import Backup, BackupStore
from ..errors import BackupInvalidError, TaskExecutionError
from ..vcs import GitStager, Stager
from ..workflow.graph import resolve_tasks, task_names
from ..workflow.tasks import Task, TaskOutcome, TaskStatus
from .base import RunnerOptions, RunReport

logger = logging.getLogger(__name__)
console = Console(stderr=True)


async def _maybe_await(value: Any) -> Any:
    """Await hook results that are awaitable, pass others through."""
    if inspect.isawaitable(value):
        return await value
    return value


class TaskRunner:
    """
    Sequential, resumable task runner.

    Resolves the root tasks once, then each run:
    1. Loads a usable backup (if backups are enabled)
    2. Restores caller state from it and computes the resume point
    3. Executes required tasks and every task from the resume point on
    4. Stages each successful task's files and writes a checkpoint after
       backupable tasks
    5. Deletes the backup once the run completes or a task stops it

    On failure the task's files are discarded (best-effort), the error is
    wrapped in TaskExecutionError and the last checkpoint stays on disk.
    """

    def __init__(
        self,
        tasks: Task | Iterable[Task],
        options: RunnerOptions | None = None,
        stager: Stager | None = None,
    ):
        """
        Initialize the runner.

        Args:
            tasks: Root task or tasks to run
            options: Backup and callback configuration
            stager: Staging collaborator (default: git in the current directory)
        """
        self.tasks: list[Task] = [tasks] if isinstance(tasks, Task) else list(tasks)
        self.options = options or RunnerOptions()
        self.stager: Stager = stager if stager is not None else GitStager()
        self.resolved_tasks = resolve_tasks(self.tasks)
        self.backup_store = BackupStore(self.options.backup_file_path, self.options.backup_expiration)
        self.last_report: RunReport | None = None

    @property
    def root_names(self) -> list[str]:
        return task_names(self.tasks)

    @property
    def resolved_names(self) -> list[str]:
        return task_names(self.resolved_tasks)

    async def is_backup_valid(self, backup: Backup) -> bool:
        """Validate backup compatibility with this runner's tasks."""
        try:
            self.backup_store.check(backup, self.root_names, self.resolved_names)
        except BackupInvalidError as e:
            logger.info(str(e))
            return False
        return bool(await _maybe_await(self.options.validate_backup(backup)))

    async def get_backup(self) -> Backup | None:
        """Return the backup if it exists, is valid and should be used."""
        if not self.backup_store.exists():
            return None

        cb = self.options.callbacks
        try:
            backup = self.backup_store.load()
        except BackupInvalidError as e:
            logger.warning(f"Ignoring backup: {e}")
            if cb.on_backup_validation_failed:
                cb.on_backup_validation_failed(None)
            return None
        if backup is None:
            return None

        if not await self.is_backup_valid(backup):
            if cb.on_backup_validation_failed:
                cb.on_backup_validation_failed(backup)
            return None

        if not await _maybe_await(self.options.should_use_backup(backup)):
            logger.info("Backup found but not used")
            return None
        return backup

    def save_backup(self, task: Task, *args: Any) -> None:
        """Write a checkpoint naming task as the last completed one."""
        if not self.backup_store.enabled:
            return
        data = self.options.create_backup_data(task, *args)
        backup = self.backup_store.create(task.name, self.root_names, self.resolved_names, data)
        self.backup_store.save(backup)

    def invalidate_backup(self) -> None:
        """Delete the checkpoint file."""
        self.backup_store.invalidate()

    def resume_index(self, backup: Backup | None) -> int:
        """Index in the resolved order where execution resumes."""
        if backup is None:
            return 0
        try:
            return self.resolved_names.index(backup.last_task) + 1
        except ValueError:
            logger.warning(f"Backup names unknown task {backup.last_task!r}, starting from the beginning")
            return 0

    async def run(self, *args: Any) -> tuple:
        """
        Run all tasks, resuming from a backup when one is usable.

        Args:
            *args: Passed to every task action and to the backup hooks

        Returns:
            The arguments, unchanged

        Raises:
            TaskExecutionError: A task failed
        """
        cb = self.options.callbacks
        report = RunReport(statuses={t.name: TaskStatus.PENDING for t in self.resolved_tasks})
        self.last_report = report

        backup = await self.get_backup()
        if backup is not None:
            await _maybe_await(self.options.restore_backup(backup, *args))
            report.resumed_from = backup.last_task
            logger.info(f"Resuming after {backup.last_task}")
            if cb.on_backup_restored:
                cb.on_backup_restored(backup)

        start = self.resume_index(backup)

        for index, task in enumerate(self.resolved_tasks):
            if index < start and not task.required:
                report.statuses[task.name] = TaskStatus.SKIPPED
                logger.debug(f"Skipping {task.name} (completed before checkpoint)")
                if cb.on_task_skipped:
                    cb.on_task_skipped(task)
                continue

            outcome = await self._run_task(task, report, args)
            if outcome is TaskOutcome.STOP:
                report.stopped_by = task.name
                logger.info(f"Task {task.name} stopped the run")
                break

        # Completed or deliberately stopped: nothing left to resume
        self.invalidate_backup()
        return args

    async def _run_task(self, task: Task, report: RunReport, args: tuple) -> TaskOutcome:
        cb = self.options.callbacks
        report.statuses[task.name] = TaskStatus.RUNNING
        logger.debug(f"Running {task.name}")
        if cb.on_task_start:
            cb.on_task_start(task)

        try:
            outcome = await task.execute(*args)
            if outcome is TaskOutcome.STOP:
                report.statuses[task.name] = TaskStatus.COMPLETED
                return outcome

            await self.stager.add_files(task.files_to_stage)
        except Exception as error:
            report.statuses[task.name] = TaskStatus.FAILED
            report.failed_task = task.name
            await self._discard(task)
            if cb.on_task_failed:
                cb.on_task_failed(task, error)
            raise TaskExecutionError(task, error) from error

        report.statuses[task.name] = TaskStatus.COMPLETED
        if cb.on_task_succeeded:
            cb.on_task_succeeded(task)

        if task.backupable:
            self.save_backup(task, *args)
        return outcome

    async def _discard(self, task: Task) -> None:
        """Discard the failed task's changes without masking its error."""
        try:
            await self.stager.discard_files(task.files_to_stage)
        except Exception as e:
            logger.warning(f"Could not discard changes of {task.name}: {e}")

    def run_and_exit(self, *args: Any) -> NoReturn:
        """
        Run the tasks and exit the process.

        Exits 0 on success. On failure prints which task failed, the error
        and any captured stderr, then exits 1.
        """
        try:
            asyncio.run(self.run(*args))
        except Exception as e:
            print_failure(e)
            raise SystemExit(1) from None
        raise SystemExit(0)


def print_failure(error: BaseException, out: Console | None = None) -> None:
    """Print a human-readable failure report."""
    out = out or console
    original = error
    out.print()
    if isinstance(error, TaskExecutionError):
        out.print(f"[red]💥 Command failed at phase[/red] [cyan]{error.task.name}[/cyan].")
        original = error.error

    details = "".join(traceback.format_exception(type(original), original, original.__traceback__)).strip()
    out.print("[red]💥 Error message:[/red]")
    out.print(details, markup=False, highlight=False)

    stderr = getattr(error, "stderr", None)
    if stderr:
        out.print("[red]💥 stderr output:[/red]")
        out.print(stderr.rstrip(), markup=False, highlight=False)
