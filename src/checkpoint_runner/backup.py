"""
Checkpoint persistence for resumable runs.

A backup records how far a run got: the requested root tasks, the resolved
order at the time, the last task that completed and caller-supplied data
needed to rebuild in-memory state. It is stored as a single JSON file.

Only one runner instance may use a given backup path at a time; concurrent
runners sharing a path would overwrite each other's checkpoints.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import DEFAULT_BACKUP_EXPIRATION
from .errors import BackupInvalidError

logger = logging.getLogger(__name__)


@dataclass
class Backup:
    """A persisted checkpoint."""

    tasks: list[str]
    resolved_tasks: list[str]
    last_task: str
    timestamp: float  # epoch seconds
    data: dict[str, Any] | None = None

    def age(self, now: float | None = None) -> float:
        """Seconds since the backup was written."""
        return (time.time() if now is None else now) - self.timestamp

    def to_dict(self) -> dict:
        return {
            "tasks": self.tasks,
            "resolvedTasks": self.resolved_tasks,
            "lastTask": self.last_task,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Backup:
        try:
            backup = cls(
                tasks=list(data["tasks"]),
                resolved_tasks=list(data["resolvedTasks"]),
                last_task=str(data["lastTask"]),
                timestamp=float(data["timestamp"]),
                data=data.get("data"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BackupInvalidError(f"malformed backup record ({e})") from e
        if backup.data is not None and not isinstance(backup.data, dict):
            raise BackupInvalidError("backup data must be an object")
        return backup


class BackupStore:
    """
    Reads, validates, writes and deletes the backup file.

    With path=None every operation is a no-op and nothing is ever loaded.
    """

    def __init__(
        self,
        path: Path | None,
        expiration: float = DEFAULT_BACKUP_EXPIRATION,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the store.

        Args:
            path: Backup file location, or None to disable backups
            expiration: Maximum backup age in seconds
            clock: Source of the current time (epoch seconds)
        """
        self.path = Path(path) if path is not None else None
        self.expiration = expiration
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def exists(self) -> bool:
        """Check whether a readable backup file is present."""
        if self.path is None:
            return False
        return self.path.is_file() and os.access(self.path, os.R_OK)

    def load(self) -> Backup | None:
        """
        Load the backup from disk.

        Returns:
            The backup, or None if there is no file

        Raises:
            BackupInvalidError: The file cannot be parsed as a backup
        """
        if not self.exists():
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BackupInvalidError(f"cannot read {self.path} ({e})") from e

        if not isinstance(data, dict):
            raise BackupInvalidError("backup file does not contain an object")
        return Backup.from_dict(data)

    def check(
        self,
        backup: Backup,
        root_names: Sequence[str],
        resolved_names: Sequence[str],
    ) -> None:
        """
        Verify the backup matches the current run.

        Raises:
            BackupInvalidError: With the first reason the backup cannot be used
        """
        age = backup.age(self.clock())
        if age >= self.expiration:
            raise BackupInvalidError(f"expired ({age:.0f}s old, limit {self.expiration:.0f}s)")
        if list(backup.resolved_tasks) != list(resolved_names):
            raise BackupInvalidError("resolved task order has changed")
        if list(backup.tasks) != list(root_names):
            raise BackupInvalidError("requested tasks have changed")

    def is_valid(
        self,
        backup: Backup,
        root_names: Sequence[str],
        resolved_names: Sequence[str],
        validator: Callable[[Backup], bool] | None = None,
    ) -> bool:
        """
        Check the backup can be used for this run.

        A backup is valid when it is younger than the expiration, was written
        for the same root tasks and the same resolved order, and the optional
        validator accepts it.
        """
        try:
            self.check(backup, root_names, resolved_names)
        except BackupInvalidError as e:
            logger.debug(str(e))
            return False
        return validator(backup) if validator else True

    def create(
        self,
        last_task: str,
        root_names: Sequence[str],
        resolved_names: Sequence[str],
        data: dict[str, Any] | None = None,
    ) -> Backup:
        """Build a fresh backup record stamped with the current time."""
        return Backup(
            tasks=list(root_names),
            resolved_tasks=list(resolved_names),
            last_task=last_task,
            timestamp=self.clock(),
            data=data,
        )

    def save(self, backup: Backup) -> None:
        """
        Write the backup, replacing any previous one.

        Synchronous and fsynced: the checkpoint must be durable even if the
        process exits right after this call.

        Raises:
            BackupInvalidError: The backup data cannot be stored as JSON
        """
        if self.path is None:
            return

        try:
            content = json.dumps(backup.to_dict(), indent=2)
        except (TypeError, ValueError) as e:
            raise BackupInvalidError(f"data after {backup.last_task} cannot be saved: {e}") from e

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"Backup saved after {backup.last_task}: {self.path}")

    def invalidate(self) -> None:
        """Delete the backup file if there is one."""
        if self.path is None:
            return
        self.path.unlink(missing_ok=True)
