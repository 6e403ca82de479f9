"""Tests for runner base module."""

from checkpoint_runner.backup import Backup
from checkpoint_runner.runners.base import RunnerCallbacks, RunnerOptions, RunReport
from checkpoint_runner.workflow.tasks import Task, TaskStatus


async def noop(*_args):
    return None


class TestRunnerOptions:
    """Tests for RunnerOptions defaults."""

    def test_defaults(self):
        """Test documented defaults."""
        options = RunnerOptions()
        backup = Backup(tasks=[], resolved_tasks=[], last_task="a", timestamp=0)
        assert options.backup_file_path is None
        assert options.backup_expiration == 3600
        assert options.validate_backup(backup) is True
        assert options.should_use_backup(backup) is True
        assert options.restore_backup(backup, "arg") is None
        assert options.create_backup_data(Task(name="a", action=noop), "arg") is None
        assert isinstance(options.callbacks, RunnerCallbacks)

    def test_callbacks_not_shared(self):
        """Test each options object gets its own callbacks."""
        assert RunnerOptions().callbacks is not RunnerOptions().callbacks


class TestRunnerCallbacks:
    """Tests for RunnerCallbacks dataclass."""

    def test_default_callbacks_none(self):
        """Test all callbacks are None by default."""
        cb = RunnerCallbacks()
        assert cb.on_task_start is None
        assert cb.on_task_succeeded is None
        assert cb.on_task_failed is None
        assert cb.on_task_skipped is None
        assert cb.on_backup_validation_failed is None
        assert cb.on_backup_restored is None


class TestRunReport:
    """Tests for RunReport."""

    def test_counts(self):
        """Test status counting."""
        report = RunReport(
            statuses={
                "a": TaskStatus.SKIPPED,
                "b": TaskStatus.COMPLETED,
                "c": TaskStatus.COMPLETED,
                "d": TaskStatus.PENDING,
            }
        )
        assert report.success
        assert report.tasks_completed == 2
        assert report.tasks_skipped == 1
        assert report.tasks_with(TaskStatus.PENDING) == ["d"]

    def test_failed(self):
        """Test a failed task marks the report unsuccessful."""
        assert not RunReport(failed_task="b").success
