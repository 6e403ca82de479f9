"""Tests for CLI commands using Typer's CliRunner."""

import json
import time

import pytest

from checkpoint_runner.backup import Backup, BackupStore
from checkpoint_runner.cli import app, format_age


@pytest.fixture
def pipeline_file(tmp_path):
    path = tmp_path / "release.yaml"
    path.write_text(
        """
name: release
targets: [publish]
tasks:
  - name: init
    run: echo init >> log.txt
    required: true
  - name: build
    run: echo build >> log.txt
    depends_on: [init]
    files_to_stage: [dist/VERSION]
  - name: publish
    run: echo publish >> log.txt
    depends_on: [build]
"""
    )
    return path


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_option(self, cli_runner):
        """Test --version displays version."""
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_option(self, cli_runner):
        """Test --help lists the commands."""
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Checkpoint Runner" in result.output
        assert "run" in result.output
        assert "plan" in result.output
        assert "backup" in result.output


class TestFormatAge:
    """Tests for format_age."""

    def test_formats(self):
        """Test seconds, minutes and hours."""
        assert format_age(5) == "5s"
        assert format_age(125) == "2m 5s"
        assert format_age(3 * 3600 + 120) == "3h 2m"
        assert format_age(-3) == "0s"


class TestPlanCommand:
    """Tests for plan command."""

    def test_plan_shows_order(self, cli_runner, pipeline_file):
        """Test the resolved order is listed."""
        result = cli_runner.invoke(app, ["plan", str(pipeline_file)])
        assert result.exit_code == 0
        assert result.output.index("init") < result.output.index("build") < result.output.index("publish")

    def test_plan_missing_file(self, cli_runner, tmp_path):
        """Test a missing pipeline is a usage error."""
        result = cli_runner.invoke(app, ["plan", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2

    def test_plan_invalid_pipeline(self, cli_runner, tmp_path):
        """Test definition errors exit 1."""
        path = tmp_path / "bad.yaml"
        path.write_text("tasks:\n  - name: a\n")
        result = cli_runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1
        assert "missing 'run'" in result.output

    def test_plan_wrongly_typed_field(self, cli_runner, tmp_path):
        """Test a field of the wrong type is reported instead of crashing."""
        path = tmp_path / "bad.yaml"
        path.write_text("tasks:\n  - name: a\n    run: 'true'\n    depends_on: 5\n")
        result = cli_runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1
        assert not isinstance(result.exception, TypeError)
        assert "'depends_on' must be" in result.output


class TestRunCommand:
    """Tests for run command."""

    def test_run_all(self, cli_runner, pipeline_file, tmp_path):
        """Test every task runs and the checkpoint is removed."""
        result = cli_runner.invoke(app, ["run", str(pipeline_file), "--no-git"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "log.txt").read_text().split() == ["init", "build", "publish"]
        assert not (tmp_path / ".ckr" / "backup.json").exists()
        assert "3 completed" in result.output

    def test_run_resumes(self, cli_runner, pipeline_file, tmp_path):
        """Test a run resumes after the checkpointed task, re-running required ones."""
        backup_file = tmp_path / ".ckr" / "backup.json"
        BackupStore(backup_file).save(
            Backup(
                tasks=["publish"],
                resolved_tasks=["init", "build", "publish"],
                last_task="build",
                timestamp=time.time(),
                data={"outputs": {"build": ""}},
            )
        )

        result = cli_runner.invoke(app, ["run", str(pipeline_file), "--no-git"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "log.txt").read_text().split() == ["init", "publish"]
        assert "Resuming after" in result.output
        assert not backup_file.exists()

    def test_run_fresh(self, cli_runner, pipeline_file, tmp_path):
        """Test --fresh ignores an existing checkpoint."""
        backup_file = tmp_path / ".ckr" / "backup.json"
        BackupStore(backup_file).save(
            Backup(
                tasks=["publish"],
                resolved_tasks=["init", "build", "publish"],
                last_task="build",
                timestamp=time.time(),
            )
        )

        result = cli_runner.invoke(app, ["run", str(pipeline_file), "--no-git", "--fresh"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "log.txt").read_text().split() == ["init", "build", "publish"]

    def test_run_failure(self, cli_runner, tmp_path):
        """Test a failing task exits 1, reports stderr and keeps the checkpoint."""
        path = tmp_path / "p.yaml"
        path.write_text(
            """
tasks:
  - name: prepare
    run: echo ready
  - name: deploy
    run: echo "permission denied" >&2; exit 4
    depends_on: [prepare]
"""
        )

        result = cli_runner.invoke(app, ["run", str(path), "--no-git"])

        assert result.exit_code == 1
        assert "deploy" in result.output
        assert "permission denied" in result.output
        backup = json.loads((tmp_path / ".ckr" / "backup.json").read_text())
        assert backup["lastTask"] == "prepare"
        assert backup["data"] == {"outputs": {"prepare": "ready"}}

    def test_run_custom_backup_file(self, cli_runner, tmp_path):
        """Test --backup-file chooses where checkpoints go."""
        path = tmp_path / "p.yaml"
        path.write_text("tasks:\n  - name: a\n    run: echo a\n  - name: b\n    run: exit 1\n    depends_on: [a]\n")
        backup_file = tmp_path / "custom.json"

        result = cli_runner.invoke(app, ["run", str(path), "--no-git", "--backup-file", str(backup_file)])

        assert result.exit_code == 1
        assert backup_file.exists()
        assert not (tmp_path / ".ckr").exists()

    def test_run_no_backup(self, cli_runner, tmp_path):
        """Test --no-backup writes no checkpoint."""
        path = tmp_path / "p.yaml"
        path.write_text("tasks:\n  - name: a\n    run: echo a\n  - name: b\n    run: exit 1\n    depends_on: [a]\n")
        result = cli_runner.invoke(app, ["run", str(path), "--no-git", "--no-backup"])
        assert result.exit_code == 1
        assert not (tmp_path / ".ckr").exists()

    def test_run_stop(self, cli_runner, tmp_path):
        """Test a stop exit code ends the run successfully."""
        path = tmp_path / "p.yaml"
        path.write_text(
            """
tasks:
  - name: check
    run: exit 75
    stop_exit_code: 75
  - name: release
    run: echo released > released.txt
    depends_on: [check]
"""
        )
        result = cli_runner.invoke(app, ["run", str(path), "--no-git"])
        assert result.exit_code == 0, result.output
        assert "Stopped by" in result.output
        assert not (tmp_path / "released.txt").exists()

    def test_run_unreadable_backup(self, cli_runner, pipeline_file, tmp_path):
        """Test a corrupt checkpoint is reported and the run starts over."""
        backup_file = tmp_path / ".ckr" / "backup.json"
        backup_file.parent.mkdir()
        backup_file.write_text("{not json")

        result = cli_runner.invoke(app, ["run", str(pipeline_file), "--no-git"])

        assert result.exit_code == 0, result.output
        assert "unreadable" in result.output
        assert (tmp_path / "log.txt").read_text().split() == ["init", "build", "publish"]

    def test_run_checkpoint_write_error(self, cli_runner, pipeline_file, tmp_path):
        """Test a checkpoint that cannot be written is reported and exits 1."""
        backup_dir = tmp_path / "not-a-file"
        backup_dir.mkdir()

        result = cli_runner.invoke(app, ["run", str(pipeline_file), "--no-git", "--backup-file", str(backup_dir)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error message" in result.output
        assert not (tmp_path / "not-a-file.tmp").exists()


class TestBackupCommands:
    """Tests for backup show/clear."""

    def test_show(self, cli_runner, tmp_path):
        """Test show prints the checkpoint."""
        backup_file = tmp_path / "b.json"
        BackupStore(backup_file).save(
            Backup(
                tasks=["publish"],
                resolved_tasks=["init", "build", "publish"],
                last_task="build",
                timestamp=time.time(),
                data={"outputs": {}},
            )
        )
        result = cli_runner.invoke(app, ["backup", "show", str(backup_file)])
        assert result.exit_code == 0
        assert "build" in result.output
        assert "pending" in result.output
        assert "outputs" in result.output

    def test_show_missing(self, cli_runner, tmp_path):
        """Test show without a file exits 1."""
        result = cli_runner.invoke(app, ["backup", "show", str(tmp_path / "none.json")])
        assert result.exit_code == 1
        assert "No backup" in result.output

    def test_show_corrupt(self, cli_runner, tmp_path):
        """Test show reports corrupt files."""
        backup_file = tmp_path / "b.json"
        backup_file.write_text("{")
        result = cli_runner.invoke(app, ["backup", "show", str(backup_file)])
        assert result.exit_code == 1
        assert "invalid" in result.output

    def test_clear(self, cli_runner, tmp_path):
        """Test clear removes the file and tolerates absence."""
        backup_file = tmp_path / "b.json"
        backup_file.write_text("{}")
        result = cli_runner.invoke(app, ["backup", "clear", str(backup_file)])
        assert result.exit_code == 0
        assert not backup_file.exists()

        result = cli_runner.invoke(app, ["backup", "clear", str(backup_file)])
        assert result.exit_code == 0
