"""Shared pytest fixtures for checkpoint-runner tests."""

import shutil
import subprocess

import pytest
from typer.testing import CliRunner

from checkpoint_runner.workflow.tasks import Task


class RecordingStager:
    """Stager that records calls instead of running git."""

    def __init__(self, fail_add: bool = False, fail_discard: bool = False):
        self.added: list[list[str]] = []
        self.discarded: list[list[str]] = []
        self.fail_add = fail_add
        self.fail_discard = fail_discard

    async def add_files(self, paths):
        self.added.append(list(paths))
        if self.fail_add:
            raise RuntimeError("staging failed")

    async def discard_files(self, paths):
        self.discarded.append(list(paths))
        if self.fail_discard:
            raise RuntimeError("discard failed")


def make_task(name, calls, depends_on=(), result=None, error=None, **kwargs) -> Task:
    """Create a task whose action appends its name to calls."""

    async def action(*args):
        calls.append(name)
        if error is not None:
            raise error
        return result

    return Task(name=name, action=action, depends_on=depends_on, **kwargs)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def stager():
    """Recording stager."""
    return RecordingStager()


@pytest.fixture
def backup_path(tmp_path):
    """Location of a checkpoint file (not created)."""
    return tmp_path / "state" / "backup.json"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Keep user config and environment overrides out of tests."""
    for var in ("CKR_BACKUP_FILE", "CKR_REPO_PATH", "XDG_CONFIG_HOME"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CKR_CONFIG_DIR", str(tmp_path / "no-config"))


@pytest.fixture
def git_repo(tmp_path):
    """Create a git repository with one committed file."""
    if shutil.which("git") is None:
        pytest.skip("git not available")

    repo = tmp_path / "repo"
    repo.mkdir()

    def git(*args):
        subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)

    git("init", "-q")
    git("config", "user.email", "test@example.com")
    git("config", "user.name", "Test")
    (repo / "VERSION").write_text("1.0.0\n")
    git("add", "VERSION")
    git("commit", "-q", "-m", "initial")
    return repo
