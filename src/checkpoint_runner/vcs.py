"""
Version control collaborator - stages or discards the files a task touched.

The runner only needs two operations: stage the files of a task that
succeeded, and throw away uncommitted changes to the files of a task that
failed. GitStager implements them with the git command line.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .errors import DiscardError, StagingError

logger = logging.getLogger(__name__)


class Stager(Protocol):
    """Protocol for staging collaborators."""

    async def add_files(self, paths: Sequence[str]) -> None:
        """Stage the given paths."""
        ...

    async def discard_files(self, paths: Sequence[str]) -> None:
        """Discard uncommitted changes in the given paths."""
        ...


class NullStager:
    """Stager that does nothing (git staging disabled)."""

    async def add_files(self, paths: Sequence[str]) -> None:
        return None

    async def discard_files(self, paths: Sequence[str]) -> None:
        return None


class GitStager:
    """
    Stager backed by git.

    add_files     -> git add -- <paths>
    discard_files -> git checkout -- <paths>
    """

    def __init__(self, repo_path: Path | None = None, git: str = "git"):
        """
        Initialize the stager.

        Args:
            repo_path: Working tree to run git in (default: current directory)
            git: git executable
        """
        self.repo_path = repo_path
        self.git = git

    async def _git(self, *args: str) -> tuple[int, str]:
        process = await asyncio.create_subprocess_exec(
            self.git,
            *args,
            cwd=self.repo_path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _stdout, stderr = await process.communicate()
        return process.returncode, stderr.decode(errors="replace")

    async def add_files(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        logger.debug(f"Staging: {', '.join(paths)}")
        returncode, stderr = await self._git("add", "--", *paths)
        if returncode != 0:
            raise StagingError(f"git add failed for {', '.join(paths)}", paths, returncode, stderr)

    async def discard_files(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        logger.debug(f"Discarding changes: {', '.join(paths)}")
        returncode, stderr = await self._git("checkout", "--", *paths)
        if returncode != 0:
            raise DiscardError(f"git checkout failed for {', '.join(paths)}", paths, returncode, stderr)
