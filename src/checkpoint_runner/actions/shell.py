"""Shell actions - Run external commands asynchronously."""

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a finished command."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


async def run_command(
    command: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    allowed_codes: tuple[int, ...] = (),
) -> CommandResult:
    """
    Run a shell command and capture its output.

    Args:
        command: Command line, interpreted by the system shell
        cwd: Working directory (default: current directory)
        env: Extra environment variables, merged over os.environ
        check: Raise CommandError on a non-zero exit status
        allowed_codes: Non-zero exit codes that are not treated as failures

    Returns:
        CommandResult with decoded stdout/stderr

    Raises:
        CommandError: Command failed and check is True
    """
    full_env = {**os.environ, **env} if env else None
    logger.debug(f"Running: {command}")

    process = await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        env=full_env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()

    result = CommandResult(
        command=command,
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )

    if check and not result.success and result.returncode not in allowed_codes:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)

    return result
