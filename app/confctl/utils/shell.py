"""Subprocess helpers for package managers, dconf and downloads."""

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one external command.

    Attributes:
        stdout: Standard output.
        stderr: Standard error.
        returncode: Exit status.
        command: The argument vector that was run, for messages only.
    """

    stdout: str
    stderr: str
    returncode: int
    command: tuple[str, ...] = field(default=(), compare=False)

    @property
    def success(self) -> bool:
        """Check if the command exited with status zero."""
        return self.returncode == 0

    @property
    def error_text(self) -> str:
        """Best available failure description."""
        return self.stderr.strip() or self.stdout.strip() or f"exit code {self.returncode}"

    @property
    def display(self) -> str:
        """The command as a shell-quoted string."""
        return shlex.join(self.command)


def run_command(args: list[str], *, timeout: float | None = 60.0) -> CommandResult:
    """Run a command to completion, capturing its output.

    A non-zero exit status is reported through the result, never raised.

    Args:
        args: Command and arguments.
        timeout: Seconds to wait before giving up, None to wait forever.

    Returns:
        CommandResult with the captured output.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds the timeout.
        FileNotFoundError: If the executable does not exist.
    """
    logger.debug("Running %s", shlex.join(args))
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
    )
    result = CommandResult(
        stdout=completed.stdout,
        stderr=completed.stderr,
        returncode=completed.returncode,
        command=tuple(args),
    )
    if not result.success:
        logger.debug("%s exited with %d", result.display, result.returncode)
    return result


def command_exists(name: str) -> bool:
    """Check if an executable is on PATH."""
    return shutil.which(name) is not None
