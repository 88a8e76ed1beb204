"""Terminal prompt for conflict resolution.

Implements the ConflictPrompt protocol with Rich prompts on stderr, so
stdout stays clean for piped output.
"""

import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax

from confctl.core.conflict import Conflict, PromptChoice
from confctl.models.state import DeploymentKind
from confctl.utils.formatting import err_console

_CHOICES: dict[str, PromptChoice] = {
    "s": PromptChoice.SKIP,
    "o": PromptChoice.OVERWRITE,
    "b": PromptChoice.BACKUP,
    "d": PromptChoice.DIFF,
    "q": PromptChoice.QUIT,
}


class TerminalConflictPrompt:
    """Asks conflict questions on the controlling terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console if console is not None else err_console

    @property
    def is_terminal(self) -> bool:
        """Whether both stdin and stderr are attached to a terminal."""
        return sys.stdin.isatty() and sys.stderr.isatty()

    def ask(self, conflict: Conflict) -> PromptChoice:
        """Ask how to handle a differing destination."""
        kind = "link" if conflict.deployment == DeploymentKind.LINK else "copy"
        self._console.print(
            f"\n[warning]Conflict:[/] [bold]{conflict.name}[/] ({kind})\n"
            f"  existing: {conflict.destination}\n"
            f"  desired:  {conflict.source}"
        )
        self._console.print(
            "  [s] skip  [o] overwrite  [b] backup and overwrite  [d] show diff  [q] quit"
        )
        answer = Prompt.ask(
            "Choice",
            choices=list(_CHOICES),
            default="s",
            console=self._console,
        )
        return _CHOICES[answer]

    def show_diff(self, conflict: Conflict, diff: str) -> None:
        """Display a unified diff."""
        self._console.print(Syntax(diff, "diff", theme="ansi_dark", word_wrap=True))

    def confirm_restore(self, destination: Path, backup_path: Path) -> bool:
        """Ask whether to put a backup back after removing a resource."""
        return Confirm.ask(
            f"Restore backup {backup_path} to {destination}?",
            default=False,
            console=self._console,
        )
