"""Conflict resolution for resources that already exist at their destination.

Before a file or binary is placed, the ConflictResolver decides what to
do with whatever occupies the destination:

1. Nothing there: proceed.
2. Already identical: skip, nothing to do.
3. Different, non-interactive: back up first when the resource asks for
   backups, otherwise replace it.
4. Different, interactive: ask through the injected ConflictPrompt.

Asking for a diff is a side query and leads back to the same question.
"""

import difflib
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

from confctl.models.state import DeploymentKind
from confctl.utils.fileio import sha256_tree

logger = logging.getLogger(__name__)

BACKUP_MARKER = ".backup."
_MAX_DIFF_BYTES = 1024 * 1024


class ConflictError(Exception):
    """Base exception for conflict resolution outcomes that stop work."""


class RunCancelledError(ConflictError):
    """Raised when the user chooses to quit the whole run."""


class DecisionKind(Enum):
    """What to do with an occupied destination."""

    PROCEED = "proceed"
    SKIP_NOOP = "skip_noop"
    BACKUP = "backup"
    ABORT = "abort"


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of resolving one conflict.

    Attributes:
        kind: The decision.
        backup_path: Where the existing resource is moved (BACKUP only).
        cancel_run: Whether the whole run should stop (ABORT only).
    """

    kind: DecisionKind
    backup_path: Path | None = None
    cancel_run: bool = False

    @classmethod
    def proceed(cls) -> "Decision":
        return cls(DecisionKind.PROCEED)

    @classmethod
    def skip_noop(cls) -> "Decision":
        return cls(DecisionKind.SKIP_NOOP)

    @classmethod
    def backup(cls, path: Path) -> "Decision":
        return cls(DecisionKind.BACKUP, backup_path=path)

    @classmethod
    def abort(cls, cancel_run: bool = False) -> "Decision":
        return cls(DecisionKind.ABORT, cancel_run=cancel_run)


@dataclass(frozen=True, slots=True)
class Conflict:
    """A resource about to be placed at a destination.

    Attributes:
        name: Resource name from the configuration.
        source: Absolute path of the desired content.
        destination: Absolute destination path.
        deployment: Symlink or copy.
        backup_enabled: Whether a differing destination should be backed up.
        interactive: Whether the resource asks to be confirmed interactively.
    """

    name: str
    source: Path
    destination: Path
    deployment: DeploymentKind
    backup_enabled: bool = False
    interactive: bool = False


class PromptChoice(Enum):
    """Answers a user can give to a conflict question."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    BACKUP = "backup"
    DIFF = "diff"
    QUIT = "quit"


class ConflictPrompt(Protocol):
    """Asks the user how to handle conflicts."""

    @property
    def is_terminal(self) -> bool:
        """Whether a user can actually be asked."""
        ...

    def ask(self, conflict: Conflict) -> PromptChoice:
        """Ask how to handle a differing destination."""
        ...

    def show_diff(self, conflict: Conflict, diff: str) -> None:
        """Display a diff between destination and source."""
        ...

    def confirm_restore(self, destination: Path, backup_path: Path) -> bool:
        """Ask whether to restore a backup after removing a resource."""
        ...


class NonInteractivePrompt:
    """Prompt used without a terminal: answers with the non-interactive policy."""

    @property
    def is_terminal(self) -> bool:
        return False

    def ask(self, conflict: Conflict) -> PromptChoice:
        return PromptChoice.BACKUP if conflict.backup_enabled else PromptChoice.OVERWRITE

    def show_diff(self, conflict: Conflict, diff: str) -> None:
        logger.debug("Diff for %s not shown without a terminal", conflict.destination)

    def confirm_restore(self, destination: Path, backup_path: Path) -> bool:
        return False


def is_identical(source: Path, destination: Path, deployment: DeploymentKind) -> bool:
    """Check if a destination already holds exactly the desired resource.

    Args:
        source: Absolute path of the desired content.
        destination: Absolute destination path.
        deployment: Symlink (compare link target) or copy (compare content).

    Returns:
        True if placing the resource would change nothing.
    """
    if deployment == DeploymentKind.LINK:
        if not destination.is_symlink():
            return False
        target = Path(os.readlink(destination))
        if not target.is_absolute():
            target = destination.parent / target
        return os.path.abspath(target) == os.path.abspath(source)

    if destination.is_symlink() or not destination.exists() or not source.exists():
        return False
    if destination.is_dir() != source.is_dir():
        return False
    try:
        return sha256_tree(destination) == sha256_tree(source)
    except OSError as e:
        logger.debug("Cannot compare %s with %s: %s", destination, source, e)
        return False


def backup_path_for(destination: Path, now: datetime) -> Path:
    """Pick a timestamped backup path that does not exist yet.

    Args:
        destination: The path being backed up.
        now: Timestamp to embed.

    Returns:
        ``<destination>.backup.<YYYYmmdd-HHMMSS>``, with ``.N`` appended
        when that name is already taken.
    """
    base = f"{destination}{BACKUP_MARKER}{now:%Y%m%d-%H%M%S}"
    candidate = Path(base)
    counter = 1
    while os.path.lexists(candidate):
        candidate = Path(f"{base}.{counter}")
        counter += 1
    return candidate


def render_diff(destination: Path, source: Path) -> str:
    """Unified diff from the existing destination to the desired source."""
    if destination.is_dir() or source.is_dir():
        return f"Directories {destination} and {source} differ\n"
    try:
        if destination.stat().st_size > _MAX_DIFF_BYTES or source.stat().st_size > _MAX_DIFF_BYTES:
            return f"Files {destination} and {source} are too large to diff\n"
        old = destination.read_text(encoding="utf-8").splitlines(keepends=True)
        new = source.read_text(encoding="utf-8").splitlines(keepends=True)
    except UnicodeDecodeError:
        return f"Binary files {destination} and {source} differ\n"
    except OSError as e:
        return f"Cannot diff {destination} and {source}: {e}\n"

    diff = "".join(
        difflib.unified_diff(old, new, fromfile=str(destination), tofile=str(source))
    )
    return diff or "No textual differences\n"


class ConflictResolver:
    """Decides how to handle each occupied destination.

    Attributes:
        interactive: Whether the whole run asks about every conflict.
    """

    def __init__(
        self,
        prompt: ConflictPrompt | None = None,
        interactive: bool = False,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the resolver.

        Args:
            prompt: How to ask the user. Defaults to a non-interactive prompt.
            interactive: Ask about every conflict, not only interactive resources.
            now: Time source for backup names, replaceable in tests.
        """
        self._prompt: ConflictPrompt = prompt if prompt is not None else NonInteractivePrompt()
        self._interactive = interactive
        self._now = now

    @property
    def prompt(self) -> ConflictPrompt:
        """The prompt used for interactive questions."""
        return self._prompt

    def can_ask(self, conflict: Conflict | None = None) -> bool:
        """Check if the user should be asked about a conflict."""
        wants_prompt = self._interactive or (conflict is not None and conflict.interactive)
        return wants_prompt and self._prompt.is_terminal

    def resolve(self, conflict: Conflict) -> Decision:
        """Decide how to handle a destination.

        Args:
            conflict: The resource about to be placed.

        Returns:
            The decision for this resource.
        """
        destination = conflict.destination
        if not os.path.lexists(destination):
            return Decision.proceed()

        if is_identical(conflict.source, destination, conflict.deployment):
            logger.debug("%s already up to date", destination)
            return Decision.skip_noop()

        if not self.can_ask(conflict):
            if conflict.backup_enabled:
                return Decision.backup(backup_path_for(destination, self._now()))
            return Decision.proceed()

        while True:
            choice = self._prompt.ask(conflict)
            if choice == PromptChoice.DIFF:
                self._prompt.show_diff(conflict, render_diff(destination, conflict.source))
                continue
            if choice == PromptChoice.OVERWRITE:
                return Decision.proceed()
            if choice == PromptChoice.BACKUP:
                return Decision.backup(backup_path_for(destination, self._now()))
            if choice == PromptChoice.QUIT:
                logger.info("Run cancelled at %s", destination)
                return Decision.abort(cancel_run=True)
            logger.info("Skipping %s at user request", destination)
            return Decision.abort()
