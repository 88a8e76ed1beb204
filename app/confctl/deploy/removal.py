"""Safe removal of resources confctl no longer manages.

A previously deployed resource is only removed when it still looks like
what confctl put there. Anything else is reported as a SafetyViolation
and left in place.
"""

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from confctl.core.conflict import ConflictPrompt, NonInteractivePrompt
from confctl.deploy.base import remove_path
from confctl.models.state import DeploymentKind, ManagedFile
from confctl.utils.fileio import sha256_tree

logger = logging.getLogger(__name__)

# Symlinks pointing into these directories are never removed
SYSTEM_PREFIXES = ("/etc/", "/usr/", "/bin/")

# Copies without a recorded hash are only trusted this soon after deployment
RECENT_WINDOW_SECONDS = 5 * 60


@dataclass(frozen=True, slots=True)
class SafetyViolation:
    """Why a managed resource was not removed.

    Attributes:
        name: Resource name.
        destination: Path that was left in place.
        reason: Human-readable explanation.
    """

    name: str
    destination: str
    reason: str


@dataclass(frozen=True, slots=True)
class RemovalResult:
    """Outcome of removing one managed resource.

    Attributes:
        record: The state record of the resource.
        removed: Whether the resource was (or, in dry-run, would be) removed.
        violation: Safety check that refused the removal.
        restored_from: Backup restored in place of the removed resource.
        error: Error message when removal failed.
    """

    record: ManagedFile
    removed: bool = False
    violation: SafetyViolation | None = None
    restored_from: Path | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if removal hit an error (violations are not errors)."""
        return self.error is not None


def check_removal(
    record: ManagedFile,
    now: Callable[[], float] = time.time,
) -> SafetyViolation | None:
    """Check that a managed resource is still safe to remove.

    Args:
        record: The state record of the resource.
        now: Time source in epoch seconds.

    Returns:
        A SafetyViolation, or None if removal is safe.
    """
    destination = Path(record.destination)

    def violation(reason: str) -> SafetyViolation:
        return SafetyViolation(name=record.name, destination=record.destination, reason=reason)

    is_link = destination.is_symlink()
    if record.deployment == DeploymentKind.LINK:
        if not is_link:
            return violation("expected a symlink but found a regular file or directory")
        target = os.readlink(destination)
        if target.startswith(SYSTEM_PREFIXES):
            return violation(f"symlink points into a system directory: {target}")
        return None

    if is_link:
        return violation("expected a copied file but found a symlink")

    if record.content_hash is not None:
        try:
            current = sha256_tree(destination)
        except OSError as e:
            return violation(f"cannot verify content: {e}")
        if current != record.content_hash:
            return violation("content modified since deployment")
        return None

    try:
        modified_at = destination.stat().st_mtime
    except OSError as e:
        return violation(f"cannot inspect file: {e}")
    if now() - modified_at >= RECENT_WINDOW_SECONDS:
        return violation("file may have been modified since deployment")
    return None


class ResourceRemover:
    """Removes resources that left the configuration, with safety checks.

    Attributes:
        dry_run: If True, only report what would be removed.
    """

    def __init__(
        self,
        prompt: ConflictPrompt | None = None,
        dry_run: bool = False,
        interactive: bool = False,
        now: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the remover.

        Args:
            prompt: Used to offer restoring backups.
            dry_run: If True, only report what would be removed.
            interactive: Whether restoring backups may be offered.
            now: Time source in epoch seconds, replaceable in tests.
        """
        self._prompt: ConflictPrompt = prompt if prompt is not None else NonInteractivePrompt()
        self._dry_run = dry_run
        self._interactive = interactive
        self._now = now

    @property
    def dry_run(self) -> bool:
        """Check if remover is in dry-run mode."""
        return self._dry_run

    def remove(self, record: ManagedFile) -> RemovalResult:
        """Remove one previously managed resource.

        Args:
            record: The state record of the resource.

        Returns:
            RemovalResult describing what happened.
        """
        destination = Path(record.destination)
        if not os.path.lexists(destination):
            logger.debug("%s already removed", destination)
            return RemovalResult(record=record)

        violation = check_removal(record, now=self._now)
        if violation is not None:
            logger.warning("Not removing %s: %s", record.destination, violation.reason)
            return RemovalResult(record=record, violation=violation)

        if self._dry_run:
            logger.info("Dry-run: would remove %s", destination)
            return RemovalResult(record=record, removed=True)

        try:
            remove_path(destination)
        except OSError as e:
            logger.warning("Failed to remove %s: %s", destination, e)
            return RemovalResult(record=record, error=str(e))
        logger.info("Removed %s (%s)", record.name, destination)

        restored = self._offer_restore(record)
        return RemovalResult(record=record, removed=True, restored_from=restored)

    def _offer_restore(self, record: ManagedFile) -> Path | None:
        if record.backup_path is None:
            return None
        backup = Path(record.backup_path)
        if not os.path.lexists(backup):
            logger.debug("Backup %s no longer exists", backup)
            return None
        if not (self._interactive and self._prompt.is_terminal):
            logger.info("Backup of %s kept at %s", record.destination, backup)
            return None
        if not self._prompt.confirm_restore(Path(record.destination), backup):
            return None

        try:
            os.replace(backup, record.destination)
        except OSError as e:
            logger.warning("Failed to restore %s from %s: %s", record.destination, backup, e)
            return None
        logger.info("Restored %s from %s", record.destination, backup)
        return backup
