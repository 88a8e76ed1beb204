"""Backup retention.

Prunes ``<destination>.backup.*`` files next to managed destinations
according to the configured BackupPolicy.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from confctl.core.conflict import BACKUP_MARKER
from confctl.deploy.base import remove_path
from confctl.models.config import BackupPolicy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PruneResult:
    """Backups removed (or, in dry-run, that would be removed).

    Attributes:
        removed: Backup paths deleted.
        failed: Backup paths that could not be deleted.
    """

    removed: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)


def find_backups(destination: Path) -> list[Path]:
    """List backups of a destination, newest first.

    Args:
        destination: The managed destination.

    Returns:
        Existing backup paths sorted by modification time, newest first.
    """
    parent = destination.parent
    if not parent.is_dir():
        return []
    prefix = destination.name + BACKUP_MARKER
    backups: list[tuple[float, Path]] = []
    for candidate in parent.iterdir():
        if not candidate.name.startswith(prefix):
            continue
        try:
            backups.append((candidate.lstat().st_mtime, candidate))
        except OSError:
            continue
    return [path for _, path in sorted(backups, key=lambda item: item[0], reverse=True)]


def prune_backups(
    destinations: Iterable[Path],
    policy: BackupPolicy,
    *,
    dry_run: bool = False,
    now: Callable[[], float] = time.time,
) -> PruneResult:
    """Delete backups exceeding the policy's count or age limits.

    Args:
        destinations: Managed destinations whose backups are considered.
        policy: Retention rules.
        dry_run: If True, only report what would be removed.
        now: Time source in epoch seconds.

    Returns:
        PruneResult listing removed and failed paths.
    """
    result = PruneResult()
    if not policy.is_active:
        return result

    max_age = policy.max_age_seconds
    current = now()
    for destination in dict.fromkeys(destinations):
        for index, backup in enumerate(find_backups(destination)):
            too_many = policy.max_count is not None and index >= policy.max_count
            too_old = False
            if max_age is not None:
                try:
                    too_old = current - backup.lstat().st_mtime > max_age
                except OSError:
                    continue
            if not (too_many or too_old):
                continue

            if dry_run:
                logger.info("Dry-run: would remove backup %s", backup)
                result.removed.append(backup)
                continue
            try:
                remove_path(backup)
            except OSError as e:
                logger.warning("Failed to remove backup %s: %s", backup, e)
                result.failed.append(backup)
                continue
            logger.debug("Removed backup %s", backup)
            result.removed.append(backup)

    if result.removed:
        logger.info("Pruned %d backup(s)", len(result.removed))
    return result
