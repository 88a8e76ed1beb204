"""Unit tests for backup retention."""

import os
from pathlib import Path

import pytest

from confctl.deploy.backups import find_backups, prune_backups
from confctl.models.config import BackupPolicy

NOW = 1_800_000_000.0
DAY = 86400


@pytest.fixture
def destination(tmp_path: Path) -> Path:
    """A destination with three backups, 1, 10 and 40 days old."""
    target = tmp_path / ".bashrc"
    target.write_text("current")
    for days in (1, 10, 40):
        backup = tmp_path / f".bashrc.backup.{days:02d}"
        backup.write_text(str(days))
        os.utime(backup, (NOW - days * DAY, NOW - days * DAY))
    (tmp_path / ".bashrc_other").write_text("unrelated")
    return target


class TestFindBackups:
    """Tests for find_backups function."""

    def test_newest_first(self, destination: Path) -> None:
        """Backups are listed newest first, unrelated files ignored."""
        names = [p.name for p in find_backups(destination)]

        assert names == [".bashrc.backup.01", ".bashrc.backup.10", ".bashrc.backup.40"]

    def test_missing_parent(self, tmp_path: Path) -> None:
        """A destination in a missing directory has no backups."""
        assert find_backups(tmp_path / "nope" / "file") == []


class TestPruneBackups:
    """Tests for prune_backups function."""

    def test_max_count(self, destination: Path) -> None:
        """Only the newest max_count backups are kept."""
        result = prune_backups([destination], BackupPolicy(max_count=2), now=lambda: NOW)

        assert [p.name for p in result.removed] == [".bashrc.backup.40"]
        assert [p.name for p in find_backups(destination)] == [
            ".bashrc.backup.01",
            ".bashrc.backup.10",
        ]

    def test_max_age(self, destination: Path) -> None:
        """Backups older than max_age are removed."""
        result = prune_backups([destination], BackupPolicy(max_age="7d"), now=lambda: NOW)

        assert sorted(p.name for p in result.removed) == [".bashrc.backup.10", ".bashrc.backup.40"]

    def test_dry_run(self, destination: Path) -> None:
        """Dry runs report without deleting."""
        result = prune_backups(
            [destination], BackupPolicy(max_count=0), dry_run=True, now=lambda: NOW
        )

        assert len(result.removed) == 3
        assert len(find_backups(destination)) == 3

    def test_inactive_policy(self, destination: Path) -> None:
        """An empty policy prunes nothing."""
        assert prune_backups([destination], BackupPolicy()).removed == []
