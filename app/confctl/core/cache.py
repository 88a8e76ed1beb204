"""Caches that let repeated runs skip work.

FingerprintCache stores merged configurations keyed by the ordered list
of source documents and validated against their modification times.
SystemStateCache remembers package installation probes for a fixed
time-to-live, since package state changes without any signal we could
observe.

Both caches are best-effort: a corrupt, unreadable or stale record is a
miss, and a failed write only costs a slower next run.
"""

import hashlib
import logging
import os
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from confctl.core.paths import get_cache_dir
from confctl.models.config import LogicalConfig
from confctl.models.package import PackageSource
from confctl.utils.fileio import write_atomic

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"
DEFAULT_PROBE_TTL = timedelta(hours=1)


class CacheError(Exception):
    """Raised internally when a cache record is unusable.

    Never escapes the cache classes; callers only ever see a miss.
    """


class CacheRecord(BaseModel):
    """A persisted merged configuration and the signature of its sources."""

    model_config = ConfigDict(extra="ignore")

    version: str = CACHE_VERSION
    config_hash: str
    source_paths: list[str]
    source_mod_times: dict[str, int]
    cached_at: datetime
    config: LogicalConfig


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Summary of the configuration cache directory.

    Attributes:
        entries: Number of cached configurations.
        size_bytes: Total size of the records.
        oldest: Modification time of the oldest record.
        newest: Modification time of the newest record.
    """

    entries: int
    size_bytes: int
    oldest: datetime | None = None
    newest: datetime | None = None


def cache_key(paths: Sequence[Path]) -> str:
    """Derive the cache key for an ordered list of document paths."""
    joined = "\n".join(str(path) for path in paths)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:16]


def config_hash(config: LogicalConfig) -> str:
    """Content hash of a merged configuration."""
    payload = config.model_dump_json(by_alias=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _mod_times(paths: Sequence[Path]) -> dict[str, int]:
    """Current modification times in nanoseconds.

    Raises:
        OSError: If any path cannot be stat'ed.
    """
    return {str(path): os.stat(path).st_mtime_ns for path in paths}


class FingerprintCache:
    """Caches merged configurations under ``<cache_dir>/config/<key>.json``.

    An entry is valid only while the resolved path list is identical in
    content and order, and every document's modification time equals the
    one recorded when the entry was stored.

    Attributes:
        cache_dir: Root cache directory.
    """

    SUBDIR = "config"

    def __init__(self, cache_dir: Path | None = None) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Optional override for the cache root.
                      Default: ~/.cache/confctl
        """
        self._cache_dir = cache_dir if cache_dir is not None else get_cache_dir()

    @property
    def directory(self) -> Path:
        """Directory holding the cache records."""
        return self._cache_dir / self.SUBDIR

    def record_path(self, paths: Sequence[Path]) -> Path:
        """Path of the record for an ordered document list."""
        return self.directory / f"{cache_key(paths)}.json"

    def load(self, paths: Sequence[Path]) -> LogicalConfig | None:
        """Return the cached configuration for these documents, if still valid.

        Args:
            paths: Resolved document paths, in resolution order.

        Returns:
            The cached LogicalConfig, or None on a miss.
        """
        try:
            record = self._read_record(self.record_path(paths))
            self._check_valid(record, paths)
        except CacheError as e:
            logger.debug("Config cache miss: %s", e)
            return None

        logger.debug("Config cache hit for %d document(s)", len(paths))
        return record.config

    def store(
        self,
        config: LogicalConfig,
        paths: Sequence[Path],
        mod_times: Mapping[str, int] | None = None,
    ) -> bool:
        """Persist a merged configuration for these documents.

        The record must carry the modification times the merged content was
        read at. A time taken now could already belong to a newer edit.

        Args:
            config: The merged configuration.
            paths: Resolved document paths, in resolution order.
            mod_times: Modification times observed when each document was
                read. Defaults to the current times on disk.

        Returns:
            True if the record was written, False if writing failed.
        """
        target = self.record_path(paths)
        try:
            record = CacheRecord(
                config_hash=config_hash(config),
                source_paths=[str(path) for path in paths],
                source_mod_times=dict(mod_times) if mod_times is not None else _mod_times(paths),
                cached_at=datetime.now(UTC),
                config=config,
            )
            write_atomic(target, record.model_dump_json(by_alias=True, indent=2).encode("utf-8"))
        except OSError as e:
            logger.warning("Failed to write config cache %s: %s", target, e)
            return False

        logger.debug("Stored config cache %s", target)
        return True

    def clear(self) -> int:
        """Delete every cached configuration.

        Returns:
            Number of records removed.
        """
        if not self.directory.is_dir():
            return 0

        removed = 0
        for record in self.directory.glob("*.json"):
            try:
                record.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Failed to remove cache record %s: %s", record, e)
        return removed

    def stats(self) -> CacheStats:
        """Summarize the cache directory."""
        if not self.directory.is_dir():
            return CacheStats(entries=0, size_bytes=0)

        sizes: list[int] = []
        mtimes: list[float] = []
        for record in self.directory.glob("*.json"):
            try:
                info = record.stat()
            except OSError:
                continue
            sizes.append(info.st_size)
            mtimes.append(info.st_mtime)

        if not sizes:
            return CacheStats(entries=0, size_bytes=0)
        return CacheStats(
            entries=len(sizes),
            size_bytes=sum(sizes),
            oldest=datetime.fromtimestamp(min(mtimes), UTC),
            newest=datetime.fromtimestamp(max(mtimes), UTC),
        )

    def _read_record(self, path: Path) -> CacheRecord:
        if not path.is_file():
            msg = f"no record at {path}"
            raise CacheError(msg)
        try:
            return CacheRecord.model_validate_json(path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            msg = f"unreadable record {path}: {e}"
            raise CacheError(msg) from e

    def _check_valid(self, record: CacheRecord, paths: Sequence[Path]) -> None:
        requested = [str(path) for path in paths]
        if record.source_paths != requested:
            msg = "document list changed"
            raise CacheError(msg)

        for path in requested:
            try:
                current = os.stat(path).st_mtime_ns
            except OSError as e:
                msg = f"cannot stat {path}: {e}"
                raise CacheError(msg) from e
            if record.source_mod_times.get(path) != current:
                msg = f"{path} modified since it was cached"
                raise CacheError(msg)


class ProbeRecord(BaseModel):
    """One remembered installation probe."""

    model_config = ConfigDict(extra="ignore")

    installed: bool
    checked_at: float


class SystemStateRecord(BaseModel):
    """Persisted probe results, per package manager."""

    model_config = ConfigDict(extra="ignore")

    version: str = CACHE_VERSION
    managers: dict[str, dict[str, ProbeRecord]] = Field(default_factory=dict)


class SystemStateCache:
    """Remembers package installation probes for a fixed time window.

    Stored at ``<cache_dir>/system_state.json``. A probe older than the
    TTL is a miss.
    """

    FILENAME = "system_state.json"

    def __init__(
        self,
        cache_dir: Path | None = None,
        ttl: timedelta = DEFAULT_PROBE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Optional override for the cache root.
            ttl: How long a probe result stays valid.
            clock: Time source in epoch seconds, replaceable in tests.
        """
        self._cache_dir = cache_dir if cache_dir is not None else get_cache_dir()
        self._ttl = ttl
        self._clock = clock
        self._record: SystemStateRecord | None = None
        self._dirty = False

    @property
    def path(self) -> Path:
        """Path of the persisted probe record."""
        return self._cache_dir / self.FILENAME

    def lookup(self, source: PackageSource, package: str) -> bool | None:
        """Return a fresh probe result, or None on a miss.

        Args:
            source: Package manager.
            package: Package name.

        Returns:
            True/False for a fresh remembered probe, None otherwise.
        """
        probe = self._load().managers.get(source.value, {}).get(package)
        if probe is None:
            return None
        if self._clock() - probe.checked_at > self._ttl.total_seconds():
            logger.debug("Probe for %s %s expired", source.value, package)
            return None
        return probe.installed

    def record(self, source: PackageSource, package: str, installed: bool) -> None:
        """Remember a probe result."""
        managers = self._load().managers
        managers.setdefault(source.value, {})[package] = ProbeRecord(
            installed=installed,
            checked_at=self._clock(),
        )
        self._dirty = True

    def invalidate(self, source: PackageSource, packages: Sequence[str]) -> None:
        """Forget probes for packages whose state was just changed."""
        entries = self._load().managers.get(source.value, {})
        for package in packages:
            if entries.pop(package, None) is not None:
                self._dirty = True

    def save(self) -> bool:
        """Persist remembered probes if anything changed.

        Returns:
            True if nothing needed writing or the write succeeded.
        """
        if not self._dirty or self._record is None:
            return True
        try:
            write_atomic(self.path, self._record.model_dump_json(indent=2).encode("utf-8"))
        except OSError as e:
            logger.warning("Failed to write system state cache %s: %s", self.path, e)
            return False
        self._dirty = False
        return True

    def clear(self) -> bool:
        """Delete the persisted probe record.

        Returns:
            True if a record was removed.
        """
        self._record = None
        self._dirty = False
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to remove system state cache %s: %s", self.path, e)
            return False
        return True

    def _load(self) -> SystemStateRecord:
        if self._record is not None:
            return self._record

        self._record = SystemStateRecord()
        if self.path.is_file():
            try:
                self._record = SystemStateRecord.model_validate_json(self.path.read_bytes())
            except (OSError, ValidationError, ValueError) as e:
                logger.debug("Ignoring unreadable system state cache %s: %s", self.path, e)
        return self._record
