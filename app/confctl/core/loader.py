"""Configuration loading pipeline.

Resolves the include graph of a root document, then serves the merged
configuration from the fingerprint cache when it is still valid, and
merges (and caches) it otherwise.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from confctl.core.cache import FingerprintCache
from confctl.core.includes import IncludeResolver, ResolvedConfigSet
from confctl.core.merge import merge_documents
from confctl.models.config import LogicalConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoadResult:
    """A loaded configuration and where it came from.

    Attributes:
        config: The merged configuration.
        resolved: The documents it was merged from.
        from_cache: Whether the merge was served from the cache.
    """

    config: LogicalConfig
    resolved: ResolvedConfigSet
    from_cache: bool = False

    @property
    def paths(self) -> tuple[Path, ...]:
        """Document paths in resolution order, root first."""
        return self.resolved.paths


class ConfigLoader:
    """Loads a root document into a LogicalConfig.

    Example:
        >>> loader = ConfigLoader(cache=FingerprintCache(tmp_path))
        >>> result = loader.load(Path("confctl.toml"))
        >>> result.from_cache
        False
    """

    def __init__(
        self,
        resolver: IncludeResolver | None = None,
        cache: FingerprintCache | None = None,
        use_cache: bool = True,
    ) -> None:
        """Initialize the loader.

        Args:
            resolver: Include resolver. Defaults to one using the running system's facts.
            cache: Fingerprint cache. Defaults to the user cache directory.
            use_cache: If False, always merge and never touch the cache.
        """
        self._resolver = resolver if resolver is not None else IncludeResolver()
        self._cache = cache if cache is not None else FingerprintCache()
        self._use_cache = use_cache

    def load(self, root: Path) -> LoadResult:
        """Resolve, then load from cache or merge.

        Args:
            root: Path to the root document.

        Returns:
            LoadResult with the merged configuration.

        Raises:
            IncludeError: If the include graph cannot be resolved.
            DocumentError: If a document cannot be read, parsed or validated.
        """
        resolved = self._resolver.resolve(root)

        if self._use_cache:
            cached = self._cache.load(resolved.paths)
            if cached is not None:
                logger.debug("Using cached configuration for %s", resolved.root.path)
                return LoadResult(config=cached, resolved=resolved, from_cache=True)

        config = merge_documents(resolved.documents)
        if self._use_cache:
            self._cache.store(config, resolved.paths, resolved.mod_times)
        return LoadResult(config=config, resolved=resolved, from_cache=False)
