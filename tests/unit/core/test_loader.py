"""Unit tests for the configuration loading pipeline."""

import os
from pathlib import Path

from confctl.core.cache import FingerprintCache
from confctl.core.includes import IncludeResolver, ResolvedConfigSet, SystemFacts
from confctl.core.loader import ConfigLoader


class TestConfigLoader:
    """Tests for ConfigLoader class."""

    def test_first_load_merges_and_caches(
        self, write_doc, tmp_path: Path, facts: SystemFacts
    ) -> None:
        """A cold load merges documents and stores the result."""
        root = write_doc("confctl.toml", 'includes = ["a.toml"]\n[packages]\napt = ["git"]\n')
        write_doc("a.toml", '[packages]\napt = ["curl"]\n')
        cache = FingerprintCache(tmp_path / "cache")
        loader = ConfigLoader(IncludeResolver(facts=facts), cache)

        result = loader.load(root)

        assert result.from_cache is False
        assert [e.name for e in result.config.packages.apt] == ["curl", "git"]
        assert cache.load(result.paths) == result.config

    def test_second_load_hits_cache(self, write_doc, tmp_path: Path, facts: SystemFacts) -> None:
        """An unchanged include tree is served from the cache."""
        root = write_doc("confctl.toml", '[packages]\napt = ["git"]\n')
        loader = ConfigLoader(IncludeResolver(facts=facts), FingerprintCache(tmp_path / "cache"))

        first = loader.load(root)
        second = loader.load(root)

        assert second.from_cache is True
        assert second.config == first.config

    def test_edit_is_picked_up(self, write_doc, tmp_path: Path, facts: SystemFacts) -> None:
        """Editing an included document forces a fresh merge."""
        root = write_doc("confctl.toml", 'includes = ["a.toml"]\n')
        included = write_doc("a.toml", '[packages]\napt = ["curl"]\n')
        loader = ConfigLoader(IncludeResolver(facts=facts), FingerprintCache(tmp_path / "cache"))
        loader.load(root)

        included.write_text('[packages]\napt = ["wget"]\n')
        info = included.stat()
        os.utime(included, ns=(info.st_atime_ns, info.st_mtime_ns + 1_000_000))

        result = loader.load(root)

        assert result.from_cache is False
        assert [e.name for e in result.config.packages.apt] == ["wget"]

    def test_cache_disabled(self, write_doc, tmp_path: Path, facts: SystemFacts) -> None:
        """use_cache=False neither reads nor writes the cache."""
        root = write_doc("confctl.toml", "")
        cache = FingerprintCache(tmp_path / "cache")
        loader = ConfigLoader(IncludeResolver(facts=facts), cache, use_cache=False)

        loader.load(root)
        result = loader.load(root)

        assert result.from_cache is False
        assert cache.stats().entries == 0

    def test_edit_during_load_is_not_served_stale(
        self, write_doc, tmp_path: Path, facts: SystemFacts
    ) -> None:
        """A document saved between reading and caching is re-merged next time."""
        root = write_doc("confctl.toml", '[packages]\napt = ["curl"]\n')

        class EditingResolver(IncludeResolver):
            """Saves a new root right after the documents were read."""

            edited = False

            def resolve(self, path: Path) -> ResolvedConfigSet:
                resolved = super().resolve(path)
                if not self.edited:
                    self.edited = True
                    root.write_text('[packages]\napt = ["wget"]\n')
                    info = root.stat()
                    os.utime(root, ns=(info.st_atime_ns, info.st_mtime_ns + 1_000_000))
                return resolved

        loader = ConfigLoader(EditingResolver(facts=facts), FingerprintCache(tmp_path / "cache"))

        first = loader.load(root)
        second = loader.load(root)

        assert [e.name for e in first.config.packages.apt] == ["curl"]
        assert second.from_cache is False
        assert [e.name for e in second.config.packages.apt] == ["wget"]
