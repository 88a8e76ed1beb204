"""Unit tests for the configuration merger.

Tests for fold order, override semantics and list accumulation.
"""

from pathlib import Path

import pytest

from confctl.core.document import DocumentValidationError, load_document
from confctl.core.includes import IncludeResolver, SystemFacts
from confctl.core.merge import merge_documents, merge_order
from confctl.models.package import PackageSource


def merged(root: Path, facts: SystemFacts):
    return merge_documents(IncludeResolver(facts=facts).resolve(root).documents)


class TestMergeOrder:
    """Tests for merge_order function."""

    def test_root_is_last(self, write_doc) -> None:
        """The root document is folded after everything it includes."""
        root = load_document(write_doc("confctl.toml", ""))
        a = load_document(write_doc("a.toml", ""))
        b = load_document(write_doc("b.toml", ""))

        assert merge_order([root, a, b]) == [a, b, root]

    def test_empty(self) -> None:
        """No documents, nothing to fold."""
        assert merge_order([]) == []


class TestMergeDocuments:
    """Tests for merge_documents function."""

    def test_root_overrides_included_scalars(self, write_doc, facts: SystemFacts) -> None:
        """Root values win over included values for the same key."""
        root = write_doc(
            "confctl.toml",
            'includes = ["base.toml"]\n'
            "[files.bashrc]\n"
            'source = "dotfiles/bashrc-root"\n'
            'destination = "~/.bashrc"\n'
            "[dconf.settings]\n"
            '"/org/gnome/desktop/interface/color-scheme" = "\'prefer-dark\'"\n',
        )
        write_doc(
            "base.toml",
            "[files.bashrc]\n"
            'source = "dotfiles/bashrc-base"\n'
            'destination = "~/.bashrc"\n'
            "[files.vimrc]\n"
            'source = "vimrc"\n'
            'destination = "~/.vimrc"\n'
            "[dconf.settings]\n"
            '"/org/gnome/desktop/interface/color-scheme" = "\'default\'"\n'
            '"/org/gnome/desktop/interface/clock-format" = "\'24h\'"\n',
        )

        config = merged(root, facts)

        assert config.files["bashrc"].source == "dotfiles/bashrc-root"
        assert set(config.files) == {"bashrc", "vimrc"}
        assert config.dconf == {
            "/org/gnome/desktop/interface/color-scheme": "'prefer-dark'",
            "/org/gnome/desktop/interface/clock-format": "'24h'",
        }

    def test_package_lists_accumulate(self, write_doc, facts: SystemFacts) -> None:
        """Package lists concatenate in fold order instead of overriding."""
        root = write_doc(
            "confctl.toml",
            'includes = ["a.toml", "b.toml"]\n[packages]\napt = ["git"]\n',
        )
        write_doc("a.toml", '[packages]\napt = ["curl"]\nsnap = ["code"]\n')
        write_doc("b.toml", '[packages]\napt = [{ name = "vim", flags = ["-y"] }]\n')

        config = merged(root, facts)

        assert [e.name for e in config.packages.apt] == ["curl", "vim", "git"]
        assert config.packages.apt[1].flags == ("-y",)
        assert [e.name for e in config.packages.for_source(PackageSource.SNAP)] == ["code"]

    def test_base_dir_is_declaring_document(
        self, write_doc, config_root: Path, facts: SystemFacts
    ) -> None:
        """Relative sources resolve against the document that declared them."""
        root = write_doc("confctl.toml", 'includes = ["shell/default.toml"]\n')
        write_doc(
            "shell/default.toml",
            '[files.zshrc]\nsource = "zshrc"\ndestination = "~/.zshrc"\n',
        )

        config = merged(root, facts)

        assert config.files["zshrc"].source_path() == config_root / "shell" / "zshrc"

    def test_backup_policy_merges_declared_fields(self, write_doc, facts: SystemFacts) -> None:
        """Only fields a later document declares override earlier ones."""
        root = write_doc(
            "confctl.toml",
            'includes = ["base.toml"]\n[backup_policy]\nmax_age = "30d"\n',
        )
        write_doc("base.toml", "[backup_policy]\nmax_count = 3\n")

        config = merged(root, facts)

        assert config.backup_policy is not None
        assert config.backup_policy.max_count == 3
        assert config.backup_policy.max_age == "30d"

    def test_package_defaults_override_per_manager(self, write_doc, facts: SystemFacts) -> None:
        """package_defaults are replaced per manager, not concatenated."""
        root = write_doc(
            "confctl.toml",
            'includes = ["base.toml"]\n[package_defaults]\napt = ["-y"]\n',
        )
        write_doc("base.toml", '[package_defaults]\napt = ["-q"]\nsnap = ["--classic"]\n')

        config = merged(root, facts)

        assert config.package_defaults == {"apt": ["-y"], "snap": ["--classic"]}

    def test_default_version(self, write_doc, facts: SystemFacts) -> None:
        """A configuration without version gets the current schema version."""
        assert merged(write_doc("confctl.toml", ""), facts).version == "1.0"

    def test_unknown_key_is_rejected(self, write_doc, facts: SystemFacts) -> None:
        """Unknown top-level keys fail validation with the document path."""
        root = write_doc("confctl.toml", "[repositories]\nppa = []\n")

        with pytest.raises(DocumentValidationError, match="confctl.toml"):
            merged(root, facts)

    def test_unknown_package_manager_in_defaults(self, write_doc, facts: SystemFacts) -> None:
        """package_defaults may only name supported managers."""
        root = write_doc("confctl.toml", '[package_defaults]\nbrew = ["-q"]\n')

        with pytest.raises(DocumentValidationError, match="brew"):
            merged(root, facts)
