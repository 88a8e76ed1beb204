"""Unit tests for package source definitions."""

from confctl.models.package import BUILTIN_DEFAULT_FLAGS, PackageSource, get_builtin_flags


class TestPackageSource:
    """Tests for PackageSource enum."""

    def test_values(self) -> None:
        """PackageSource covers the supported managers."""
        assert [s.value for s in PackageSource] == ["apt", "flatpak", "snap"]

    def test_every_source_has_builtin_flags(self) -> None:
        """Each manager has a built-in flag entry, possibly empty."""
        assert set(BUILTIN_DEFAULT_FLAGS) == set(PackageSource)


class TestGetBuiltinFlags:
    """Tests for get_builtin_flags function."""

    def test_apt_flags(self) -> None:
        """APT installs non-interactively without recommends."""
        assert get_builtin_flags(PackageSource.APT) == ["-y", "--no-install-recommends"]

    def test_snap_has_none(self) -> None:
        """Snap needs no flags by default."""
        assert get_builtin_flags(PackageSource.SNAP) == []

    def test_returns_copy(self) -> None:
        """Mutating the result does not affect the defaults."""
        flags = get_builtin_flags(PackageSource.FLATPAK)
        flags.append("--user")

        assert "--user" not in get_builtin_flags(PackageSource.FLATPAK)
