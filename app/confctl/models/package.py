"""Package source definitions shared by configuration, state and operators."""

from enum import Enum


class PackageSource(Enum):
    """Enumeration of supported package managers."""

    APT = "apt"
    FLATPAK = "flatpak"
    SNAP = "snap"


# Flags used when neither the package nor package_defaults specify any.
# apt: non-interactive, no recommended packages
# flatpak: system-wide install, assume yes
# snap: snaps are non-interactive by default
BUILTIN_DEFAULT_FLAGS: dict[PackageSource, tuple[str, ...]] = {
    PackageSource.APT: ("-y", "--no-install-recommends"),
    PackageSource.FLATPAK: ("--system", "--assumeyes"),
    PackageSource.SNAP: (),
}


def get_builtin_flags(source: PackageSource) -> list[str]:
    """Return a copy of the built-in default flags for a package manager.

    Args:
        source: Package manager to look up.

    Returns:
        List of flags, empty if the manager has none.
    """
    return list(BUILTIN_DEFAULT_FLAGS.get(source, ()))
