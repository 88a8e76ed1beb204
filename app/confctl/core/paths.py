"""XDG-compliant path management for confctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and cache storage.

XDG defaults:
- Config: ~/.config/confctl/
- Cache: ~/.cache/confctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "confctl"

# Conventional names used when resolving documents
ROOT_DOCUMENT_NAME = "confctl.toml"
DEFAULT_DOCUMENT_NAME = "default.toml"
DOCUMENT_EXTENSION = ".toml"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    The applied-state record lives here because it describes what the
    user's configuration last produced on this machine.

    Returns:
        Path to ~/.config/confctl/ (or XDG_CONFIG_HOME/confctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Cache data includes resolved configurations and package probe
    results, all of which can be regenerated.

    Returns:
        Path to ~/.cache/confctl/ (or XDG_CACHE_HOME/confctl/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_state_path() -> Path:
    """Get the applied-state file path.

    Returns:
        Path to ~/.config/confctl/state.json.
    """
    return get_config_dir() / "state.json"


def get_staging_dir() -> Path:
    """Get the directory where downloaded binaries are staged.

    Returns:
        Path to ~/.cache/confctl/staging/.
    """
    return get_cache_dir() / "staging"


def get_root_document_candidates() -> list[Path]:
    """List the locations searched for the root configuration document.

    Returns:
        Candidate paths in search order.
    """
    return [
        Path.cwd() / ROOT_DOCUMENT_NAME,
        get_config_dir() / ROOT_DOCUMENT_NAME,
        Path.home() / ROOT_DOCUMENT_NAME,
        Path("/etc") / APP_NAME / ROOT_DOCUMENT_NAME,
    ]


def find_root_document(explicit: Path | None = None) -> Path:
    """Locate the root configuration document.

    Args:
        explicit: Path given on the command line, used as-is when set.

    Returns:
        Absolute path to the root document.

    Raises:
        FileNotFoundError: If no explicit path is given and none of the
            standard locations holds a document.
    """
    if explicit is not None:
        return Path(os.path.abspath(explicit.expanduser()))

    candidates = get_root_document_candidates()
    for candidate in candidates:
        if candidate.is_file():
            return Path(os.path.abspath(candidate))

    searched = ", ".join(str(c) for c in candidates)
    msg = f"No configuration found in standard locations: {searched}"
    raise FileNotFoundError(msg)
