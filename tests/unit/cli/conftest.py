"""Fixtures shared by CLI tests."""

from pathlib import Path

import pytest


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Directory standing in for the user's home."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def sample_config(write_doc, home: Path, xdg_dirs: dict[str, Path]) -> Path:
    """A root document including a shared document, with one dotfile."""
    write_doc("dotfiles/bashrc", "alias ll='ls -l'\n")
    write_doc("shared.toml", '[packages]\napt = ["git"]\n')
    return write_doc(
        "confctl.toml",
        'includes = ["shared.toml"]\n'
        "[files.bashrc]\n"
        'source = "dotfiles/bashrc"\n'
        f"destination = '{home / '.bashrc'}'\n",
    )
