"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from confctl.core.includes import SystemFacts
from confctl.models.action import ActionResult, ActionType
from confctl.models.package import PackageSource
from confctl.operators.base import Operator

WriteDocument = Callable[[str, str], Path]


@pytest.fixture
def xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point every XDG base directory into a temporary location."""
    dirs = {
        "config": tmp_path / "xdg-config",
        "cache": tmp_path / "xdg-cache",
    }
    monkeypatch.setenv("XDG_CONFIG_HOME", str(dirs["config"]))
    monkeypatch.setenv("XDG_CACHE_HOME", str(dirs["cache"]))
    return dirs


@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    """Directory holding test configuration documents."""
    root = tmp_path / "conf"
    root.mkdir()
    return root


@pytest.fixture
def write_doc(config_root: Path) -> WriteDocument:
    """Write a TOML document below the config root and return its path."""

    def _write(relative: str, content: str) -> Path:
        path = config_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def facts() -> SystemFacts:
    """Fixed system facts for include conditions."""
    return SystemFacts(os_name="linux", hostname="workstation", environ={"DESKTOP": "gnome"})


class FakeOperator(Operator):
    """In-memory package operator recording every call."""

    def __init__(
        self,
        source: PackageSource,
        installed: set[str] | None = None,
        fail: set[str] | None = None,
    ) -> None:
        super().__init__(dry_run=False)
        self._source = source
        self.installed = set(installed or ())
        self.fail = set(fail or ())
        self.install_calls: list[tuple[list[str], list[str]]] = []
        self.remove_calls: list[list[str]] = []
        self.probes: list[str] = []

    @property
    def source(self) -> PackageSource:
        return self._source

    @property
    def executable(self) -> str:
        return self._source.value

    def is_available(self) -> bool:
        return True

    def is_installed(self, package: str) -> bool:
        self.probes.append(package)
        return package in self.installed

    def install(self, packages: list[str], flags: list[str]) -> list[ActionResult]:
        self.install_calls.append((list(packages), list(flags)))
        results: list[ActionResult] = []
        for package in packages:
            ok = package not in self.fail
            if ok:
                self.installed.add(package)
            results.append(
                ActionResult(
                    action=self._action(ActionType.INSTALL, package, flags),
                    success=ok,
                    error=None if ok else "boom",
                )
            )
        return results

    def remove(self, packages: list[str]) -> list[ActionResult]:
        self.remove_calls.append(list(packages))
        self.installed.difference_update(packages)
        return [
            ActionResult(action=self._action(ActionType.REMOVE, package), success=True)
            for package in packages
        ]


@pytest.fixture
def fake_operators() -> dict[PackageSource, FakeOperator]:
    """One FakeOperator per package manager."""
    return {source: FakeOperator(source) for source in PackageSource}
