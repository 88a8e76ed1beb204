"""Unit tests for cli/display.py.

Tests for rendering plans and convergence reports.
"""

import io
from pathlib import Path
from unittest.mock import patch

from rich.console import Console

from confctl.cli.display import print_plan, print_report, print_validation
from confctl.core.converge import ConvergenceReport
from confctl.core.reconcile import PackagePlan, Plan, ResourcePlan
from confctl.core.theme import get_theme
from confctl.core.validation import ValidationReport
from confctl.deploy.base import DeployResult
from confctl.deploy.removal import RemovalResult, SafetyViolation
from confctl.models.action import Action, ActionResult, ActionType
from confctl.models.config import PackageEntry
from confctl.models.package import PackageSource
from confctl.models.state import ManagedFile
from confctl.operators.dconf import DconfResult


def capture(func: object, *args: object) -> str:
    """Run a display function against a buffered console."""
    buf = io.StringIO()
    test_console = Console(theme=get_theme(), file=buf, color_system=None, width=200)
    with patch("confctl.cli.display.console", test_console):
        func(*args)  # type: ignore[operator]
    return buf.getvalue()


class TestPrintPlan:
    """Tests for print_plan."""

    def test_rows(self) -> None:
        """New, managed and removed packages are distinguished."""
        plan = Plan(
            packages=(
                PackagePlan(
                    source=PackageSource.APT,
                    to_install=(PackageEntry(name="git"), PackageEntry(name="vim")),
                    new=("vim",),
                    to_remove=("htop",),
                ),
            ),
            files=ResourcePlan(
                to_deploy=("bashrc",),
                to_remove=(ManagedFile(name="vimrc", destination="/home/u/.vimrc"),),
            ),
            settings={"/org/gnome/desktop/interface/clock-format": "'24h'"},
        )

        output = capture(print_plan, plan)

        assert "git" in output and "vim" in output
        assert "managed, probed at apply time" in output
        assert "no longer configured" in output
        assert "/home/u/.vimrc" in output
        assert "clock-format" in output

    def test_markup_in_names_is_escaped(self) -> None:
        """Values containing Rich markup are printed literally."""
        plan = Plan(packages=(), settings={"/org/x/key": "[bold]v[/bold]"})

        output = capture(print_plan, plan)

        assert "[bold]v[/bold]" in output


class TestPrintReport:
    """Tests for print_report."""

    def test_titles(self) -> None:
        """Dry-run reports are titled accordingly."""
        assert "Dry-run results" in capture(print_report, ConvergenceReport(dry_run=True))
        assert "Results" in capture(print_report, ConvergenceReport())

    def test_rows(self) -> None:
        """Every kind of outcome gets a row."""
        report = ConvergenceReport(
            package_results=[
                ActionResult(
                    action=Action(ActionType.INSTALL, "git", PackageSource.APT),
                    success=True,
                ),
                ActionResult(
                    action=Action(ActionType.INSTALL, "bad", PackageSource.SNAP),
                    success=False,
                    error="snap not found",
                ),
            ],
            file_results=[
                DeployResult(
                    name="bashrc",
                    destination=Path("/home/u/.bashrc"),
                    success=True,
                    changed=True,
                    message="Deployed",
                ),
                DeployResult(
                    name="zshrc",
                    destination=Path("/home/u/.zshrc"),
                    success=False,
                    error="Source not found: /conf/zshrc",
                ),
            ],
            removals=[
                RemovalResult(
                    record=ManagedFile(name="vimrc", destination="/home/u/.vimrc"),
                    violation=SafetyViolation(
                        name="vimrc",
                        destination="/home/u/.vimrc",
                        reason="content modified since deployment",
                    ),
                )
            ],
            dconf_results=[DconfResult(key="/org/x/key", success=True, changed=True)],
            already_installed={PackageSource.APT: ["curl", "wget"]},
        )

        output = capture(print_report, report)

        assert "apt install" in output
        assert "snap not found" in output
        assert "Deployed" in output
        assert "Source not found" in output
        assert "content modified since deployment" in output
        assert "/org/x/key" in output
        assert "2 package(s) already installed" in output


class TestPrintValidation:
    """Tests for print_validation."""

    def test_errors_listed_before_warnings(self) -> None:
        """Issues appear with their value and hint, errors first."""
        report = ValidationReport()
        report.warn("packages.snap", "package is already listed under apt", "htop")
        report.error("dconf.settings['x']", "dconf keys must start with '/'", "x", "use '/x'")

        output = capture(print_validation, report)

        assert output.index("dconf keys must start") < output.index("already listed")
        assert "use '/x'" in output
        assert "('htop')" in output

    def test_nothing_printed_without_issues(self) -> None:
        """A clean report prints nothing."""
        assert capture(print_validation, ValidationReport()) == ""
