"""Unit tests for SnapOperator.

Tests for the Snap package operator implementation.
"""

from unittest.mock import patch

import pytest

from confctl.models.package import PackageSource
from confctl.operators.snap import SnapOperator
from confctl.utils.shell import CommandResult


class TestSnapOperator:
    """Tests for SnapOperator class."""

    @pytest.fixture
    def operator(self) -> SnapOperator:
        """Create SnapOperator instance."""
        return SnapOperator()

    def test_source_is_snap(self, operator: SnapOperator) -> None:
        """Operator returns SNAP as source."""
        assert operator.source == PackageSource.SNAP

    def test_is_installed_false(self, operator: SnapOperator) -> None:
        """snap list failing means not installed."""
        with patch("confctl.operators.snap.run_command") as mock_run:
            mock_run.return_value = CommandResult(
                stdout="", stderr="error: no matching snaps installed", returncode=1
            )

            assert operator.is_installed("code") is False

    def test_install_with_classic(self, operator: SnapOperator) -> None:
        """Per-package flags reach the snap command."""
        with (
            patch("confctl.operators.base.command_exists", return_value=True),
            patch("confctl.operators.snap.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)

            results = operator.install(["code"], ["--classic"])

        assert mock_run.call_args[0][0] == ["sudo", "snap", "install", "--classic", "code"]
        assert results[0].success is True

    def test_remove(self, operator: SnapOperator) -> None:
        """remove() runs snap remove."""
        with (
            patch("confctl.operators.base.command_exists", return_value=True),
            patch("confctl.operators.snap.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)

            operator.remove(["code"])

        assert mock_run.call_args[0][0] == ["sudo", "snap", "remove", "code"]
