"""Unit tests for the Operator base class and operator registry."""

from confctl.models.action import ActionType
from confctl.models.package import PackageSource
from confctl.operators import AptOperator, FlatpakOperator, SnapOperator, get_operators
from confctl.utils.shell import CommandResult


class TestGetOperators:
    """Tests for get_operators function."""

    def test_one_per_source(self) -> None:
        """Every package manager gets its operator."""
        operators = get_operators()

        assert isinstance(operators[PackageSource.APT], AptOperator)
        assert isinstance(operators[PackageSource.FLATPAK], FlatpakOperator)
        assert isinstance(operators[PackageSource.SNAP], SnapOperator)

    def test_dry_run_propagates(self) -> None:
        """dry_run reaches every operator."""
        assert all(op.dry_run for op in get_operators(dry_run=True).values())


class TestResultsFromCommand:
    """Tests for mapping command outcomes onto packages."""

    def test_error_text_falls_back_to_exit_code(self) -> None:
        """Failures without output report the exit code."""
        operator = AptOperator()
        result = CommandResult(stdout="", stderr="", returncode=2)

        results = operator._results_from_command(ActionType.REMOVE, ["htop"], result)

        assert results[0].error == "exit code 2"
