"""Unit tests for the dconf settings writer."""

import subprocess
from unittest.mock import patch

import pytest

from confctl.operators.dconf import DconfWriter
from confctl.utils.shell import CommandResult

KEY = "/org/gnome/desktop/interface/color-scheme"


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestDconfWriter:
    """Tests for DconfWriter class."""

    def test_writes_changed_key(self) -> None:
        """Keys with a different current value are written."""
        with (
            patch("confctl.operators.dconf.command_exists", return_value=True),
            patch(
                "confctl.operators.dconf.run_command", side_effect=[ok("'default'\n"), ok()]
            ) as mock_run,
        ):
            results = DconfWriter().apply({KEY: "'prefer-dark'"})

        assert mock_run.call_args_list[1][0][0] == ["dconf", "write", KEY, "'prefer-dark'"]
        assert results[0].changed is True
        assert results[0].success is True

    def test_skips_key_already_set(self) -> None:
        """Keys already holding the value are not written."""
        with (
            patch("confctl.operators.dconf.command_exists", return_value=True),
            patch("confctl.operators.dconf.run_command", return_value=ok("'prefer-dark'\n")),
        ):
            results = DconfWriter().apply({KEY: "'prefer-dark'"})

        assert results[0].changed is False

    def test_dry_run_reads_but_does_not_write(self) -> None:
        """Dry runs compare current values without writing."""
        with (
            patch("confctl.operators.dconf.command_exists", return_value=True),
            patch("confctl.operators.dconf.run_command", return_value=ok("")) as mock_run,
        ):
            results = DconfWriter(dry_run=True).apply({KEY: "true"})

        mock_run.assert_called_once()
        assert results[0].changed is True

    def test_relative_key_rejected(self) -> None:
        """Keys must be absolute paths."""
        with patch("confctl.operators.dconf.command_exists", return_value=True):
            results = DconfWriter().apply({"org/gnome/x": "true"})

        assert results[0].success is False

    def test_write_failure(self) -> None:
        """Failed writes carry the error text."""
        failure = CommandResult(stdout="", stderr="error: type mismatch", returncode=1)
        with (
            patch("confctl.operators.dconf.command_exists", return_value=True),
            patch("confctl.operators.dconf.run_command", side_effect=[ok(), failure]),
        ):
            results = DconfWriter().apply({KEY: "42"})

        assert results[0].error == "error: type mismatch"

    def test_unavailable(self) -> None:
        """Settings without dconf raise RuntimeError."""
        with (
            patch("confctl.operators.dconf.command_exists", return_value=False),
            pytest.raises(RuntimeError, match="dconf"),
        ):
            DconfWriter().apply({KEY: "true"})

    def test_write_timeout_is_reported(self) -> None:
        """A hung dconf write fails that key instead of raising."""
        with (
            patch("confctl.operators.dconf.command_exists", return_value=True),
            patch(
                "confctl.operators.dconf.run_command",
                side_effect=[ok(), subprocess.TimeoutExpired(cmd="dconf", timeout=30)],
            ),
        ):
            results = DconfWriter().apply({KEY: "true"})

        assert results[0].success is False
        assert "timed out" in (results[0].error or "")
