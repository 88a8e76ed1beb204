"""Unit tests for console formatting helpers."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from confctl.core.theme import get_theme
from confctl.utils.formatting import create_table, format_size, print_error, print_success


def buffered_console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(theme=get_theme(), file=buf, color_system=None, width=200), buf


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [(0, "0 B"), (1023, "1023 B"), (1536, "1.5 KiB"), (5 * 1024**2, "5.0 MiB")],
    )
    def test_units(self, size: int, expected: str) -> None:
        """Sizes are shown in the largest fitting binary unit."""
        assert format_size(size) == expected


class TestCreateTable:
    """Tests for create_table function."""

    def test_columns(self) -> None:
        """Columns appear in the given order."""
        table = create_table("Cache", "Item", "Value")

        assert table.title == "Cache"
        assert [column.header for column in table.columns] == ["Item", "Value"]


class TestMessages:
    """Tests for the print_* helpers."""

    def test_error_is_labelled(self) -> None:
        """Errors carry a label and go to the error console."""
        test_console, buf = buffered_console()

        with patch("confctl.utils.formatting.err_console", test_console):
            print_error("disk full")

        assert buf.getvalue().strip() == "Error: disk full"

    def test_markup_is_escaped(self) -> None:
        """Brackets in messages are printed literally."""
        test_console, buf = buffered_console()

        with patch("confctl.utils.formatting.console", test_console):
            print_success("Wrote /tmp/[bold]/merged.toml")

        assert "[bold]" in buf.getvalue()
