"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from confctl.core.theme import get_theme


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, let Rich decide otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())  # type: ignore[arg-type]
err_console = Console(
    theme=get_theme(),
    stderr=True,
    color_system=_detect_color_system(),  # type: ignore[arg-type]
)


def create_table(title: str, *columns: str) -> Table:
    """Create a pre-configured table with the shared styling.

    Args:
        title: Table title.
        columns: Column headers, in order.

    Returns:
        Rich Table with the given columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    for column in columns:
        table.add_column(column)
    return table


def format_size(size_bytes: int) -> str:
    """Format a byte count for humans (e.g. ``1.5 KiB``)."""
    size = float(size_bytes)
    for unit in ("B", "KiB", "MiB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


def _emit(target: Console, style: str, message: str, label: str = "") -> None:
    """Print a message in a theme style, escaping markup in the message."""
    prefix = f"[{style}]{label}[/] " if label else ""
    body = escape(message) if label else f"[{style}]{escape(message)}[/]"
    target.print(prefix + body)


def print_info(message: str) -> None:
    """Print an info message."""
    _emit(console, "info", message)


def print_warning(message: str) -> None:
    """Print a warning message to stderr."""
    _emit(err_console, "warning", message, "Warning:")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    _emit(err_console, "error", message, "Error:")


def print_success(message: str) -> None:
    """Print a success message."""
    _emit(console, "success", message)
