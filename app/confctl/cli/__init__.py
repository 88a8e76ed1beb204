"""CLI package for confctl.

This package contains the Typer application and all subcommands.
"""

from confctl.cli.main import app

__all__ = ["app"]
