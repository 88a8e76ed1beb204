"""Shared options and helpers for CLI commands."""

from pathlib import Path
from typing import Annotated

import typer

from confctl.cli.display import print_validation
from confctl.core.document import DocumentError, DocumentNotFoundError
from confctl.core.includes import IncludeError
from confctl.core.loader import ConfigLoader, LoadResult
from confctl.core.paths import find_root_document
from confctl.core.validation import ValidationReport, validate_config
from confctl.models.config import LogicalConfig
from confctl.utils.formatting import print_error, print_info

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Root configuration document. Default: search standard locations.",
    ),
]

NoCacheOption = Annotated[
    bool,
    typer.Option(
        "--no-cache",
        help="Ignore and do not update the configuration cache.",
    ),
]


def require_config(config_path: Path | None, *, use_cache: bool = True) -> LoadResult:
    """Load the configuration or exit with a helpful error message.

    Args:
        config_path: Explicit root document, or None to search.
        use_cache: Whether to use the configuration cache.

    Returns:
        The loaded configuration.

    Raises:
        typer.Exit: If the configuration cannot be found or loaded.
    """
    try:
        root = find_root_document(config_path)
    except FileNotFoundError as e:
        print_error(str(e))
        print_info("Pass --config PATH or create ~/.config/confctl/confctl.toml.")
        raise typer.Exit(code=1) from e

    try:
        return ConfigLoader(use_cache=use_cache).load(root)
    except IncludeError as e:
        print_error(f"Include failed ({e.kind.value}): {e}")
        raise typer.Exit(code=1) from e
    except DocumentNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except DocumentError as e:
        print_error(f"Failed to load configuration: {e}")
        raise typer.Exit(code=1) from e


def require_valid(config: LogicalConfig) -> ValidationReport:
    """Print validation issues and exit if the configuration has errors.

    Args:
        config: The merged configuration.

    Returns:
        The validation report, which may still carry warnings.

    Raises:
        typer.Exit: If any validation error was found.
    """
    report = validate_config(config)
    print_validation(report)
    if not report.is_valid:
        print_error(f"Configuration has {len(report.errors)} error(s).")
        raise typer.Exit(code=1)
    return report
