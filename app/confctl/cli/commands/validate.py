"""Validate command implementation.

Resolves and merges the configuration, reporting every included
document, a summary of what the merged configuration declares, and any
problems the semantic checks find.
"""

from pathlib import Path
from typing import Annotated

import typer

from confctl.cli.types import ConfigOption, NoCacheOption, require_config, require_valid
from confctl.core.document import DocumentError, export_config
from confctl.models.package import PackageSource
from confctl.utils.formatting import console, create_table, print_error, print_success

app = typer.Typer(
    help="Check that the configuration resolves and merges.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def validate_config(
    ctx: typer.Context,
    config: ConfigOption = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the merged configuration to a single TOML file.",
        ),
    ] = None,
    no_cache: NoCacheOption = False,
) -> None:
    """Validate the configuration.

    Examples:
        confctl validate                     # Check the default configuration
        confctl validate -o merged.toml      # Also export the merged result
    """
    if ctx.invoked_subcommand is not None:
        return

    loaded = require_config(config, use_cache=not no_cache)
    merged = loaded.config

    table = create_table("Included documents", "#", "Path")
    for index, path in enumerate(loaded.paths, start=1):
        table.add_row(str(index), str(path))
    console.print(table)

    counts = ", ".join(
        f"{len(merged.packages.for_source(source))} {source.value}" for source in PackageSource
    )
    console.print(f"Packages: {counts}")
    console.print(
        f"Files: {len(merged.files)}, binaries: {len(merged.binaries)}, "
        f"dconf settings: {len(merged.dconf)}"
    )

    report = require_valid(merged)

    if output is not None:
        try:
            export_config(merged, output)
        except DocumentError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        print_success(f"Merged configuration written to {output}")

    if report.warnings:
        print_success(f"Configuration is valid ({len(report.warnings)} warning(s)).")
    else:
        print_success("Configuration is valid.")
