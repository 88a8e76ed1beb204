"""State inspection commands."""

from typing import Annotated

import typer

from confctl.core.state import AppliedStateStore, StateLoadError
from confctl.models.package import PackageSource
from confctl.utils.formatting import console, create_table, print_error, print_info

app = typer.Typer(
    help="Inspect what confctl manages.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the recorded applied state."""
    store = AppliedStateStore()
    try:
        applied = store.load_strict()
    except StateLoadError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(applied.model_dump_json())
        return

    if not store.exists():
        print_info("confctl has not applied a configuration on this machine yet.")
        return

    table = create_table("Managed resources", "Kind", "Name", "Detail")
    for source in PackageSource:
        for name in applied.packages.for_source(source):
            table.add_row(source.value, name, "")
    for kind, records in (("file", applied.files), ("binary", applied.binaries)):
        for record in records:
            detail = f"{record.destination} ({record.deployment.value})"
            if record.backup_path:
                detail += f", backup {record.backup_path}"
            table.add_row(kind, record.name, detail)
    console.print(table)
    print_info(f"Last updated {applied.last_updated:%Y-%m-%d %H:%M:%S %Z}")
