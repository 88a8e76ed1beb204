"""Cache management commands."""

import typer

from confctl.core.cache import FingerprintCache, SystemStateCache
from confctl.utils.formatting import console, create_table, format_size, print_success

app = typer.Typer(
    help="Inspect or clear confctl's caches.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def stats() -> None:
    """Show configuration cache statistics."""
    config_cache = FingerprintCache()
    summary = config_cache.stats()
    probes = SystemStateCache()

    table = create_table("Cache", "Item", "Value")
    table.add_row("Location", str(config_cache.directory))
    table.add_row("Cached configurations", str(summary.entries))
    table.add_row("Size", format_size(summary.size_bytes))
    if summary.oldest is not None and summary.newest is not None:
        table.add_row("Oldest", summary.oldest.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Newest", summary.newest.strftime("%Y-%m-%d %H:%M:%S"))
    table.add_row("Package probe cache", "present" if probes.path.is_file() else "absent")
    console.print(table)


@app.command()
def clear() -> None:
    """Delete cached configurations and package probes."""
    removed = FingerprintCache().clear()
    probes_removed = SystemStateCache().clear()
    detail = " and package probe cache" if probes_removed else ""
    print_success(f"Removed {removed} cached configuration(s){detail}.")
