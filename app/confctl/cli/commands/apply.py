"""Apply command implementation.

Converges the machine to the configuration: removes what left it,
deploys files and binaries, installs packages and writes dconf settings.
"""

from typing import Annotated

import typer

from confctl.cli.display import print_plan, print_report
from confctl.cli.prompt import TerminalConflictPrompt
from confctl.cli.types import ConfigOption, NoCacheOption, require_config, require_valid
from confctl.core.conflict import RunCancelledError
from confctl.core.converge import ConvergenceEngine
from confctl.core.state import StateWriteError
from confctl.utils.formatting import print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Apply the configuration to this machine.",
    invoke_without_command=True,
)


def _confirm(has_removals: bool) -> bool:
    """Ask the user to confirm the run."""
    question = "\nProceed, including removals?" if has_removals else "\nProceed?"
    return typer.confirm(question, default=False)


@app.callback(invoke_without_command=True)
def apply_config(
    ctx: typer.Context,
    config: ConfigOption = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
    interactive: Annotated[
        bool,
        typer.Option(
            "--interactive",
            "-i",
            help="Ask how to handle every existing file that differs.",
        ),
    ] = False,
    no_remove: Annotated[
        bool,
        typer.Option(
            "--no-remove",
            help="Keep resources that are no longer configured.",
        ),
    ] = False,
    no_cache: NoCacheOption = False,
) -> None:
    """Apply the configuration.

    Examples:
        confctl apply --dry-run          # Preview changes
        confctl apply --yes              # Apply without confirmation
        confctl apply -c ./confctl.toml  # Use a specific root document
    """
    if ctx.invoked_subcommand is not None:
        return

    loaded = require_config(config, use_cache=not no_cache)
    require_valid(loaded.config)
    engine = ConvergenceEngine.create(
        dry_run=dry_run,
        interactive=interactive,
        prompt=TerminalConflictPrompt(),
        remove=not no_remove,
        use_probe_cache=not no_cache,
    )

    plan = engine.plan(loaded.config)
    if plan.is_empty:
        print_success("Configuration declares nothing and nothing is managed. Nothing to do.")
        return

    quiet = bool(ctx.obj and ctx.obj.get("quiet"))
    if not quiet:
        print_plan(plan)

    if not dry_run and not yes and not _confirm(plan.has_removals and not no_remove):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    try:
        report = engine.run(loaded.config)
    except RunCancelledError as e:
        print_warning(f"{e}. Changes made so far are kept; state was not updated.")
        raise typer.Exit(code=1) from e
    except StateWriteError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_report(report)

    if report.has_failures:
        for failure in report.failures:
            print_error(failure)
        print_error(f"{len(report.failures)} action(s) failed; state was not updated.")
        raise typer.Exit(code=1)

    if dry_run:
        print_info("\nDry-run mode: No changes were made.")
        return
    print_success("Configuration applied.")
