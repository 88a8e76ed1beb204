"""Plan command implementation.

Shows what `confctl apply` would change, without probing or touching
the system.
"""

import json
from typing import Annotated

import typer

from confctl.cli.display import print_plan
from confctl.cli.types import ConfigOption, NoCacheOption, require_config
from confctl.core.reconcile import StateReconciler
from confctl.core.state import AppliedStateStore
from confctl.utils.formatting import console, print_info, print_success

app = typer.Typer(
    help="Show the changes apply would make.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_plan(
    ctx: typer.Context,
    config: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
    no_cache: NoCacheOption = False,
) -> None:
    """Compare the configuration with the recorded applied state.

    Packages listed for install are re-checked against the live system
    when applying, so already installed ones are skipped then.

    Examples:
        confctl plan            # Table of changes
        confctl plan --json     # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    loaded = require_config(config, use_cache=not no_cache)
    plan = StateReconciler().diff(loaded.config, AppliedStateStore().load())

    if json_output:
        console.print_json(json.dumps(plan.to_dict()))
        return

    if plan.is_empty:
        print_success("Nothing configured and nothing managed.")
        return

    print_plan(plan)
    source = "cache" if loaded.from_cache else "documents"
    print_info(f"Loaded {len(loaded.paths)} document(s) from {source}.")
