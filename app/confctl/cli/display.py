"""Rendering of plans and convergence reports."""

from rich.markup import escape

from confctl.core.converge import ConvergenceReport
from confctl.core.reconcile import Plan
from confctl.core.validation import Severity, ValidationReport
from confctl.deploy.base import DeployResult
from confctl.utils.formatting import console, create_table


def _styled(style: str, text: str | None) -> str:
    """Wrap untrusted text in a theme style."""
    return f"[{style}]{escape(text or '')}[/]"


def print_plan(plan: Plan) -> None:
    """Print a plan as a table of intended changes.

    Args:
        plan: The plan to show.
    """
    table = create_table("Plan", "", "Kind", "Name", "Detail")

    for package_plan in plan.packages:
        source = package_plan.source.value
        new = set(package_plan.new)
        for entry in package_plan.to_install:
            if entry.name in new:
                table.add_row("[added]+[/]", source, entry.name, _styled("muted", "new"))
            else:
                detail = _styled("muted", "managed, probed at apply time")
                table.add_row("[unchanged]=[/]", source, entry.name, detail)
        for name in package_plan.to_remove:
            table.add_row("[removed]-[/]", source, name, _styled("muted", "no longer configured"))

    for kind, resources in (("file", plan.files), ("binary", plan.binaries)):
        for name in resources.to_deploy:
            table.add_row("[added]+[/]", kind, name, _styled("muted", "deploy"))
        for record in resources.to_remove:
            table.add_row("[removed]-[/]", kind, record.name, _styled("muted", record.destination))

    for key, value in plan.settings.items():
        table.add_row("[added]+[/]", "dconf", key, _styled("muted", value))

    console.print(table)


def _deploy_row(kind: str, result: DeployResult) -> tuple[str, str, str, str]:
    if result.failed:
        return "[error]x[/]", kind, result.name, _styled("error", result.error)
    if result.skipped:
        return "[warning]~[/]", kind, result.name, _styled("warning", result.message)
    if result.changed:
        return "[success]+[/]", kind, result.name, escape(result.message or "")
    return "[unchanged]=[/]", kind, result.name, _styled("muted", result.message)


def print_report(report: ConvergenceReport) -> None:
    """Print what a convergence run did.

    Args:
        report: The run's report.
    """
    title = "Dry-run results" if report.dry_run else "Results"
    table = create_table(title, "", "Kind", "Name", "Result")

    for removal in report.removals:
        name = removal.record.name
        if removal.violation is not None:
            table.add_row(
                "[warning]![/]", "remove", name, _styled("warning", removal.violation.reason)
            )
        elif removal.failed:
            table.add_row("[error]x[/]", "remove", name, _styled("error", removal.error))
        elif removal.removed:
            detail = removal.record.destination
            if removal.restored_from is not None:
                detail += f" (restored {removal.restored_from})"
            table.add_row("[removed]-[/]", "remove", name, escape(detail))

    for result in report.file_results:
        table.add_row(*_deploy_row("file", result))
    for result in report.binary_results:
        table.add_row(*_deploy_row("binary", result))

    for action_result in report.package_results:
        action = action_result.action
        kind = action.label
        if action_result.success:
            message = escape(action_result.message or "")
            table.add_row("[success]+[/]", kind, action.package, message)
        else:
            error = _styled("error", action_result.error)
            table.add_row("[error]x[/]", kind, action.package, error)

    for setting in report.dconf_results:
        if not setting.success:
            table.add_row("[error]x[/]", "dconf", setting.key, _styled("error", setting.error))
        elif setting.changed:
            table.add_row("[success]+[/]", "dconf", setting.key, "written")

    for path in report.pruned.removed:
        table.add_row("[removed]-[/]", "backup", path.name, "pruned")

    console.print(table)

    installed = sum(len(names) for names in report.already_installed.values())
    if installed:
        console.print(f"[muted]{installed} package(s) already installed.[/]")


def print_validation(report: ValidationReport) -> None:
    """Print validation issues, errors first.

    Args:
        report: Result of validating the merged configuration.
    """
    if not report.issues:
        return

    table = create_table("Validation", "", "Location", "Problem", "Hint")
    for issue in (*report.errors, *report.warnings):
        marker = "[error]x[/]" if issue.severity == Severity.ERROR else "[warning]![/]"
        table.add_row(
            marker,
            escape(issue.location),
            escape(issue.detail),
            _styled("muted", issue.hint),
        )
    console.print(table)
