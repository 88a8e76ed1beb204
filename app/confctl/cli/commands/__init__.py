"""CLI commands for confctl.

This package contains all subcommand implementations.
"""

from confctl.cli.commands import apply, cache, plan, state, validate

__all__ = ["apply", "cache", "plan", "state", "validate"]
