"""Developer tasks for confctl.

Usage: uv run devops.py <task>
Tasks: fmt, lint, test, clean
"""

import subprocess
import sys
from collections.abc import Callable


def _run(*commands: list[str]) -> None:
    """Run commands in order, stopping at the first failure."""
    for cmd in commands:
        print(f"$ {' '.join(cmd)}", file=sys.stderr)
        try:
            subprocess.run(cmd, check=True)  # nosec: B603, B607
        except subprocess.CalledProcessError as e:
            print(f"Command failed: {' '.join(e.cmd)}", file=sys.stderr)
            sys.exit(e.returncode)


def fmt() -> None:
    """Format and auto-fix with Ruff."""
    _run(["ruff", "format", "app", "tests"], ["ruff", "check", "--fix", "app", "tests"])


def lint() -> None:
    """Check formatting and lint rules without changing files."""
    _run(["ruff", "format", "--check", "app", "tests"], ["ruff", "check", "app", "tests"])


def test() -> None:
    """Run the test suite."""
    _run(["uv", "run", "pytest", "-q", *sys.argv[2:]])


def clean() -> None:
    """Remove caches and build artifacts."""
    _run(
        ["find", ".", "-type", "d", "-name", "__pycache__", "-exec", "rm", "-rf", "{}", "+"],
        ["rm", "-rf", ".pytest_cache", ".ruff_cache", "build", "dist"],
        ["find", ".", "-type", "d", "-name", "*.egg-info", "-exec", "rm", "-rf", "{}", "+"],
    )


TASKS: dict[str, Callable[[], None]] = {"fmt": fmt, "lint": lint, "test": test, "clean": clean}


if __name__ == "__main__":
    if len(sys.argv) < 2 or sys.argv[1] not in TASKS:
        print(__doc__, file=sys.stderr)
        sys.exit(2)
    TASKS[sys.argv[1]]()
