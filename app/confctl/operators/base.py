"""Abstract base class for package operators.

This module defines the Operator interface that every package manager
adapter implements. The convergence engine only talks to this interface.
"""

import logging
import subprocess
from abc import ABC, abstractmethod

from confctl.models.action import Action, ActionResult, ActionType
from confctl.models.package import PackageSource
from confctl.utils.shell import CommandResult, command_exists

logger = logging.getLogger(__name__)


class Operator(ABC):
    """Abstract base class for all package operators.

    Operators probe, install and remove packages for one package manager.

    Attributes:
        dry_run: If True, only simulate actions without executing them.

    Example:
        >>> operator = AptOperator(dry_run=True)
        >>> if operator.is_available():
        ...     for result in operator.install(["htop"], ["-y"]):
        ...         print(f"{result.action.package}: {result.success}")
    """

    # Timeout for install/remove operations (5 minutes)
    _TIMEOUT: float = 300.0
    # Timeout for installation status probes
    _PROBE_TIMEOUT: float = 30.0

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize the operator.

        Args:
            dry_run: If True, only simulate actions without executing them.
        """
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if operator is in dry-run mode."""
        return self._dry_run

    @property
    @abstractmethod
    def source(self) -> PackageSource:
        """Return the package source this operator handles."""

    @property
    @abstractmethod
    def executable(self) -> str:
        """Name of the package manager command."""

    def is_available(self) -> bool:
        """Check if this package manager is available on the system."""
        return command_exists(self.executable)

    @abstractmethod
    def is_installed(self, package: str) -> bool:
        """Probe whether a package is currently installed.

        Args:
            package: Package name to check.

        Returns:
            True if the package manager reports it installed.
        """

    @abstractmethod
    def install(self, packages: list[str], flags: list[str]) -> list[ActionResult]:
        """Install one or more packages with the given flags.

        Args:
            packages: Package names to install.
            flags: Flags passed to the package manager.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If the package manager is not available.
        """

    @abstractmethod
    def remove(self, packages: list[str]) -> list[ActionResult]:
        """Remove one or more packages.

        Args:
            packages: Package names to remove.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If the package manager is not available.
        """

    def _require_available(self) -> None:
        if not self.is_available():
            msg = f"{self.source.value.upper()} package manager is not available on this system"
            raise RuntimeError(msg)

    def _action(
        self, action_type: ActionType, package: str, flags: list[str] | None = None
    ) -> Action:
        return Action(
            action_type=action_type,
            package=package,
            source=self.source,
            flags=tuple(flags or ()),
        )

    def _dry_run_results(
        self,
        action_type: ActionType,
        packages: list[str],
        flags: list[str] | None = None,
    ) -> list[ActionResult]:
        """Results reported when an action is only simulated."""
        verb = action_type.value
        logger.info("Dry-run: would %s %s: %s", verb, self.source.value, ", ".join(packages))
        return [
            ActionResult(
                action=self._action(action_type, package, flags),
                success=True,
                message=f"Dry-run: would {verb}",
            )
            for package in packages
        ]

    def _results_from_command(
        self,
        action_type: ActionType,
        packages: list[str],
        result: CommandResult,
        flags: list[str] | None = None,
    ) -> list[ActionResult]:
        """Map one command outcome onto every package it covered.

        A batched package manager transaction either succeeds or fails as
        a whole, so every package shares the same result.
        """
        if result.success:
            return [
                ActionResult(
                    action=self._action(action_type, package, flags),
                    success=True,
                    message="Operation completed",
                )
                for package in packages
            ]

        error_msg = result.error_text
        logger.warning(
            "%s %s failed (%s): %s",
            self.source.value,
            action_type.value,
            result.display or ", ".join(packages),
            error_msg,
        )
        return self._failed_results(action_type, packages, error_msg, flags)

    def _results_from_error(
        self,
        action_type: ActionType,
        packages: list[str],
        error: subprocess.TimeoutExpired | OSError,
        flags: list[str] | None = None,
    ) -> list[ActionResult]:
        """Results for a command that timed out or could not be started."""
        logger.warning(
            "%s %s failed (%s): %s",
            self.source.value,
            action_type.value,
            ", ".join(packages),
            error,
        )
        return self._failed_results(action_type, packages, str(error), flags)

    def _failed_results(
        self,
        action_type: ActionType,
        packages: list[str],
        error: str,
        flags: list[str] | None = None,
    ) -> list[ActionResult]:
        return [
            ActionResult(
                action=self._action(action_type, package, flags),
                success=False,
                error=error,
            )
            for package in packages
        ]
