"""Flatpak package operator implementation.

Executes application installation and removal using the flatpak CLI.
"""

import logging
import subprocess

from confctl.models.action import ActionResult, ActionType
from confctl.models.package import PackageSource
from confctl.operators.base import Operator
from confctl.utils.shell import run_command

logger = logging.getLogger(__name__)


class FlatpakOperator(Operator):
    """Operator for Flatpak applications.

    Applications are installed one at a time for better error reporting.
    """

    @property
    def source(self) -> PackageSource:
        """Return FLATPAK as the package source."""
        return PackageSource.FLATPAK

    @property
    def executable(self) -> str:
        return "flatpak"

    def is_installed(self, package: str) -> bool:
        """Check whether ``flatpak info`` knows the application."""
        try:
            result = run_command(["flatpak", "info", package], timeout=self._PROBE_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("flatpak info timed out checking %s", package)
            return False
        except OSError:
            return False
        return result.success

    def install(self, packages: list[str], flags: list[str]) -> list[ActionResult]:
        """Install Flatpak applications.

        Args:
            packages: Application IDs to install (e.g., 'com.spotify.Client').
            flags: Flags such as ``--system`` or ``--assumeyes``.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If flatpak is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.INSTALL, packages, flags)
        self._require_available()

        results: list[ActionResult] = []
        for package in packages:
            logger.info("Installing Flatpak: %s", package)
            try:
                result = run_command(
                    ["flatpak", "install", *flags, package], timeout=self._TIMEOUT
                )
            except (subprocess.TimeoutExpired, OSError) as e:
                results.extend(self._results_from_error(ActionType.INSTALL, [package], e, flags))
                continue
            results.extend(
                self._results_from_command(ActionType.INSTALL, [package], result, flags)
            )
        return results

    def remove(self, packages: list[str]) -> list[ActionResult]:
        """Uninstall Flatpak applications.

        Args:
            packages: Application IDs to remove.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If flatpak is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.REMOVE, packages)
        self._require_available()

        results: list[ActionResult] = []
        for package in packages:
            logger.info("Uninstalling Flatpak: %s", package)
            try:
                result = run_command(
                    ["flatpak", "uninstall", "-y", package], timeout=self._TIMEOUT
                )
            except (subprocess.TimeoutExpired, OSError) as e:
                results.extend(self._results_from_error(ActionType.REMOVE, [package], e))
                continue
            results.extend(self._results_from_command(ActionType.REMOVE, [package], result))
        return results
