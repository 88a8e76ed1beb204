"""Snap package operator implementation.

Executes package installation and removal using the snap CLI.
"""

import logging
import subprocess

from confctl.models.action import ActionResult, ActionType
from confctl.models.package import PackageSource
from confctl.operators.base import Operator
from confctl.utils.shell import run_command

logger = logging.getLogger(__name__)


class SnapOperator(Operator):
    """Operator for Snap packages.

    Snaps are installed one at a time since flags such as ``--classic``
    apply per snap. Requires sudo privileges for all operations.
    """

    @property
    def source(self) -> PackageSource:
        """Return SNAP as the package source."""
        return PackageSource.SNAP

    @property
    def executable(self) -> str:
        return "snap"

    def is_installed(self, package: str) -> bool:
        """Check whether ``snap list`` reports the snap."""
        try:
            result = run_command(["snap", "list", package], timeout=self._PROBE_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("snap list timed out checking %s", package)
            return False
        except OSError:
            return False
        return result.success

    def install(self, packages: list[str], flags: list[str]) -> list[ActionResult]:
        """Install Snap packages.

        Args:
            packages: Snap names to install.
            flags: Flags such as ``--classic``.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If snap is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.INSTALL, packages, flags)
        self._require_available()

        results: list[ActionResult] = []
        for package in packages:
            logger.info("Installing Snap: %s", package)
            try:
                result = run_command(
                    ["sudo", "snap", "install", *flags, package], timeout=self._TIMEOUT
                )
            except (subprocess.TimeoutExpired, OSError) as e:
                results.extend(self._results_from_error(ActionType.INSTALL, [package], e, flags))
                continue
            results.extend(
                self._results_from_command(ActionType.INSTALL, [package], result, flags)
            )
        return results

    def remove(self, packages: list[str]) -> list[ActionResult]:
        """Remove Snap packages.

        Args:
            packages: Snap names to remove.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If snap is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.REMOVE, packages)
        self._require_available()

        results: list[ActionResult] = []
        for package in packages:
            logger.info("Removing Snap: %s", package)
            try:
                result = run_command(["sudo", "snap", "remove", package], timeout=self._TIMEOUT)
            except (subprocess.TimeoutExpired, OSError) as e:
                results.extend(self._results_from_error(ActionType.REMOVE, [package], e))
                continue
            results.extend(self._results_from_command(ActionType.REMOVE, [package], result))
        return results
