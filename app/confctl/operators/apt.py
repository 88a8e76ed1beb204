"""APT package operator implementation.

Executes package installation and removal using apt-get, and probes
installation status with dpkg-query.
"""

import logging
import subprocess

from confctl.models.action import ActionResult, ActionType
from confctl.models.package import PackageSource
from confctl.operators.base import Operator
from confctl.utils.shell import run_command

logger = logging.getLogger(__name__)


class AptOperator(Operator):
    """Operator for APT/dpkg packages.

    Packages sharing the same flags are installed in a single apt-get
    transaction. Requires sudo privileges for actual execution.
    """

    @property
    def source(self) -> PackageSource:
        """Return APT as the package source."""
        return PackageSource.APT

    @property
    def executable(self) -> str:
        return "apt-get"

    def is_installed(self, package: str) -> bool:
        """Check dpkg's status database for an installed package."""
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f=${Status}", package],
                timeout=self._PROBE_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            logger.warning("dpkg-query timed out checking %s", package)
            return False
        except OSError:
            return False
        return result.success and result.stdout.strip().endswith("install ok installed")

    def install(self, packages: list[str], flags: list[str]) -> list[ActionResult]:
        """Install packages using apt-get install.

        Args:
            packages: Package names to install.
            flags: Flags such as ``-y`` or ``--no-install-recommends``.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If apt-get is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.INSTALL, packages, flags)
        self._require_available()

        args = ["sudo", "apt-get", "install", *flags, *packages]
        logger.info("Installing APT packages: %s (flags: %s)", ", ".join(packages), flags)
        try:
            result = run_command(args, timeout=self._TIMEOUT)
        except (subprocess.TimeoutExpired, OSError) as e:
            return self._results_from_error(ActionType.INSTALL, packages, e, flags)
        return self._results_from_command(ActionType.INSTALL, packages, result, flags)

    def remove(self, packages: list[str]) -> list[ActionResult]:
        """Remove packages using apt-get remove.

        Args:
            packages: Package names to remove.

        Returns:
            List of ActionResult for each package.

        Raises:
            RuntimeError: If apt-get is not available.
        """
        if not packages:
            return []
        if self.dry_run:
            return self._dry_run_results(ActionType.REMOVE, packages)
        self._require_available()

        args = ["sudo", "apt-get", "remove", "-y", *packages]
        logger.info("Removing APT packages: %s", ", ".join(packages))
        try:
            result = run_command(args, timeout=self._TIMEOUT)
        except (subprocess.TimeoutExpired, OSError) as e:
            return self._results_from_error(ActionType.REMOVE, packages, e)
        return self._results_from_command(ActionType.REMOVE, packages, result)
