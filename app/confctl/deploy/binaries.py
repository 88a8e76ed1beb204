"""Binary deployment.

Binaries come from an ``https://`` URL or a local path. Remote binaries
are downloaded with curl into a staging directory first, so the conflict
check compares the exact bytes that would be installed.
"""

import logging
import re
import subprocess
from pathlib import Path

from confctl.core.conflict import Conflict, ConflictResolver
from confctl.core.paths import get_staging_dir
from confctl.deploy.base import DeployResult, ResourceDeployer
from confctl.models.config import BinarySpec
from confctl.models.state import DeploymentKind, ManagedBinary
from confctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


class BinaryDeployer(ResourceDeployer):
    """Downloads or copies configured binaries into place."""

    # Timeout for downloads (5 minutes)
    _DOWNLOAD_TIMEOUT: float = 300.0

    def __init__(
        self,
        resolver: ConflictResolver,
        dry_run: bool = False,
        staging_dir: Path | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            resolver: Decides what to do with occupied destinations.
            dry_run: If True, only report what would be done.
            staging_dir: Where downloads are stored before placement.
        """
        super().__init__(resolver, dry_run=dry_run)
        self._staging_dir = staging_dir if staging_dir is not None else get_staging_dir()

    def deploy(self, name: str, spec: BinarySpec) -> DeployResult:  # type: ignore[override]
        """Deploy one binary.

        Args:
            name: Resource name from the configuration.
            spec: The binary's configuration.

        Returns:
            DeployResult describing what happened.

        Raises:
            RunCancelledError: If the user chose to quit the run.
        """
        destination = spec.destination_path()

        if spec.is_remote:
            if self._dry_run:
                return DeployResult(
                    name=name,
                    destination=destination,
                    success=True,
                    changed=True,
                    message=f"Dry-run: would download {spec.source}",
                )
            source, error = self._download(name, spec.source)
            if source is None:
                return DeployResult(name=name, destination=destination, success=False, error=error)
        else:
            source = spec.source_path()
            if not source.is_file():
                return DeployResult(
                    name=name,
                    destination=destination,
                    success=False,
                    error=f"Source not found: {source}",
                )

        conflict = Conflict(
            name=name,
            source=source,
            destination=destination,
            deployment=DeploymentKind.COPY,
            backup_enabled=spec.backup,
            interactive=spec.interactive,
        )
        return self._carry_out(
            conflict,
            record_fields={"source": spec.source},
            record_type=ManagedBinary,
            mode=spec.mode_bits,
            owner=spec.owner,
            group=spec.group,
        )

    def staging_path(self, name: str) -> Path:
        """Path a binary is downloaded to before placement."""
        return self._staging_dir / _UNSAFE_NAME.sub("_", name)

    def _download(self, name: str, url: str) -> tuple[Path | None, str | None]:
        """Download a URL into the staging directory.

        Returns:
            The staged path and None, or None and an error message.
        """
        if not url.startswith("https://"):
            return None, f"Refusing to download over an insecure URL: {url}"
        if not command_exists("curl"):
            return None, "curl is required to download binaries but was not found"

        target = self.staging_path(name)
        partial = target.with_name(target.name + ".part")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return None, f"Cannot create staging directory {target.parent}: {e}"

        logger.info("Downloading %s from %s", name, url)
        args = ["curl", "--fail", "--silent", "--show-error", "--location"]
        args += ["--retry", "3", "--proto", "=https", "--output", str(partial), url]
        try:
            result = run_command(args, timeout=self._DOWNLOAD_TIMEOUT)
        except subprocess.TimeoutExpired:
            partial.unlink(missing_ok=True)
            return None, f"Download of {url} timed out"

        if not result.success:
            partial.unlink(missing_ok=True)
            return None, f"Download of {url} failed: {result.error_text}"

        partial.replace(target)
        return target, None
