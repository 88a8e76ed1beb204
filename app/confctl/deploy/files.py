"""File deployment.

Files are symlinked to their source by default, or copied when the
configuration sets ``copy = true``. Ownership and mode apply to copies.
"""

import logging

from confctl.core.conflict import Conflict
from confctl.deploy.base import DeployResult, ResourceDeployer
from confctl.models.config import FileSpec
from confctl.models.state import DeploymentKind

logger = logging.getLogger(__name__)


class FileDeployer(ResourceDeployer):
    """Deploys configured files and directories."""

    def deploy(self, name: str, spec: FileSpec) -> DeployResult:  # type: ignore[override]
        """Deploy one file.

        Args:
            name: Resource name from the configuration.
            spec: The file's configuration.

        Returns:
            DeployResult describing what happened.

        Raises:
            RunCancelledError: If the user chose to quit the run.
        """
        source = spec.source_path()
        destination = spec.destination_path()

        if not source.exists():
            return DeployResult(
                name=name,
                destination=destination,
                success=False,
                error=f"Source not found: {source}",
            )

        if spec.deployment == DeploymentKind.LINK and (spec.mode or spec.owner or spec.group):
            logger.debug("Ignoring mode/ownership for symlinked file %s", name)

        conflict = Conflict(
            name=name,
            source=source,
            destination=destination,
            deployment=spec.deployment,
            backup_enabled=spec.backup,
            interactive=spec.interactive,
        )
        return self._carry_out(
            conflict,
            record_fields={},
            mode=spec.mode_bits,
            owner=spec.owner,
            group=spec.group,
        )
