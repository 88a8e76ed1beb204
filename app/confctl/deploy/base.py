"""Base class for resource deployers.

A deployer places one configured resource at its destination, consulting
the ConflictResolver whenever something already occupies that path.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from confctl.core.conflict import (
    Conflict,
    ConflictResolver,
    Decision,
    DecisionKind,
    RunCancelledError,
    is_identical,
)
from confctl.models.state import DeploymentKind, ManagedFile
from confctl.utils.fileio import sha256_tree

logger = logging.getLogger(__name__)


class DeployError(Exception):
    """Raised when a resource cannot be placed."""


@dataclass(frozen=True, slots=True)
class DeployResult:
    """Outcome of deploying one resource.

    Attributes:
        name: Resource name from the configuration.
        destination: Absolute destination path.
        success: Whether the destination now holds the desired resource.
        changed: Whether anything was (or, in dry-run, would be) written.
        skipped: Whether the user chose to leave the destination alone.
        record: State record for the resource, None when it failed or was skipped.
        backup_path: Where a differing destination was moved, if anywhere.
        message: Human-readable summary.
        error: Error message when the deployment failed.
    """

    name: str
    destination: Path
    success: bool
    changed: bool = False
    skipped: bool = False
    record: ManagedFile | None = None
    backup_path: Path | None = None
    message: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the deployment failed."""
        return not self.success


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree.

    Raises:
        OSError: If the path cannot be removed.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class ResourceDeployer(ABC):
    """Places resources at their destinations.

    Attributes:
        dry_run: If True, decide what would happen without touching disk.
    """

    def __init__(self, resolver: ConflictResolver, dry_run: bool = False) -> None:
        """Initialize the deployer.

        Args:
            resolver: Decides what to do with occupied destinations.
            dry_run: If True, only report what would be done.
        """
        self._resolver = resolver
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if deployer is in dry-run mode."""
        return self._dry_run

    @abstractmethod
    def deploy(self, name: str, spec: object) -> DeployResult:
        """Deploy one configured resource.

        Raises:
            RunCancelledError: If the user chose to quit the run.
        """

    def identical(self, destination: Path, source: Path, deployment: DeploymentKind) -> bool:
        """Check if a destination already holds the desired resource."""
        return is_identical(source, destination, deployment)

    def _resolve(self, conflict: Conflict) -> Decision:
        decision = self._resolver.resolve(conflict)
        if decision.kind == DecisionKind.ABORT and decision.cancel_run:
            msg = f"Run cancelled while deploying {conflict.name}"
            raise RunCancelledError(msg)
        return decision

    def place(
        self,
        conflict: Conflict,
        decision: Decision,
        *,
        mode: int | None = None,
        owner: str | None = None,
        group: str | None = None,
    ) -> str | None:
        """Carry out a PROCEED or BACKUP decision.

        Args:
            conflict: The resource being placed.
            decision: The resolver's decision.
            mode: Permission bits applied to copies.
            owner: Owner user name applied to copies.
            group: Owner group name applied to copies.

        Returns:
            Content hash of the placed copy, None for symlinks.

        Raises:
            DeployError: If any filesystem step fails.
        """
        destination = conflict.destination
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)

            if decision.kind == DecisionKind.BACKUP and decision.backup_path is not None:
                logger.info("Backing up %s to %s", destination, decision.backup_path)
                os.replace(destination, decision.backup_path)
            elif os.path.lexists(destination):
                logger.debug("Removing stale %s", destination)
                remove_path(destination)

            if conflict.deployment == DeploymentKind.LINK:
                os.symlink(conflict.source, destination)
                return None

            if conflict.source.is_dir():
                shutil.copytree(conflict.source, destination, symlinks=True)
            else:
                shutil.copy2(conflict.source, destination)
            self.apply_attributes(destination, mode=mode, owner=owner, group=group)
            return sha256_tree(destination)
        except OSError as e:
            msg = f"Failed to place {conflict.source} at {destination}: {e}"
            raise DeployError(msg) from e

    def apply_attributes(
        self,
        destination: Path,
        *,
        mode: int | None = None,
        owner: str | None = None,
        group: str | None = None,
    ) -> None:
        """Apply permission bits and ownership to a placed copy.

        Raises:
            OSError: If permissions or ownership cannot be changed.
        """
        if mode is not None:
            os.chmod(destination, mode)
        if owner is not None or group is not None:
            shutil.chown(destination, user=owner, group=group)

    def _dry_run_message(self, conflict: Conflict, decision: Decision) -> str:
        verb = "link" if conflict.deployment == DeploymentKind.LINK else "copy"
        if decision.kind == DecisionKind.BACKUP:
            return f"Dry-run: would back up to {decision.backup_path} and {verb}"
        if os.path.lexists(conflict.destination):
            return f"Dry-run: would replace and {verb}"
        return f"Dry-run: would {verb}"

    def _carry_out(
        self,
        conflict: Conflict,
        *,
        record_fields: dict[str, object],
        record_type: type[ManagedFile] = ManagedFile,
        mode: int | None = None,
        owner: str | None = None,
        group: str | None = None,
    ) -> DeployResult:
        """Resolve the conflict for a resource and act on the decision."""
        decision = self._resolve(conflict)
        destination = conflict.destination

        if decision.kind == DecisionKind.ABORT:
            return DeployResult(
                name=conflict.name,
                destination=destination,
                success=True,
                skipped=True,
                message="Skipped at user request",
            )

        if decision.kind == DecisionKind.SKIP_NOOP:
            content_hash = None
            if conflict.deployment == DeploymentKind.COPY:
                content_hash = sha256_tree(destination)
                if not self._dry_run:
                    try:
                        self.apply_attributes(destination, mode=mode, owner=owner, group=group)
                    except OSError as e:
                        return self._failure(conflict, f"Failed to set attributes: {e}")
            return DeployResult(
                name=conflict.name,
                destination=destination,
                success=True,
                record=record_type(
                    name=conflict.name,
                    destination=str(destination),
                    deployment=conflict.deployment,
                    content_hash=content_hash,
                    **record_fields,
                ),
                message="Already up to date",
            )

        if self._dry_run:
            return DeployResult(
                name=conflict.name,
                destination=destination,
                success=True,
                changed=True,
                backup_path=decision.backup_path,
                message=self._dry_run_message(conflict, decision),
            )

        try:
            content_hash = self.place(conflict, decision, mode=mode, owner=owner, group=group)
        except DeployError as e:
            return self._failure(conflict, str(e))

        backup = str(decision.backup_path) if decision.backup_path is not None else None
        fields = dict(record_fields)
        if backup is not None:
            fields["backup_path"] = backup
        logger.info("Deployed %s to %s", conflict.name, destination)
        return DeployResult(
            name=conflict.name,
            destination=destination,
            success=True,
            changed=True,
            record=record_type(
                name=conflict.name,
                destination=str(destination),
                deployment=conflict.deployment,
                content_hash=content_hash,
                **fields,
            ),
            backup_path=decision.backup_path,
            message="Deployed",
        )

    def _failure(self, conflict: Conflict, error: str) -> DeployResult:
        logger.warning("Failed to deploy %s: %s", conflict.name, error)
        return DeployResult(
            name=conflict.name,
            destination=conflict.destination,
            success=False,
            error=error,
        )
