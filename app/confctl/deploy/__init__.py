"""Resource deployers: files, binaries, safe removal and backup pruning."""

from confctl.deploy.backups import PruneResult, find_backups, prune_backups
from confctl.deploy.base import DeployError, DeployResult, ResourceDeployer
from confctl.deploy.binaries import BinaryDeployer
from confctl.deploy.files import FileDeployer
from confctl.deploy.removal import (
    RemovalResult,
    ResourceRemover,
    SafetyViolation,
    check_removal,
)

__all__ = [
    "BinaryDeployer",
    "DeployError",
    "DeployResult",
    "FileDeployer",
    "PruneResult",
    "RemovalResult",
    "ResourceDeployer",
    "ResourceRemover",
    "SafetyViolation",
    "check_removal",
    "find_backups",
    "prune_backups",
]
