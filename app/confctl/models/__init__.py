"""Data models for confctl.

This module exports the core data structures used throughout the application.
"""

from confctl.models.action import Action, ActionResult, ActionType
from confctl.models.config import (
    BackupPolicy,
    BinarySpec,
    ConfigDocument,
    FileSpec,
    IncludeCondition,
    IncludeDirective,
    LogicalConfig,
    PackageEntry,
    PackageLists,
)
from confctl.models.package import PackageSource
from confctl.models.state import (
    AppliedState,
    DeploymentKind,
    ManagedBinary,
    ManagedFile,
    ManagedPackages,
)

__all__ = [
    "Action",
    "ActionResult",
    "ActionType",
    "AppliedState",
    "BackupPolicy",
    "BinarySpec",
    "ConfigDocument",
    "DeploymentKind",
    "FileSpec",
    "IncludeCondition",
    "IncludeDirective",
    "LogicalConfig",
    "ManagedBinary",
    "ManagedFile",
    "ManagedPackages",
    "PackageEntry",
    "PackageLists",
    "PackageSource",
]
