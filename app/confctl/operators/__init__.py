"""Package operators for executing installation and removal actions.

This module provides abstract and concrete implementations of package
operators for different package managers (APT, Flatpak, Snap) plus the
dconf settings writer.
"""

from confctl.models.package import PackageSource
from confctl.operators.apt import AptOperator
from confctl.operators.base import Operator
from confctl.operators.dconf import DconfResult, DconfWriter
from confctl.operators.flatpak import FlatpakOperator
from confctl.operators.snap import SnapOperator

__all__ = [
    "AptOperator",
    "DconfResult",
    "DconfWriter",
    "FlatpakOperator",
    "Operator",
    "SnapOperator",
    "get_operators",
]


def get_operators(dry_run: bool = False) -> dict[PackageSource, Operator]:
    """Create one operator per supported package manager.

    Args:
        dry_run: Passed through to every operator.

    Returns:
        Mapping from package source to its operator.
    """
    return {
        PackageSource.APT: AptOperator(dry_run=dry_run),
        PackageSource.FLATPAK: FlatpakOperator(dry_run=dry_run),
        PackageSource.SNAP: SnapOperator(dry_run=dry_run),
    }
