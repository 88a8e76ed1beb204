"""Reconciliation of the desired configuration against applied state.

This module provides the StateReconciler class that computes what a run
must install, deploy and remove. Removals are derived purely from the
applied state, since it is the only record of what confctl manages.
Installs are decided later by a live probe, because the applied state
knows nothing about packages changed by hand.
"""

from dataclasses import dataclass, field

from confctl.models.config import LogicalConfig, PackageEntry
from confctl.models.package import PackageSource
from confctl.models.state import AppliedState, ManagedFile


@dataclass(frozen=True, slots=True)
class PackagePlan:
    """Package changes for one package manager.

    Attributes:
        source: Package manager.
        to_install: Every desired entry, first occurrence per name. Entries
            already installed are filtered out by a live probe at apply time.
        new: Desired names not managed by the previous run (informational).
        to_remove: Previously managed names no longer desired.
    """

    source: PackageSource
    to_install: tuple[PackageEntry, ...] = ()
    new: tuple[str, ...] = ()
    to_remove: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ResourcePlan:
    """File or binary changes.

    Attributes:
        to_deploy: Names of every desired resource. The conflict protocol
            turns the ones already in place into no-ops.
        to_remove: Previously managed records whose name is no longer desired.
    """

    to_deploy: tuple[str, ...] = ()
    to_remove: tuple[ManagedFile, ...] = ()


@dataclass(frozen=True, slots=True)
class Plan:
    """Everything a convergence run will act on.

    Attributes:
        packages: One PackagePlan per package manager.
        files: File changes.
        binaries: Binary changes.
        settings: dconf settings to apply.
    """

    packages: tuple[PackagePlan, ...]
    files: ResourcePlan = field(default_factory=ResourcePlan)
    binaries: ResourcePlan = field(default_factory=ResourcePlan)
    settings: dict[str, str] = field(default_factory=dict)

    def for_source(self, source: PackageSource) -> PackagePlan:
        """Return the package plan of one manager."""
        for plan in self.packages:
            if plan.source == source:
                return plan
        return PackagePlan(source=source)

    @property
    def has_removals(self) -> bool:
        """Check if anything previously managed will be removed."""
        return bool(
            self.files.to_remove
            or self.binaries.to_remove
            or any(plan.to_remove for plan in self.packages)
        )

    @property
    def is_empty(self) -> bool:
        """Check if the plan declares nothing and removes nothing."""
        return not (
            self.has_removals
            or self.files.to_deploy
            or self.binaries.to_deploy
            or self.settings
            or any(plan.to_install for plan in self.packages)
        )

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "packages": {
                plan.source.value: {
                    "to_install": [
                        {"name": entry.name, "flags": list(entry.flags)}
                        for entry in plan.to_install
                    ],
                    "new": list(plan.new),
                    "to_remove": list(plan.to_remove),
                }
                for plan in self.packages
            },
            "files": _resource_plan_to_dict(self.files),
            "binaries": _resource_plan_to_dict(self.binaries),
            "dconf": dict(self.settings),
        }


def _resource_plan_to_dict(plan: ResourcePlan) -> dict[str, object]:
    return {
        "to_deploy": list(plan.to_deploy),
        "to_remove": [
            {
                "name": record.name,
                "destination": record.destination,
                "deployment": record.deployment.value,
            }
            for record in plan.to_remove
        ],
    }


def _unique_entries(entries: list[PackageEntry]) -> tuple[PackageEntry, ...]:
    seen: set[str] = set()
    unique: list[PackageEntry] = []
    for entry in entries:
        if entry.name not in seen:
            seen.add(entry.name)
            unique.append(entry)
    return tuple(unique)


class StateReconciler:
    """Computes a Plan from desired configuration and applied state.

    Example:
        >>> plan = StateReconciler().diff(config, store.load())
        >>> plan.for_source(PackageSource.APT).to_remove
        ('old-tool',)
    """

    def diff(self, desired: LogicalConfig, applied: AppliedState) -> Plan:
        """Compute the changes needed to converge.

        Args:
            desired: The merged configuration.
            applied: State recorded by the previous successful run.

        Returns:
            The plan. Reconciliation itself never fails.
        """
        package_plans: list[PackagePlan] = []
        for source in PackageSource:
            entries = _unique_entries(desired.packages.for_source(source))
            desired_names = {entry.name for entry in entries}
            managed = applied.packages.for_source(source)
            managed_names = set(managed)

            package_plans.append(
                PackagePlan(
                    source=source,
                    to_install=entries,
                    new=tuple(e.name for e in entries if e.name not in managed_names),
                    to_remove=tuple(
                        dict.fromkeys(name for name in managed if name not in desired_names)
                    ),
                )
            )

        files = ResourcePlan(
            to_deploy=tuple(desired.files),
            to_remove=tuple(r for r in applied.files if r.name not in desired.files),
        )
        binaries = ResourcePlan(
            to_deploy=tuple(desired.binaries),
            to_remove=tuple(r for r in applied.binaries if r.name not in desired.binaries),
        )

        return Plan(
            packages=tuple(package_plans),
            files=files,
            binaries=binaries,
            settings=dict(desired.dconf),
        )
