"""Convergence engine.

Runs a plan against the machine in one sequential pass:

1. Remove files, binaries and packages that left the configuration.
2. Deploy files, then binaries.
3. Install missing packages, grouped by their effective install flags.
4. Apply dconf settings.
5. Prune backups according to the backup policy.

The applied state is rewritten only after a run without failures, and
never in dry-run mode.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from confctl.core.cache import SystemStateCache
from confctl.core.conflict import ConflictPrompt, ConflictResolver, NonInteractivePrompt
from confctl.core.reconcile import Plan, StateReconciler
from confctl.core.state import AppliedStateStore
from confctl.deploy.backups import PruneResult, prune_backups
from confctl.deploy.base import DeployResult
from confctl.deploy.binaries import BinaryDeployer
from confctl.deploy.files import FileDeployer
from confctl.deploy.removal import RemovalResult, ResourceRemover, SafetyViolation
from confctl.models.action import ActionResult
from confctl.models.config import LogicalConfig, PackageEntry
from confctl.models.package import PackageSource
from confctl.models.state import AppliedState, ManagedBinary, ManagedFile, ManagedPackages
from confctl.operators import get_operators
from confctl.operators.base import Operator
from confctl.operators.dconf import DconfResult, DconfWriter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConvergenceReport:
    """Everything a convergence run did, for presentation.

    Attributes:
        dry_run: Whether the run only simulated changes.
        package_results: Results of package installs and removals.
        already_installed: Desired packages found installed, per manager.
        file_results: Results of file deployments.
        binary_results: Results of binary deployments.
        removals: Results of removing resources no longer configured.
        dconf_results: Results of applying dconf settings.
        pruned: Backups pruned by the backup policy.
        errors: Run-level errors, such as an unavailable package manager.
        state: The applied state written at the end of the run.
    """

    dry_run: bool = False
    package_results: list[ActionResult] = field(default_factory=list)
    already_installed: dict[PackageSource, list[str]] = field(default_factory=dict)
    file_results: list[DeployResult] = field(default_factory=list)
    binary_results: list[DeployResult] = field(default_factory=list)
    removals: list[RemovalResult] = field(default_factory=list)
    dconf_results: list[DconfResult] = field(default_factory=list)
    pruned: PruneResult = field(default_factory=PruneResult)
    errors: list[str] = field(default_factory=list)
    state: AppliedState | None = None

    @property
    def state_written(self) -> bool:
        """Check if the applied state was rewritten."""
        return self.state is not None

    @property
    def violations(self) -> list[SafetyViolation]:
        """Removals refused by safety checks."""
        return [r.violation for r in self.removals if r.violation is not None]

    @property
    def failures(self) -> list[str]:
        """Descriptions of everything that failed."""
        failed: list[str] = list(self.errors)
        for result in self.package_results:
            if result.failed:
                failed.append(result.describe())
        for deployed in (*self.file_results, *self.binary_results):
            if deployed.failed:
                failed.append(f"{deployed.name}: {deployed.error}")
        for removal in self.removals:
            if removal.failed:
                failed.append(f"remove {removal.record.name}: {removal.error}")
        for setting in self.dconf_results:
            if not setting.success:
                failed.append(f"dconf {setting.key}: {setting.error}")
        return failed

    @property
    def has_failures(self) -> bool:
        """Check if anything failed."""
        return bool(self.failures)


def group_by_flags(
    entries: list[PackageEntry],
    source: PackageSource,
    package_defaults: Mapping[str, list[str]],
) -> list[tuple[list[str], list[str]]]:
    """Group packages sharing the same effective install flags.

    Args:
        entries: Packages to install, in declared order.
        source: Their package manager.
        package_defaults: Per-manager default flags.

    Returns:
        (flags, package names) pairs in order of first appearance.
    """
    groups: dict[tuple[str, ...], list[str]] = {}
    for entry in entries:
        flags = tuple(entry.effective_flags(source, dict(package_defaults)))
        groups.setdefault(flags, []).append(entry.name)
    return [(list(flags), names) for flags, names in groups.items()]


class ConvergenceEngine:
    """Applies a LogicalConfig to the machine.

    Example:
        >>> engine = ConvergenceEngine.create(dry_run=True)
        >>> report = engine.run(config)
        >>> report.has_failures
        False
    """

    def __init__(
        self,
        *,
        operators: Mapping[PackageSource, Operator],
        file_deployer: FileDeployer,
        binary_deployer: BinaryDeployer,
        remover: ResourceRemover,
        dconf: DconfWriter,
        state_store: AppliedStateStore,
        probe_cache: SystemStateCache | None = None,
        reconciler: StateReconciler | None = None,
        dry_run: bool = False,
        remove: bool = True,
    ) -> None:
        """Initialize the engine.

        Args:
            operators: One package operator per manager.
            file_deployer: Places files.
            binary_deployer: Places binaries.
            remover: Removes resources no longer configured.
            dconf: Applies dconf settings.
            state_store: Reads and writes the applied state.
            probe_cache: Remembers installation probes between runs.
            reconciler: Computes plans.
            dry_run: If True, nothing is changed and state is not written.
            remove: If False, nothing previously managed is removed.
        """
        self._operators = operators
        self._file_deployer = file_deployer
        self._binary_deployer = binary_deployer
        self._remover = remover
        self._dconf = dconf
        self._state_store = state_store
        self._probe_cache = probe_cache
        self._reconciler = reconciler if reconciler is not None else StateReconciler()
        self._dry_run = dry_run
        self._remove = remove

    @classmethod
    def create(
        cls,
        *,
        dry_run: bool = False,
        interactive: bool = False,
        prompt: ConflictPrompt | None = None,
        remove: bool = True,
        state_store: AppliedStateStore | None = None,
        cache_dir: Path | None = None,
        use_probe_cache: bool = True,
    ) -> "ConvergenceEngine":
        """Build an engine wired to the real system.

        Args:
            dry_run: If True, nothing is changed.
            interactive: Ask about every conflict when a terminal is attached.
            prompt: How to ask. Ignored in dry-run mode.
            remove: If False, nothing previously managed is removed.
            state_store: Applied-state store. Defaults to the user config directory.
            cache_dir: Cache root for probes and staging. Defaults to the user cache.
            use_probe_cache: If False, always probe package managers live.

        Returns:
            A ready ConvergenceEngine.
        """
        active_prompt = NonInteractivePrompt() if dry_run or prompt is None else prompt
        resolver = ConflictResolver(prompt=active_prompt, interactive=interactive)
        staging_dir = cache_dir / "staging" if cache_dir is not None else None
        return cls(
            operators=get_operators(dry_run=dry_run),
            file_deployer=FileDeployer(resolver, dry_run=dry_run),
            binary_deployer=BinaryDeployer(resolver, dry_run=dry_run, staging_dir=staging_dir),
            remover=ResourceRemover(active_prompt, dry_run=dry_run, interactive=interactive),
            dconf=DconfWriter(dry_run=dry_run),
            state_store=state_store if state_store is not None else AppliedStateStore(),
            probe_cache=SystemStateCache(cache_dir) if use_probe_cache else None,
            dry_run=dry_run,
            remove=remove,
        )

    @property
    def dry_run(self) -> bool:
        """Check if engine is in dry-run mode."""
        return self._dry_run

    def plan(self, config: LogicalConfig) -> Plan:
        """Compute the plan for a configuration against the recorded state."""
        return self._reconciler.diff(config, self._state_store.load())

    def run(self, config: LogicalConfig) -> ConvergenceReport:
        """Converge the machine to a configuration.

        Args:
            config: The merged configuration.

        Returns:
            ConvergenceReport describing every action taken.

        Raises:
            RunCancelledError: If the user chose to quit during a conflict.
                Nothing further is done and the state is not rewritten.
        """
        applied = self._state_store.load()
        plan = self._reconciler.diff(config, applied)
        report = ConvergenceReport(dry_run=self._dry_run)

        try:
            if self._remove:
                self._remove_resources(plan, report)
                self._remove_packages(plan, report)
            self._deploy_files(config, plan, report)
            self._deploy_binaries(config, plan, report)
            self._install_packages(config, plan, report)
            self._apply_dconf(plan, report)
            self._prune_backups(config, report)
        finally:
            if self._probe_cache is not None and not self._dry_run:
                self._probe_cache.save()

        if self._dry_run:
            return report
        if report.has_failures:
            logger.warning(
                "Run finished with %d failure(s); applied state not updated",
                len(report.failures),
            )
            return report

        state = self._build_state(config, applied, report)
        self._state_store.save(state)
        report.state = state
        return report

    def _is_installed(self, source: PackageSource, package: str) -> bool:
        if self._probe_cache is not None:
            cached = self._probe_cache.lookup(source, package)
            if cached is not None:
                return cached
        installed = self._operators[source].is_installed(package)
        if self._probe_cache is not None:
            self._probe_cache.record(source, package, installed)
        return installed

    def _forget(self, source: PackageSource, results: list[ActionResult]) -> None:
        if self._probe_cache is not None:
            self._probe_cache.invalidate(source, [r.action.package for r in results])

    def _remove_resources(self, plan: Plan, report: ConvergenceReport) -> None:
        for record in (*plan.files.to_remove, *plan.binaries.to_remove):
            report.removals.append(self._remover.remove(record))

    def _remove_packages(self, plan: Plan, report: ConvergenceReport) -> None:
        for package_plan in plan.packages:
            if not package_plan.to_remove:
                continue
            source = package_plan.source
            installed = [
                name for name in package_plan.to_remove if self._is_installed(source, name)
            ]
            if not installed:
                continue
            try:
                results = self._operators[source].remove(installed)
            except RuntimeError as e:
                report.errors.append(str(e))
                continue
            report.package_results.extend(results)
            self._forget(source, results)

    def _deploy_files(self, config: LogicalConfig, plan: Plan, report: ConvergenceReport) -> None:
        for name in plan.files.to_deploy:
            report.file_results.append(self._file_deployer.deploy(name, config.files[name]))

    def _deploy_binaries(
        self, config: LogicalConfig, plan: Plan, report: ConvergenceReport
    ) -> None:
        for name in plan.binaries.to_deploy:
            report.binary_results.append(self._binary_deployer.deploy(name, config.binaries[name]))

    def _install_packages(
        self, config: LogicalConfig, plan: Plan, report: ConvergenceReport
    ) -> None:
        for package_plan in plan.packages:
            if not package_plan.to_install:
                continue
            source = package_plan.source
            missing: list[PackageEntry] = []
            present: list[str] = []
            for entry in package_plan.to_install:
                if self._is_installed(source, entry.name):
                    present.append(entry.name)
                else:
                    missing.append(entry)
            report.already_installed[source] = present

            for flags, names in group_by_flags(missing, source, config.package_defaults):
                try:
                    results = self._operators[source].install(names, flags)
                except RuntimeError as e:
                    report.errors.append(str(e))
                    break
                report.package_results.extend(results)
                self._forget(source, results)

    def _apply_dconf(self, plan: Plan, report: ConvergenceReport) -> None:
        if not plan.settings:
            return
        try:
            report.dconf_results.extend(self._dconf.apply(plan.settings))
        except RuntimeError as e:
            report.errors.append(str(e))

    def _prune_backups(self, config: LogicalConfig, report: ConvergenceReport) -> None:
        if config.backup_policy is None or not config.backup_policy.is_active:
            return
        destinations = [r.destination for r in (*report.file_results, *report.binary_results)]
        report.pruned = prune_backups(destinations, config.backup_policy, dry_run=self._dry_run)

    def _build_state(
        self,
        config: LogicalConfig,
        applied: AppliedState,
        report: ConvergenceReport,
    ) -> AppliedState:
        """Assemble the new applied state from the run's results."""
        packages = ManagedPackages(
            apt=_unique_names(config.packages.apt),
            flatpak=_unique_names(config.packages.flatpak),
            snap=_unique_names(config.packages.snap),
        )

        files: list[ManagedFile] = []
        for result in report.file_results:
            record = _carry_forward(result, applied.find_file(result.name))
            if record is not None:
                files.append(record)

        binaries: list[ManagedBinary] = []
        for result in report.binary_results:
            record = _carry_forward(result, applied.find_binary(result.name))
            if isinstance(record, ManagedBinary):
                binaries.append(record)

        return AppliedState(packages=packages, files=files, binaries=binaries)


def _unique_names(entries: list[PackageEntry]) -> list[str]:
    return list(dict.fromkeys(entry.name for entry in entries))


def _carry_forward(result: DeployResult, previous: ManagedFile | None) -> ManagedFile | None:
    """Pick the state record for a deployed resource.

    A skipped resource keeps its previous record. A resource left as it
    was keeps the backup path recorded when it was first deployed.
    """
    if result.record is None:
        return previous if result.skipped else None
    record = result.record
    if record.backup_path is None and previous is not None and previous.backup_path:
        record = record.model_copy(update={"backup_path": previous.backup_path})
    return record
