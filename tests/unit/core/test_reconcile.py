"""Unit tests for state reconciliation.

Tests for the set algebra between desired configuration and applied state.
"""

from confctl.core.reconcile import Plan, StateReconciler
from confctl.models.config import FileSpec, LogicalConfig, PackageLists
from confctl.models.package import PackageSource
from confctl.models.state import AppliedState, ManagedFile, ManagedPackages


def file_spec(name: str) -> FileSpec:
    return FileSpec(source=f"/src/{name}", destination=f"/home/u/.{name}")


class TestStateReconciler:
    """Tests for StateReconciler.diff."""

    def test_fresh_machine(self) -> None:
        """Without applied state everything desired is new, nothing is removed."""
        desired = LogicalConfig(
            packages=PackageLists(apt=["git", "curl"]),
            files={"bashrc": file_spec("bashrc")},
        )

        plan = StateReconciler().diff(desired, AppliedState.empty())

        apt = plan.for_source(PackageSource.APT)
        assert [e.name for e in apt.to_install] == ["git", "curl"]
        assert apt.new == ("git", "curl")
        assert apt.to_remove == ()
        assert plan.files.to_deploy == ("bashrc",)
        assert plan.has_removals is False

    def test_removed_from_configuration(self) -> None:
        """Managed names no longer desired are removed; unmanaged ones never are."""
        desired = LogicalConfig(packages=PackageLists(apt=["git"]))
        applied = AppliedState(packages=ManagedPackages(apt=["git", "htop"], snap=["code"]))

        plan = StateReconciler().diff(desired, applied)

        assert plan.for_source(PackageSource.APT).to_remove == ("htop",)
        assert plan.for_source(PackageSource.APT).new == ()
        assert plan.for_source(PackageSource.SNAP).to_remove == ("code",)
        assert plan.has_removals is True

    def test_duplicates_are_collapsed(self) -> None:
        """A package declared twice is installed once with its first flags."""
        desired = LogicalConfig(
            packages=PackageLists(apt=[{"name": "vim", "flags": ["-y"]}, "vim", "git"])
        )

        plan = StateReconciler().diff(desired, AppliedState.empty())

        entries = plan.for_source(PackageSource.APT).to_install
        assert [e.name for e in entries] == ["vim", "git"]
        assert entries[0].flags == ("-y",)

    def test_resource_removal(self) -> None:
        """File records whose name left the configuration are removed."""
        desired = LogicalConfig(files={"bashrc": file_spec("bashrc")})
        applied = AppliedState(
            files=[
                ManagedFile(name="bashrc", destination="/home/u/.bashrc"),
                ManagedFile(name="vimrc", destination="/home/u/.vimrc"),
            ]
        )

        plan = StateReconciler().diff(desired, applied)

        assert [r.name for r in plan.files.to_remove] == ["vimrc"]
        assert plan.binaries.to_remove == ()

    def test_empty_plan(self) -> None:
        """Nothing desired and nothing managed yields an empty plan."""
        plan = StateReconciler().diff(LogicalConfig(), AppliedState.empty())

        assert plan.is_empty is True

    def test_to_dict(self) -> None:
        """Plans serialize for JSON output."""
        desired = LogicalConfig(
            packages=PackageLists(flatpak=["org.gnome.Calculator"]),
            dconf={"/org/gnome/desktop/interface/clock-format": "'24h'"},
        )
        applied = AppliedState(files=[ManagedFile(name="old", destination="/home/u/.old")])

        data = StateReconciler().diff(desired, applied).to_dict()

        assert data["packages"]["flatpak"]["to_install"] == [
            {"name": "org.gnome.Calculator", "flags": []}
        ]
        assert data["files"]["to_remove"] == [
            {"name": "old", "destination": "/home/u/.old", "deployment": "link"}
        ]
        assert data["dconf"] == {"/org/gnome/desktop/interface/clock-format": "'24h'"}

    def test_for_source_defaults(self) -> None:
        """A plan without an entry for a manager reports nothing for it."""
        plan = Plan(packages=())

        assert plan.for_source(PackageSource.SNAP).to_install == ()
