"""Applied-state models.

The applied state is the durable record of what confctl last installed
and deployed. It is read at the start of a run to compute removals and
rewritten at the end of a successful run.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from confctl.models.package import PackageSource

STATE_VERSION = "1.0"


class DeploymentKind(str, Enum):
    """How a resource was placed at its destination."""

    LINK = "link"
    COPY = "copy"


class ManagedPackages(BaseModel):
    """Package names managed by confctl, per package manager."""

    model_config = ConfigDict(extra="ignore")

    apt: list[str] = Field(default_factory=list)
    flatpak: list[str] = Field(default_factory=list)
    snap: list[str] = Field(default_factory=list)

    def for_source(self, source: PackageSource) -> list[str]:
        """Return the managed names for one package manager."""
        return getattr(self, source.value)


class ManagedFile(BaseModel):
    """A file deployed by confctl.

    Attributes:
        name: Resource name as declared in the configuration.
        destination: Absolute path the resource was placed at.
        deployment: Whether the destination is a symlink or a copy.
        backup_path: Backup of the pre-existing destination, if one was made.
        content_hash: SHA-256 of the deployed content (copies only).
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    destination: str
    deployment: DeploymentKind = DeploymentKind.LINK
    backup_path: str | None = None
    content_hash: str | None = None

    @property
    def is_link(self) -> bool:
        """Check if the resource was deployed as a symlink."""
        return self.deployment == DeploymentKind.LINK


class ManagedBinary(ManagedFile):
    """A binary deployed by confctl.

    Binaries are always copies; ``source`` records where it came from.
    """

    deployment: DeploymentKind = DeploymentKind.COPY
    source: str = ""


class AppliedState(BaseModel):
    """Everything confctl managed at the end of its last successful run.

    Unknown fields are ignored so that older releases can read records
    written by newer ones.
    """

    model_config = ConfigDict(extra="ignore")

    version: Annotated[str, Field(description="State schema version")] = STATE_VERSION
    last_updated: Annotated[
        datetime,
        Field(default_factory=lambda: datetime.now(UTC), description="Last write time"),
    ]
    packages: ManagedPackages = Field(default_factory=ManagedPackages)
    files: list[ManagedFile] = Field(default_factory=list)
    binaries: list[ManagedBinary] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "AppliedState":
        """Create a state describing a machine confctl has never touched."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """Check if nothing is recorded as managed."""
        return not (
            self.packages.apt
            or self.packages.flatpak
            or self.packages.snap
            or self.files
            or self.binaries
        )

    def find_file(self, name: str) -> ManagedFile | None:
        """Look up a managed file record by resource name."""
        for record in self.files:
            if record.name == name:
                return record
        return None

    def find_binary(self, name: str) -> ManagedBinary | None:
        """Look up a managed binary record by resource name."""
        for record in self.binaries:
            if record.name == name:
                return record
        return None
