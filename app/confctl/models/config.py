"""Configuration models for declarative system setup.

This module defines the Pydantic models for the TOML documents a user
authors (``ConfigDocument``) and for the single merged model that the
convergence engine consumes (``LogicalConfig``).
"""

import os
import re
from pathlib import Path
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from confctl.models.package import PackageSource, get_builtin_flags
from confctl.models.state import DeploymentKind

# Characters that turn an include path into a glob pattern
GLOB_CHARS = frozenset("*?[")

ConditionType = Literal["os", "env", "hostname", "file_exists", "dir_exists"]
ConditionOperator = Literal["equals", "not_equals", "contains", "not_contains", "matches"]

_AGE_PATTERN = re.compile(r"^(\d+)([smhdw])$")
_AGE_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_age(value: str) -> int:
    """Convert an age such as ``"30d"`` or ``"12h"`` to seconds.

    Raises:
        ValueError: If the value is not a count followed by s, m, h, d or w.
    """
    match = _AGE_PATTERN.match(value.strip())
    if match is None:
        msg = f"Invalid age {value!r}, expected e.g. '30d', '12h', '90m'"
        raise ValueError(msg)
    return int(match.group(1)) * _AGE_UNITS[match.group(2)]


class IncludeCondition(BaseModel):
    """A predicate gating an include directive.

    Attributes:
        type: Which system fact is tested.
        operator: Comparison applied to the fact.
        value: Expected value. For ``env`` this is ``NAME=expected`` or
            a bare ``NAME`` to test that the variable is set.
    """

    model_config = ConfigDict(extra="forbid")

    type: Annotated[ConditionType, Field(description="System fact to test")]
    operator: Annotated[ConditionOperator, Field(description="Comparison")] = "equals"
    value: Annotated[str, Field(min_length=1, description="Expected value")]


class IncludeDirective(BaseModel):
    """A reference from one document to another document or set of documents.

    Exactly one of ``path`` and ``glob`` must be set.
    """

    model_config = ConfigDict(extra="forbid")

    path: Annotated[str | None, Field(description="Document or directory to include")] = None
    glob: Annotated[str | None, Field(description="Glob pattern of documents")] = None
    optional: Annotated[bool, Field(description="Skip silently when missing")] = False
    description: Annotated[str | None, Field(description="Free-form note")] = None
    conditions: Annotated[
        list[IncludeCondition],
        Field(default_factory=list, description="All must hold for the include to apply"),
    ]

    @model_validator(mode="before")
    @classmethod
    def accept_bare_path(cls, data: Any) -> Any:
        """Allow a plain string as shorthand for ``{path = "..."}``."""
        if isinstance(data, str):
            return {"path": data}
        return data

    @model_validator(mode="after")
    def validate_target(self) -> Self:
        """Validate that exactly one target is given."""
        if (self.path is None) == (self.glob is None):
            msg = "Include directive needs exactly one of 'path' or 'glob'"
            raise ValueError(msg)
        target = self.path if self.path is not None else self.glob
        if not target:
            msg = "Include target must not be empty"
            raise ValueError(msg)
        return self

    @property
    def target(self) -> str:
        """The path or pattern this directive points at."""
        return self.glob if self.glob is not None else self.path  # type: ignore[return-value]

    @property
    def is_glob(self) -> bool:
        """Check if the target should be expanded as a glob pattern."""
        return self.glob is not None or any(c in GLOB_CHARS for c in self.target)


class PackageEntry(BaseModel):
    """A package to install, with optional per-package flags.

    In documents a package may be written as a bare name or as
    ``{ name = "...", flags = [...] }``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, description="Package name")]
    flags: Annotated[
        tuple[str, ...],
        Field(default=(), description="Install flags overriding all defaults"),
    ]

    @model_validator(mode="before")
    @classmethod
    def accept_bare_name(cls, data: Any) -> Any:
        """Allow a plain string as shorthand for ``{name = "..."}``."""
        if isinstance(data, str):
            return {"name": data}
        return data

    def effective_flags(
        self,
        source: PackageSource,
        package_defaults: dict[str, list[str]],
    ) -> list[str]:
        """Resolve install flags: package flags, then manager defaults, then built-ins.

        Args:
            source: Package manager the entry belongs to.
            package_defaults: Per-manager default flags from the configuration.

        Returns:
            Flags to pass to the installer.
        """
        if self.flags:
            return list(self.flags)
        if source.value in package_defaults:
            return list(package_defaults[source.value])
        return get_builtin_flags(source)


class PackageLists(BaseModel):
    """Package entries per package manager."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    apt: list[PackageEntry] = Field(default_factory=list)
    flatpak: list[PackageEntry] = Field(default_factory=list)
    snap: list[PackageEntry] = Field(default_factory=list)

    def for_source(self, source: PackageSource) -> list[PackageEntry]:
        """Return the entries declared for one package manager."""
        return getattr(self, source.value)


def _validate_mode(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        parsed = int(value, 8)
    except ValueError as e:
        msg = f"Invalid octal mode: {value!r}"
        raise ValueError(msg) from e
    if not 0 <= parsed <= 0o7777:
        msg = f"Mode out of range: {value!r}"
        raise ValueError(msg)
    return value


class _ResourceSpec(BaseModel):
    """Attributes shared by deployable files and binaries."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Annotated[str, Field(min_length=1, description="Source path or URL")]
    destination: Annotated[str, Field(min_length=1, description="Target path")]
    owner: Annotated[str | None, Field(description="Owner user name")] = None
    group: Annotated[str | None, Field(description="Owner group name")] = None
    mode: Annotated[str | None, Field(description="Octal permission bits")] = None
    backup: Annotated[bool, Field(description="Back up a differing destination")] = False
    interactive: Annotated[bool, Field(description="Ask before replacing")] = False
    base_dir: Annotated[
        str | None,
        Field(description="Directory of the declaring document, set when merging"),
    ] = None

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, value: str | None) -> str | None:
        """Validate that mode is an octal permission string."""
        return _validate_mode(value)

    @property
    def mode_bits(self) -> int | None:
        """Permission bits as an integer, or None when unset."""
        return int(self.mode, 8) if self.mode is not None else None

    def destination_path(self) -> Path:
        """Absolute destination with ``~`` expanded."""
        return Path(os.path.abspath(os.path.expanduser(self.destination)))

    def source_path(self) -> Path:
        """Absolute local source, relative paths resolved against ``base_dir``."""
        expanded = Path(os.path.expanduser(self.source))
        if not expanded.is_absolute() and self.base_dir is not None:
            expanded = Path(self.base_dir) / expanded
        return Path(os.path.abspath(expanded))


class FileSpec(_ResourceSpec):
    """A file or directory deployed as a symlink (default) or a copy."""

    copy_: Annotated[
        bool,
        Field(alias="copy", description="Copy instead of symlinking"),
    ] = False

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @property
    def deployment(self) -> DeploymentKind:
        """How the file is placed at its destination."""
        return DeploymentKind.COPY if self.copy_ else DeploymentKind.LINK


class BinarySpec(_ResourceSpec):
    """An executable fetched from a URL or local path and copied into place."""

    mode: Annotated[str | None, Field(description="Octal permission bits")] = "755"

    @property
    def deployment(self) -> DeploymentKind:
        """Binaries are always copies."""
        return DeploymentKind.COPY

    @property
    def is_remote(self) -> bool:
        """Check if the source is a URL to download."""
        return self.source.startswith(("https://", "http://"))


class BackupPolicy(BaseModel):
    """Retention rules for ``*.backup.*`` files next to managed destinations.

    Attributes:
        max_count: Keep at most this many backups per destination.
        max_age: Delete backups older than this age (``"30d"``, ``"12h"``).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_count: Annotated[int | None, Field(ge=0, description="Backups kept per file")] = None
    max_age: Annotated[str | None, Field(description="Maximum backup age")] = None

    @field_validator("max_age")
    @classmethod
    def validate_max_age(cls, value: str | None) -> str | None:
        """Validate the age string format."""
        if value is not None:
            parse_age(value)
        return value

    @property
    def max_age_seconds(self) -> int | None:
        """Maximum age in seconds, or None when unset."""
        if self.max_age is None:
            return None
        return parse_age(self.max_age)

    @property
    def is_active(self) -> bool:
        """Check if the policy prunes anything."""
        return self.max_count is not None or self.max_age is not None


class DconfSection(BaseModel):
    """dconf settings keyed by absolute key path, values in GVariant text."""

    model_config = ConfigDict(extra="forbid")

    settings: dict[str, str] = Field(default_factory=dict)


class ConfigDocument(BaseModel):
    """Schema of a single authored TOML document.

    Every section is optional: a document only declares what it
    contributes to the merged configuration.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[str | None, Field(description="Configuration schema version")] = None
    includes: Annotated[
        list[Any],
        Field(default_factory=list, description="Include directives"),
    ]
    package_defaults: Annotated[
        dict[str, list[str]],
        Field(default_factory=dict, description="Default install flags per manager"),
    ]
    packages: Annotated[PackageLists, Field(default_factory=PackageLists)]
    files: Annotated[dict[str, FileSpec], Field(default_factory=dict)]
    binaries: Annotated[dict[str, BinarySpec], Field(default_factory=dict)]
    dconf: Annotated[DconfSection, Field(default_factory=DconfSection)]
    backup_policy: Annotated[BackupPolicy | None, Field(description="Backup retention")] = None

    @field_validator("files", "binaries", mode="before")
    @classmethod
    def reject_base_dir(cls, value: Any) -> Any:
        """Reject ``base_dir``, which only the merger may set."""
        if isinstance(value, dict):
            for name, entry in value.items():
                if isinstance(entry, dict) and "base_dir" in entry:
                    msg = f"{name}: 'base_dir' is derived from the document location"
                    raise ValueError(msg)
        return value

    @field_validator("package_defaults")
    @classmethod
    def validate_managers(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        """Validate that defaults only name known package managers."""
        known = {source.value for source in PackageSource}
        unknown = sorted(set(value) - known)
        if unknown:
            msg = f"Unknown package manager(s) in package_defaults: {', '.join(unknown)}"
            raise ValueError(msg)
        return value


class LogicalConfig(BaseModel):
    """The merged configuration consumed by convergence.

    Immutable once produced by the merger or read back from the cache.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = "1.0"
    package_defaults: dict[str, list[str]] = Field(default_factory=dict)
    packages: PackageLists = Field(default_factory=PackageLists)
    files: dict[str, FileSpec] = Field(default_factory=dict)
    binaries: dict[str, BinarySpec] = Field(default_factory=dict)
    dconf: dict[str, str] = Field(default_factory=dict)
    backup_policy: BackupPolicy | None = None

    def flags_for(self, source: PackageSource, entry: PackageEntry) -> list[str]:
        """Effective install flags for one entry."""
        return entry.effective_flags(source, self.package_defaults)
