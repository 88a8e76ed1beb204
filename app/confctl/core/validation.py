"""Semantic checks on a merged configuration.

The document schema only guarantees shape. This module checks what the
schema cannot: package names each manager would accept, risky or
conflicting install flags, duplicate packages across included documents,
missing sources, unsafe destinations and permissions, and dconf key paths.

Errors make the configuration unusable; warnings are reported but do not
stop an apply.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from confctl.models.config import BinarySpec, FileSpec, LogicalConfig, PackageEntry
from confctl.models.package import PackageSource

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?$")

PACKAGE_NAME_PATTERNS: dict[PackageSource, re.Pattern[str]] = {
    PackageSource.APT: re.compile(r"^[a-z0-9][a-z0-9.+-]*$"),
    PackageSource.FLATPAK: re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*[A-Za-z0-9]$"),
    PackageSource.SNAP: re.compile(r"^[a-z0-9][a-z0-9-]*$"),
}

# Characters each manager rejects, replaced when suggesting a fix
_INVALID_NAME_CHARS: dict[PackageSource, tuple[re.Pattern[str], str]] = {
    PackageSource.APT: (re.compile(r"[^a-z0-9.+-]"), "-"),
    PackageSource.FLATPAK: (re.compile(r"[^A-Za-z0-9._-]"), "."),
    PackageSource.SNAP: (re.compile(r"[^a-z0-9-]"), "-"),
}

_NAME_HELP = {
    PackageSource.APT: "use lowercase letters, digits, '.', '+' and '-', or a path to a .deb",
    PackageSource.FLATPAK: "use an application ID such as org.gnome.Calculator",
    PackageSource.SNAP: "use lowercase letters, digits and '-'",
}

DANGEROUS_FLAGS = {
    "--allow-unauthenticated": "installs packages without authentication",
    "--force": "bypasses safety checks",
    "--dangerous": "bypasses snap security",
}

# Flags that cannot be combined, per manager
CONFLICTING_FLAGS: dict[PackageSource, frozenset[str]] = {
    PackageSource.FLATPAK: frozenset({"--user", "--system"}),
}

# Snaps that usually fail to install without these flags
SUGGESTED_FLAGS: dict[str, tuple[str, ...]] = {
    "code": ("--classic",),
    "slack": ("--classic",),
    "postman": ("--classic",),
    "android-studio": ("--classic",),
}


class Severity(Enum):
    """How serious a validation issue is."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One problem found in a configuration.

    Attributes:
        severity: Error or warning.
        location: Dotted location in the configuration, e.g. ``files.vimrc.mode``.
        message: What is wrong.
        value: The offending value, if any.
        hint: How to fix it.
    """

    severity: Severity
    location: str
    message: str
    value: str | None = None
    hint: str | None = None

    @property
    def detail(self) -> str:
        """The message, followed by the offending value when there is one."""
        if self.value is None:
            return self.message
        return f"{self.message} ({self.value!r})"

    def describe(self) -> str:
        """One-line summary for terminal output."""
        return f"{self.location}: {self.detail}"


@dataclass(slots=True)
class ValidationReport:
    """All issues found in one configuration."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        """Issues that make the configuration unusable."""
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        """Issues worth reporting that do not block an apply."""
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def is_valid(self) -> bool:
        """Check if no errors were found."""
        return not self.errors

    def error(
        self, location: str, message: str, value: str | None = None, hint: str | None = None
    ) -> None:
        """Record an error."""
        self.issues.append(ValidationIssue(Severity.ERROR, location, message, value, hint))

    def warn(
        self, location: str, message: str, value: str | None = None, hint: str | None = None
    ) -> None:
        """Record a warning."""
        self.issues.append(ValidationIssue(Severity.WARNING, location, message, value, hint))


def is_valid_package_name(name: str, source: PackageSource) -> bool:
    """Check a package name against what its manager accepts.

    APT entries may also be paths to local ``.deb`` files.
    """
    if source == PackageSource.APT and name.endswith(".deb"):
        return _is_valid_deb_path(name)
    return PACKAGE_NAME_PATTERNS[source].match(name) is not None


def _is_valid_deb_path(name: str) -> bool:
    path = Path(name)
    return "/" in name and ".." not in path.parts and path.name != ".deb"


def suggest_package_name(name: str, source: PackageSource) -> str:
    """Closest name the manager would accept."""
    pattern, replacement = _INVALID_NAME_CHARS[source]
    if source == PackageSource.FLATPAK:
        return pattern.sub(replacement, name)
    return pattern.sub(replacement, name.lower()).lstrip("-.+")


def validate_config(config: LogicalConfig) -> ValidationReport:
    """Run every semantic check on a merged configuration.

    Args:
        config: The merged configuration.

    Returns:
        ValidationReport listing errors and warnings, in configuration order.
    """
    report = ValidationReport()
    _check_version(config, report)
    _check_packages(config, report)
    _check_package_defaults(config, report)
    _check_resources("files", config.files.items(), report)
    _check_resources("binaries", config.binaries.items(), report)
    _check_dconf(config, report)
    logger.debug(
        "Validation found %d error(s), %d warning(s)",
        len(report.errors),
        len(report.warnings),
    )
    return report


def _check_version(config: LogicalConfig, report: ValidationReport) -> None:
    if not VERSION_PATTERN.match(config.version):
        report.error(
            "version",
            "version must look like '1.0' or '1.0.0'",
            config.version,
        )


def _check_packages(config: LogicalConfig, report: ValidationReport) -> None:
    seen: dict[str, PackageSource] = {}
    for source in PackageSource:
        location = f"packages.{source.value}"
        for entry in config.packages.for_source(source):
            if not is_valid_package_name(entry.name, source):
                suggestion = suggest_package_name(entry.name, source)
                report.error(
                    location,
                    f"invalid {source.value} package name",
                    entry.name,
                    f"{_NAME_HELP[source]}; did you mean {suggestion!r}?",
                )

            if entry.name in seen:
                report.warn(
                    location,
                    f"package is already listed under {seen[entry.name].value}",
                    entry.name,
                    "remove the duplicate entry",
                )
            else:
                seen[entry.name] = source

            _check_flags(entry.flags, source, entry.name, location, report)
            _check_suggested_flags(config, entry, source, location, report)


def _check_package_defaults(config: LogicalConfig, report: ValidationReport) -> None:
    known = {source.value for source in PackageSource}
    for manager, flags in config.package_defaults.items():
        if manager not in known:
            report.error(
                f"package_defaults.{manager}",
                "unsupported package manager",
                manager,
                f"use one of {', '.join(sorted(known))}",
            )
            continue
        source = PackageSource(manager)
        _check_flags(
            flags,
            source,
            f"defaults for {manager}",
            f"package_defaults.{manager}",
            report,
        )


def _check_flags(
    flags: Iterable[str],
    source: PackageSource,
    subject: str,
    location: str,
    report: ValidationReport,
) -> None:
    flags = list(flags)
    for flag in flags:
        if flag in DANGEROUS_FLAGS:
            report.warn(
                location,
                f"flag {flag!r} {DANGEROUS_FLAGS[flag]}",
                subject,
                "make sure the security trade-off is intended",
            )

    exclusive = CONFLICTING_FLAGS.get(source, frozenset())
    found = [flag for flag in flags if flag in exclusive]
    if len(set(found)) > 1:
        report.error(
            location,
            f"conflicting flags: {', '.join(found)}",
            subject,
            f"choose only one of {', '.join(sorted(exclusive))}",
        )


def _check_suggested_flags(
    config: LogicalConfig,
    entry: PackageEntry,
    source: PackageSource,
    location: str,
    report: ValidationReport,
) -> None:
    if source != PackageSource.SNAP or entry.name not in SUGGESTED_FLAGS:
        return
    suggested = SUGGESTED_FLAGS[entry.name]
    effective = config.flags_for(source, entry)
    missing = [flag for flag in suggested if flag not in effective]
    if missing:
        report.warn(
            location,
            f"snap usually needs {', '.join(missing)}",
            entry.name,
            f'declare it as {{ name = "{entry.name}", flags = {list(suggested)!r} }}',
        )


def _check_resources(
    section: str,
    specs: Iterable[tuple[str, FileSpec | BinarySpec]],
    report: ValidationReport,
) -> None:
    for name, spec in specs:
        location = f"{section}.{name}"
        remote = isinstance(spec, BinarySpec) and spec.is_remote

        if remote and not spec.source.startswith("https://"):
            report.error(
                f"{location}.source",
                "downloads must use https://",
                spec.source,
            )
        elif not remote and not spec.source_path().exists():
            report.error(
                f"{location}.source",
                "source does not exist",
                spec.source,
                f"looked for {spec.source_path()}",
            )

        if ".." in Path(spec.destination).parts:
            report.error(
                f"{location}.destination",
                "destination must not contain '..'",
                spec.destination,
                "use an absolute path or one starting with ~",
            )

        if spec.mode is not None:
            if len(spec.mode) not in (3, 4):
                report.error(
                    f"{location}.mode",
                    "mode must have 3 or 4 octal digits",
                    spec.mode,
                    "use e.g. '644' or '0755'",
                )
            elif spec.mode_bits is not None and spec.mode_bits & 0o002:
                report.warn(
                    f"{location}.mode",
                    "mode lets every user write to the file",
                    spec.mode,
                    "use '644' for files or '755' for executables",
                )


def _check_dconf(config: LogicalConfig, report: ValidationReport) -> None:
    for key in config.dconf:
        location = f"dconf.settings[{key!r}]"
        if not key.startswith("/"):
            report.error(location, "dconf keys must start with '/'", key, f"use '/{key}'")
        if "//" in key:
            report.error(location, "dconf key contains an empty path segment", key)
