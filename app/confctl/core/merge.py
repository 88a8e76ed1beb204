"""Folding resolved documents into one logical configuration.

Documents are folded in include order with the root document applied
last, so the root overrides everything it includes. Scalars and keyed
maps are last-writer-wins; package lists accumulate.
"""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from confctl.core.document import Document, DocumentValidationError
from confctl.models.config import (
    BackupPolicy,
    BinarySpec,
    ConfigDocument,
    FileSpec,
    LogicalConfig,
    PackageEntry,
    PackageLists,
)
from confctl.models.package import PackageSource

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0"


def validate_document(document: Document) -> ConfigDocument:
    """Validate a parsed document against the document schema.

    Args:
        document: The parsed document.

    Returns:
        The validated ConfigDocument.

    Raises:
        DocumentValidationError: If the content doesn't match the schema.
    """
    try:
        return ConfigDocument.model_validate(document.data)
    except ValidationError as e:
        msg = f"Invalid configuration in {document.path}: {e}"
        raise DocumentValidationError(msg) from e


def merge_order(documents: Sequence[Document]) -> list[Document]:
    """Return documents in fold order: includes first, root (first element) last."""
    if not documents:
        return []
    return [*documents[1:], documents[0]]


def merge_documents(documents: Sequence[Document]) -> LogicalConfig:
    """Merge resolved documents into a LogicalConfig.

    Args:
        documents: Resolved documents with the root first, as produced by
            the include resolver.

    Returns:
        The merged, immutable configuration.

    Raises:
        DocumentValidationError: If any document doesn't match the schema.
    """
    version: str | None = None
    backup_policy: BackupPolicy | None = None
    package_defaults: dict[str, list[str]] = {}
    packages: dict[PackageSource, list[PackageEntry]] = {source: [] for source in PackageSource}
    files: dict[str, FileSpec] = {}
    binaries: dict[str, BinarySpec] = {}
    dconf: dict[str, str] = {}

    for document in merge_order(documents):
        parsed = validate_document(document)
        declared = parsed.model_fields_set
        base_dir = str(document.parent_dir)

        if parsed.version is not None:
            version = parsed.version
        if "backup_policy" in declared and parsed.backup_policy is not None:
            backup_policy = _merge_record(backup_policy, parsed.backup_policy)

        for manager, flags in parsed.package_defaults.items():
            package_defaults[manager] = list(flags)

        for source in PackageSource:
            packages[source].extend(parsed.packages.for_source(source))

        for name, spec in parsed.files.items():
            if name in files:
                logger.debug("File %r from %s overrides earlier definition", name, document.path)
            files[name] = spec.model_copy(update={"base_dir": base_dir})
        for name, spec in parsed.binaries.items():
            if name in binaries:
                logger.debug("Binary %r from %s overrides earlier definition", name, document.path)
            binaries[name] = spec.model_copy(update={"base_dir": base_dir})

        dconf.update(parsed.dconf.settings)

    logger.debug(
        "Merged %d document(s): %d file(s), %d binary(ies), %d dconf key(s)",
        len(documents),
        len(files),
        len(binaries),
        len(dconf),
    )
    return LogicalConfig(
        version=version or DEFAULT_VERSION,
        package_defaults=package_defaults,
        packages=PackageLists(
            apt=packages[PackageSource.APT],
            flatpak=packages[PackageSource.FLATPAK],
            snap=packages[PackageSource.SNAP],
        ),
        files=files,
        binaries=binaries,
        dconf=dconf,
        backup_policy=backup_policy,
    )


def _merge_record(current: BackupPolicy | None, update: BackupPolicy) -> BackupPolicy:
    """Overlay only the fields a document actually declared."""
    if current is None:
        return update
    declared: dict[str, Any] = {name: getattr(update, name) for name in update.model_fields_set}
    return current.model_copy(update=declared)
