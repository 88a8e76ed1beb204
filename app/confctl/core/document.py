"""Configuration document I/O.

This module loads single TOML documents from disk and exports a merged
configuration back to TOML. Documents are kept as parsed trees here;
schema validation happens when they are merged.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from confctl.models.config import LogicalConfig
from confctl.utils.fileio import write_atomic

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """Base exception for configuration document errors."""


class DocumentNotFoundError(DocumentError):
    """Raised when a document file does not exist."""


class DocumentParseError(DocumentError):
    """Raised when a document cannot be read or is not valid TOML."""


class DocumentValidationError(DocumentError):
    """Raised when a document's content does not match the schema."""


@dataclass(frozen=True, slots=True)
class Document:
    """A single parsed configuration document.

    Attributes:
        path: Absolute path the document was read from.
        parent_dir: Directory relative paths inside the document resolve against.
        raw: Raw text content.
        data: Parsed key/value tree.
        includes: Raw include directives, as declared.
        mod_time_ns: Modification time observed before the content was read.
    """

    path: Path
    parent_dir: Path
    raw: str
    data: dict[str, Any] = field(default_factory=dict)
    includes: tuple[Any, ...] = ()
    mod_time_ns: int = 0


def load_document(path: Path) -> Document:
    """Load and parse a TOML configuration document.

    Args:
        path: Path to the document. Made absolute before use.

    Returns:
        Parsed Document.

    Raises:
        DocumentNotFoundError: If the file doesn't exist.
        DocumentParseError: If the file cannot be read or the TOML is invalid.
    """
    absolute = Path(os.path.abspath(path.expanduser()))

    if not absolute.is_file():
        msg = f"Configuration document not found: {absolute}"
        raise DocumentNotFoundError(msg)

    try:
        mod_time_ns = absolute.stat().st_mtime_ns
        raw = absolute.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read {absolute}: {e}"
        raise DocumentParseError(msg) from e

    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML syntax in {absolute}: {e}"
        raise DocumentParseError(msg) from e

    includes = data.get("includes", [])
    if not isinstance(includes, list):
        msg = f"'includes' must be an array in {absolute}"
        raise DocumentParseError(msg)

    logger.debug("Loaded document %s (%d include(s))", absolute, len(includes))
    return Document(
        path=absolute,
        parent_dir=absolute.parent,
        raw=raw,
        data=data,
        includes=tuple(includes),
        mod_time_ns=mod_time_ns,
    )


def export_config(config: LogicalConfig, path: Path) -> Path:
    """Write a merged configuration as a single self-contained TOML document.

    Local sources are written as absolute paths so the exported document
    no longer depends on the include tree it was merged from.

    Args:
        config: The merged configuration.
        path: Destination file.

    Returns:
        Path where the document was written.

    Raises:
        DocumentError: If the file cannot be written.
    """
    data = _config_to_dict(config)
    try:
        write_atomic(path, tomli_w.dumps(data).encode("utf-8"))
    except OSError as e:
        msg = f"Failed to write configuration: {e}"
        raise DocumentError(msg) from e
    return path


def _config_to_dict(config: LogicalConfig) -> dict[str, Any]:
    """Convert a LogicalConfig to a dictionary suitable for TOML serialization."""
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)

    for section, specs in (("files", config.files), ("binaries", config.binaries)):
        for name, spec in specs.items():
            entry = data[section][name]
            entry.pop("base_dir", None)
            if not getattr(spec, "is_remote", False):
                entry["source"] = str(spec.source_path())

    data["dconf"] = {"settings": data.pop("dconf")}
    for source, entries in data["packages"].items():
        data["packages"][source] = [
            entry["name"] if not entry["flags"] else entry for entry in entries
        ]
    return data
