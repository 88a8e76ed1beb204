"""Include resolution for configuration documents.

Expands the ``includes`` directives of a root document into the ordered,
de-duplicated list of documents that participate in a merge. The walk is
depth-first and pre-order: a document's own includes are expanded before
the next sibling directive of its parent. Reaching a document a second
time (diamond or cycle) is skipped, never an error.
"""

import glob as globlib
import logging
import os
import platform
import re
import socket
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from confctl.core.document import Document, DocumentError, load_document
from confctl.core.paths import DEFAULT_DOCUMENT_NAME, DOCUMENT_EXTENSION
from confctl.models.config import IncludeCondition, IncludeDirective

logger = logging.getLogger(__name__)

RECOGNISED_EXTENSIONS = frozenset({DOCUMENT_EXTENSION})


class IncludeErrorKind(Enum):
    """Why an include directive could not be resolved."""

    NOT_FOUND = "not_found"
    INVALID_DIRECTIVE = "invalid_directive"
    UNRESOLVED_GLOB = "unresolved_glob"


class IncludeError(DocumentError):
    """Raised when a non-optional include cannot be resolved.

    Attributes:
        kind: Category of the failure.
        source: Document that declared the failing directive.
    """

    def __init__(self, kind: IncludeErrorKind, message: str, source: Path | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.source = source


@dataclass(frozen=True, slots=True)
class SystemFacts:
    """Facts include conditions are evaluated against.

    Attributes:
        os_name: Lower-case operating system name (e.g. "linux").
        hostname: Machine host name.
        environ: Environment variables.
    """

    os_name: str
    hostname: str
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "SystemFacts":
        """Collect facts from the running system."""
        return cls(
            os_name=platform.system().lower(),
            hostname=socket.gethostname(),
            environ=dict(os.environ),
        )


@dataclass(frozen=True, slots=True)
class ResolvedConfigSet:
    """The documents taking part in one merge, in override order.

    Attributes:
        paths: Absolute document paths, root first.
        documents: Loaded documents, in the same order as ``paths``.
        visited: Every path reached during the walk.
    """

    paths: tuple[Path, ...]
    documents: tuple[Document, ...]
    visited: frozenset[Path]

    @property
    def root(self) -> Document:
        """The root document."""
        return self.documents[0]

    @property
    def mod_times(self) -> dict[str, int]:
        """Modification time of each document, as observed when it was read."""
        return {str(doc.path): doc.mod_time_ns for doc in self.documents}


def _compare(actual: str, expected: str, operator: str) -> bool:
    if operator == "equals":
        return actual == expected
    if operator == "not_equals":
        return actual != expected
    if operator == "contains":
        return expected in actual
    if operator == "not_contains":
        return expected not in actual
    if operator == "matches":
        try:
            return re.search(expected, actual) is not None
        except re.error:
            logger.warning("Invalid regular expression in include condition: %s", expected)
            return False
    return actual == expected


def evaluate_condition(condition: IncludeCondition, facts: SystemFacts, base_dir: Path) -> bool:
    """Evaluate one include condition.

    Args:
        condition: The predicate to evaluate.
        facts: System facts to compare against.
        base_dir: Directory relative ``file_exists``/``dir_exists`` values resolve against.

    Returns:
        True if the condition holds.
    """
    if condition.type == "os":
        return _compare(facts.os_name, condition.value, condition.operator)
    if condition.type == "hostname":
        return _compare(facts.hostname, condition.value, condition.operator)
    if condition.type == "env":
        name, sep, expected = condition.value.partition("=")
        if not sep:
            return name in facts.environ
        return _compare(facts.environ.get(name, ""), expected, condition.operator)

    target = Path(os.path.expanduser(condition.value))
    if not target.is_absolute():
        target = base_dir / target
    if condition.type == "file_exists":
        return target.exists()
    return target.is_dir()


def _absolute(raw: str, base_dir: Path) -> Path:
    expanded = Path(os.path.expanduser(raw))
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    return Path(os.path.abspath(expanded))


class IncludeResolver:
    """Resolves a root document and its includes into a ResolvedConfigSet.

    The traversal keeps an explicit stack of per-document directive
    iterators, so deep include chains never touch the interpreter's
    recursion limit.

    Example:
        >>> resolver = IncludeResolver(facts=SystemFacts("linux", "box", {}))
        >>> resolved = resolver.resolve(Path("~/.config/confctl/confctl.toml"))
        >>> [p.name for p in resolved.paths]
        ['confctl.toml', 'base.toml', 'desktop.toml']
    """

    def __init__(
        self,
        facts: SystemFacts | None = None,
        loader: Callable[[Path], Document] = load_document,
    ) -> None:
        """Initialize the resolver.

        Args:
            facts: System facts for conditions. Defaults to the running system.
            loader: Function loading one document, replaceable in tests.
        """
        self._facts = facts if facts is not None else SystemFacts.current()
        self._loader = loader

    def resolve(self, root: Path) -> ResolvedConfigSet:
        """Resolve the include graph below a root document.

        Args:
            root: Path to the root document.

        Returns:
            ResolvedConfigSet with the root first, then includes in pre-order.

        Raises:
            IncludeError: If a non-optional include is missing, a glob matches
                nothing usable, or a directive is malformed.
            DocumentError: If a document cannot be read or parsed.
        """
        root_document = self._loader(root)
        documents: list[Document] = [root_document]
        visited: set[Path] = {root_document.path}
        stack: list[Iterator[Path]] = [self._targets(root_document)]

        while stack:
            try:
                target = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue

            if target in visited:
                logger.debug("Skipping already included document %s", target)
                continue

            document = self._loader(target)
            visited.add(document.path)
            documents.append(document)
            stack.append(self._targets(document))

        logger.debug("Resolved %d document(s) from %s", len(documents), root_document.path)
        return ResolvedConfigSet(
            paths=tuple(doc.path for doc in documents),
            documents=tuple(documents),
            visited=frozenset(visited),
        )

    def _targets(self, document: Document) -> Iterator[Path]:
        """Yield the document paths a document's directives point at, in order."""
        for index, raw in enumerate(document.includes):
            directive = self._parse_directive(raw, document, index)

            if not self._conditions_met(directive, document):
                logger.debug(
                    "Conditions not met, skipping include %r in %s",
                    directive.target,
                    document.path,
                )
                continue

            if directive.is_glob:
                yield from self._expand_glob(directive, document)
            else:
                path = self._resolve_path(directive, document)
                if path is not None:
                    yield path

    def _parse_directive(self, raw: Any, document: Document, index: int) -> IncludeDirective:
        try:
            return IncludeDirective.model_validate(raw)
        except ValidationError as e:
            msg = f"Invalid include #{index + 1} in {document.path}: {e}"
            raise IncludeError(IncludeErrorKind.INVALID_DIRECTIVE, msg, document.path) from e

    def _conditions_met(self, directive: IncludeDirective, document: Document) -> bool:
        return all(
            evaluate_condition(condition, self._facts, document.parent_dir)
            for condition in directive.conditions
        )

    def _resolve_path(self, directive: IncludeDirective, document: Document) -> Path | None:
        """Resolve a path directive to an existing document, or None to skip it."""
        path = _absolute(directive.target, document.parent_dir)

        if path.is_dir():
            path = path / DEFAULT_DOCUMENT_NAME
        elif not path.exists() and path.suffix not in RECOGNISED_EXTENSIONS:
            path = path.with_name(path.name + DOCUMENT_EXTENSION)

        if path.is_file():
            return path

        if directive.optional:
            logger.debug("Optional include not found, skipping: %s", path)
            return None

        msg = f"Included document not found: {directive.target} (from {document.path})"
        raise IncludeError(IncludeErrorKind.NOT_FOUND, msg, document.path)

    def _expand_glob(self, directive: IncludeDirective, document: Document) -> list[Path]:
        """Expand a glob directive to its usable matches in sorted order."""
        pattern = _absolute(directive.target, document.parent_dir)
        matches = sorted(globlib.glob(str(pattern), recursive=True))

        usable: list[Path] = []
        for match in matches:
            candidate = Path(match)
            if candidate.is_dir():
                default = candidate / DEFAULT_DOCUMENT_NAME
                if default.is_file():
                    usable.append(default)
            elif candidate.is_file() and candidate.suffix in RECOGNISED_EXTENSIONS:
                usable.append(candidate)

        if usable:
            return usable

        if directive.optional:
            logger.debug("Optional glob matched nothing, skipping: %s", pattern)
            return []

        msg = f"Include pattern matched no documents: {directive.target} (from {document.path})"
        raise IncludeError(IncludeErrorKind.UNRESOLVED_GLOB, msg, document.path)
