"""Package actions and their outcomes.

An Action is one package going through one package manager command;
batched installs produce one Action per package, all sharing the flags
of their batch.
"""

from dataclasses import dataclass, field
from enum import Enum

from confctl.models.package import PackageSource


class ActionType(Enum):
    """What a package manager is asked to do."""

    INSTALL = "install"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class Action:
    """One package operation.

    Attributes:
        action_type: Install or remove.
        package: Package name as the manager knows it.
        source: Package manager handling the package.
        flags: Flags of the install batch, empty for removals.
    """

    action_type: ActionType
    package: str
    source: PackageSource
    flags: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.package:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    @property
    def label(self) -> str:
        """Manager and verb, e.g. ``snap install``."""
        return f"{self.source.value} {self.action_type.value}"


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of one Action.

    Attributes:
        action: The operation.
        success: Whether the package manager reported success.
        message: Informational text, e.g. for dry runs.
        error: Package manager output explaining a failure.
    """

    action: Action
    success: bool
    message: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the action failed."""
        return not self.success

    def describe(self) -> str:
        """One-line summary for failure listings."""
        outcome = self.error if self.failed else self.message
        text = f"{self.action.label} {self.action.package}"
        return f"{text}: {outcome}" if outcome else text
