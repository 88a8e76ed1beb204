"""Applied-state persistence.

This module provides the AppliedStateStore class for reading and writing
the record of everything confctl manages. The record is a single JSON
document, rewritten atomically at the end of a successful run.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from confctl.core.paths import get_state_path
from confctl.models.state import AppliedState
from confctl.utils.fileio import write_atomic

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Base exception for applied-state errors."""


class StateLoadError(StateError):
    """Raised when an existing state file cannot be read or parsed."""


class StateWriteError(StateError):
    """Raised when the state file cannot be written."""


class AppliedStateStore:
    """Reads and writes the applied-state record.

    Storage location: ~/.config/confctl/state.json

    A missing file means confctl has never run on this machine and is
    read as an empty state.

    Attributes:
        path: Location of the state file.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize AppliedStateStore.

        Args:
            path: Optional override for the state file.
                  Default: ~/.config/confctl/state.json
        """
        self._path = path if path is not None else get_state_path()

    @property
    def path(self) -> Path:
        """Path to the state file."""
        return self._path

    def exists(self) -> bool:
        """Check if a state file has been written."""
        return self._path.is_file()

    def load_strict(self) -> AppliedState:
        """Load the applied state, failing on unreadable records.

        Returns:
            The recorded state, or an empty state if no file exists.

        Raises:
            StateLoadError: If the file exists but cannot be read or parsed.
        """
        if not self._path.exists():
            return AppliedState.empty()

        try:
            return AppliedState.model_validate_json(self._path.read_bytes())
        except OSError as e:
            msg = f"Failed to read state file {self._path}: {e}"
            raise StateLoadError(msg) from e
        except (ValidationError, ValueError) as e:
            msg = f"Corrupt state file {self._path}: {e}"
            raise StateLoadError(msg) from e

    def load(self) -> AppliedState:
        """Load the applied state, degrading to empty on any failure.

        Returns:
            The recorded state, or an empty state if none can be read.
        """
        try:
            return self.load_strict()
        except StateLoadError as e:
            logger.warning("%s; treating as nothing previously managed", e)
            return AppliedState.empty()

    def save(self, state: AppliedState) -> Path:
        """Write the applied state atomically.

        Args:
            state: The complete new state.

        Returns:
            Path where the state was saved.

        Raises:
            StateWriteError: If the file cannot be written.
        """
        payload = state.model_dump_json(indent=2).encode("utf-8")
        try:
            write_atomic(self._path, payload)
        except OSError as e:
            msg = f"Failed to write state file {self._path}: {e}"
            raise StateWriteError(msg) from e

        logger.debug("Saved applied state to %s", self._path)
        return self._path
