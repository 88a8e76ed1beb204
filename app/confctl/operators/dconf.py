"""dconf settings writer.

Applies desktop settings with the ``dconf`` CLI. Values are GVariant
text, written exactly as declared (e.g. ``'prefer-dark'`` or ``true``).
"""

import logging
import subprocess
from dataclasses import dataclass

from confctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DconfResult:
    """Outcome of applying one dconf key.

    Attributes:
        key: Absolute dconf key path.
        success: Whether the key now holds the desired value.
        changed: Whether a write was performed (or would be, in dry-run).
        error: Error message when the write failed.
    """

    key: str
    success: bool
    changed: bool = False
    error: str | None = None


class DconfWriter:
    """Reads and writes dconf keys, skipping keys already at their value."""

    _TIMEOUT: float = 30.0

    def __init__(self, dry_run: bool = False) -> None:
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if writer is in dry-run mode."""
        return self._dry_run

    def is_available(self) -> bool:
        """Check if the dconf CLI is available."""
        return command_exists("dconf")

    def read(self, key: str) -> str | None:
        """Read the current value of a key, None if unset or unreadable."""
        try:
            result = run_command(["dconf", "read", key], timeout=self._TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("dconf read timed out for %s", key)
            return None
        except OSError:
            return None
        value = result.stdout.strip()
        return value if result.success and value else None

    def apply(self, settings: dict[str, str]) -> list[DconfResult]:
        """Write every setting whose current value differs.

        Args:
            settings: Key path to GVariant text.

        Returns:
            One DconfResult per key, in input order.

        Raises:
            RuntimeError: If settings are given but dconf is not available.
        """
        if not settings:
            return []
        if not self.is_available():
            msg = "dconf is not available on this system"
            raise RuntimeError(msg)

        results: list[DconfResult] = []
        for key, value in settings.items():
            if not key.startswith("/"):
                results.append(
                    DconfResult(key=key, success=False, error="dconf keys must start with '/'")
                )
                continue
            if self.read(key) == value.strip():
                logger.debug("dconf %s already set", key)
                results.append(DconfResult(key=key, success=True))
                continue
            if self._dry_run:
                logger.info("Dry-run: would write dconf %s = %s", key, value)
                results.append(DconfResult(key=key, success=True, changed=True))
                continue

            logger.info("Writing dconf %s = %s", key, value)
            try:
                result = run_command(["dconf", "write", key, value], timeout=self._TIMEOUT)
            except (subprocess.TimeoutExpired, OSError) as e:
                logger.warning("dconf write %s failed: %s", key, e)
                results.append(DconfResult(key=key, success=False, error=str(e)))
                continue
            if result.success:
                results.append(DconfResult(key=key, success=True, changed=True))
            else:
                results.append(DconfResult(key=key, success=False, error=result.error_text))
        return results
