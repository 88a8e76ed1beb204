"""Theme management for the confctl CLI.

Colors default to the built-in palette; a user ``theme.toml`` in the
config directory may override any of them under a ``[colors]`` table.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from rich.theme import Theme

from confctl.core.paths import get_config_dir

logger = logging.getLogger(__name__)


def _hex_color(value: object) -> str:
    if not isinstance(value, str):
        msg = "color must be a string"
        raise ValueError(msg)
    color = value.strip()
    digits = color.removeprefix("#")
    if digits == color or len(digits) not in (3, 6):
        msg = f"color must be #RGB or #RRGGBB, got {color!r}"
        raise ValueError(msg)
    try:
        int(digits, 16)
    except ValueError:
        msg = f"invalid hex color {color!r}"
        raise ValueError(msg) from None
    return color


HexColor = Annotated[str, BeforeValidator(_hex_color)]


class ThemeColors(BaseModel):
    """Colors used by the CLI, as #RGB or #RRGGBB hex codes."""

    model_config = ConfigDict(extra="forbid", validate_default=True)

    text: HexColor = "#ffffff"
    muted: HexColor = "#b2bec3"
    header: HexColor = "#69B9A1"
    border: HexColor = "#29526d"

    success: HexColor = "#03b971"
    warning: HexColor = "#f5b332"
    error: HexColor = "#f53263"
    info: HexColor = "#0ec1c8"

    # Plan and report markers
    added: HexColor = "#c1ff62"
    removed: HexColor = "#f53263"
    unchanged: HexColor = "#226666"


# Styles that are not a plain color
_DERIVED_STYLES = {
    "error": "bold {error}",
    "bold_header": "bold {header}",
}


def get_user_theme_path() -> Path:
    """Path to ~/.config/confctl/theme.toml."""
    return get_config_dir() / "theme.toml"


def load_theme(path: Path | None = None) -> ThemeColors:
    """Load theme colors, falling back to the defaults.

    Args:
        path: Theme file to read. Defaults to the user theme path.

    Returns:
        ThemeColors with user overrides applied. A missing, unreadable or
        invalid theme file yields the defaults.
    """
    theme_path = path or get_user_theme_path()
    try:
        data = tomllib.loads(theme_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return ThemeColors()
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", theme_path, e)
        return ThemeColors()

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: [colors] must be a table", theme_path)
        return ThemeColors()

    try:
        return ThemeColors.model_validate(colors)
    except ValidationError as e:
        logger.warning("Ignoring theme file %s: %s", theme_path, e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme for a color set.

    Args:
        colors: Colors to use. Loads the user theme when None.

    Returns:
        Rich Theme defining one style per color plus the derived styles.
    """
    if colors is None:
        colors = load_theme()
    palette = colors.model_dump()
    styles = {name: _DERIVED_STYLES.get(name, f"{{{name}}}") for name in palette}
    styles["bold_header"] = _DERIVED_STYLES["bold_header"]
    return Theme({name: template.format(**palette) for name, template in styles.items()})


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading and caching it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
