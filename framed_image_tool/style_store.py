"""
Border-style persistence: remember the chosen border style across launches.

Only the style is stored, never crop state.  The on-disk format uses a
versioned envelope::

    {
        "version": 1,
        "style": {
            "border_color": "#064681",
            "border_width": 1.5,
            "corner_radius": 6
        }
    }

A missing, corrupt or unknown-version file falls back to the defaults.
This module is Qt-free.
"""

import json
import logging
from dataclasses import asdict

from PIL import ImageColor

from framed_image_tool.config import config_dir
from framed_image_tool.models import StyleConfig

logger = logging.getLogger(__name__)

_STYLE_FILENAME = "style.json"
_FORMAT_VERSION = 1


def validate_style(data: dict) -> StyleConfig | None:
    """Build a StyleConfig from a JSON dict, or None if any field is invalid."""
    if not isinstance(data, dict):
        return None
    defaults = StyleConfig()
    color = data.get("border_color", defaults.border_color)
    width = data.get("border_width", defaults.border_width)
    radius = data.get("corner_radius", defaults.corner_radius)

    if not isinstance(color, str):
        return None
    try:
        ImageColor.getrgb(color)
    except ValueError:
        return None
    for value in (width, radius):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return None
    return StyleConfig(border_color=color, border_width=float(width), corner_radius=float(radius))


def load_style() -> StyleConfig:
    """Load the saved style, or the defaults if none is usable."""
    path = config_dir() / _STYLE_FILENAME

    if not path.exists():
        logger.debug("No saved style at %s; using defaults", path)
        return StyleConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read style file (%s); using defaults", exc)
        return StyleConfig()

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION:
        logger.warning("Style file version mismatch or invalid format; using defaults")
        return StyleConfig()

    style = validate_style(raw.get("style"))
    if style is None:
        logger.warning("Style file has invalid values; using defaults")
        return StyleConfig()
    return style


def save_style(style: StyleConfig) -> None:
    """Write *style* to disk.  Failures are logged, not raised."""
    path = config_dir() / _STYLE_FILENAME
    envelope = {"version": _FORMAT_VERSION, "style": asdict(style)}
    try:
        path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        logger.debug("Saved style to %s", path)
    except OSError as exc:
        logger.error("Could not write style file to %s: %s", path, exc)
