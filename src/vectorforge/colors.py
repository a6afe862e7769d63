"""Color parsing and distance helpers shared by stages and SVG refinement."""

from __future__ import annotations

import math
import re

_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$",
    re.IGNORECASE,
)
_HEX6_RE = re.compile(
    r"^#([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})(?:[0-9a-f]{2})?$", re.IGNORECASE
)
_HEX3_RE = re.compile(r"^#([0-9a-f])([0-9a-f])([0-9a-f])$", re.IGNORECASE)

NAMED_COLORS: dict[str, tuple[int, int, int]] = {
    "white": (255, 255, 255),
    "black": (0, 0, 0),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "whitesmoke": (245, 245, 245),
    "snow": (255, 250, 250),
    "ivory": (255, 255, 240),
}


def parse_color(value: str | None) -> tuple[int, int, int] | None:
    """Parse a CSS color into an ``(R, G, B)`` tuple.

    Supports ``rgb()``/``rgba()``, ``#rgb``, ``#rrggbb`` (with optional
    alpha byte) and a handful of named colors.

    Returns:
        The parsed tuple, or None when the value is missing or unsupported
        (``none``, gradients via ``url(...)``, unknown names).
    """
    if not value:
        return None
    text = value.strip()

    match = _RGB_RE.match(text)
    if match:
        channels = tuple(int(c) for c in match.groups())
        if any(c > 255 for c in channels):
            return None
        return channels  # type: ignore[return-value]

    match = _HEX6_RE.match(text)
    if match:
        return tuple(int(c, 16) for c in match.groups())  # type: ignore[return-value]

    match = _HEX3_RE.match(text)
    if match:
        r, g, b = (int(c * 2, 16) for c in match.groups())
        return (r, g, b)

    return NAMED_COLORS.get(text.lower())


def color_distance(a: tuple[int, int, int], b: tuple[int, int, int]) -> float:
    """Euclidean distance between two RGB colors."""
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def is_near_white(color: tuple[int, int, int], floor: int = 245) -> bool:
    """Return True when every channel is strictly above *floor*."""
    return all(channel > floor for channel in color)


def rgb_key(r: int, g: int, b: int) -> str:
    """Format the layer key for a color, e.g. ``rgb(255,0,0)``."""
    return f"rgb({r},{g},{b})"


def to_hex(color: tuple[int, int, int]) -> str:
    """Format a color as lowercase ``#rrggbb``."""
    return "#{:02x}{:02x}{:02x}".format(*color)
