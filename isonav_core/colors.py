"""
Colour parsing and the reversible alpha transform used for dimming.

Accepted inputs are ``rgb(r, g, b)``, ``rgba(r, g, b, a)``, ``transparent`` and
anything matplotlib understands as a colour (``#rgb``, ``#rrggbb``,
``#rrggbbaa``, CSS names such as ``red`` or ``white``). Dimmed colours are
always written as ``rgba(r, g, b, a)`` strings so the renderer can apply them
directly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from matplotlib.colors import to_rgba

_RGB_RE = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RGBA:
    r: int
    g: int
    b: int
    a: float = 1.0

    def css(self) -> str:
        return f"rgba({self.r}, {self.g}, {self.b}, {_format_alpha(self.a)})"


def _format_alpha(alpha: float) -> str:
    text = f"{alpha:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _channel(value: float) -> int:
    return max(0, min(255, int(round(value))))


def parse_color(value: Optional[str]) -> Optional[RGBA]:
    """Parse a colour string; returns None when the format is not recognised."""
    if not value:
        return None
    text = value.strip()
    if text.lower() == "transparent":
        return RGBA(0, 0, 0, 0.0)

    m = _RGB_RE.match(text)
    if m:
        r, g, b = (_channel(float(m.group(i))) for i in (1, 2, 3))
        a = float(m.group(4)) if m.group(4) is not None else 1.0
        return RGBA(r, g, b, max(0.0, min(1.0, a)))

    try:
        r, g, b, a = to_rgba(text.lower())
    except ValueError:
        return None
    return RGBA(_channel(r * 255), _channel(g * 255), _channel(b * 255), float(a))


def with_alpha(value: str, alpha: float) -> Optional[str]:
    """
    Return ``value`` re-expressed at ``alpha``.

    Args:
        value: Original colour string
        alpha: Target alpha in [0, 1]

    Returns:
        ``rgba(...)`` string, or None when ``value`` cannot be parsed
    """
    rgba = parse_color(value)
    if rgba is None:
        return None
    return RGBA(rgba.r, rgba.g, rgba.b, max(0.0, min(1.0, alpha))).css()
