"""
Persisted viewpoint record and a reference query-string codec.

A persisted viewpoint is a bookmark index plus optional additive deltas for
manual adjustments made after the camera settled on that bookmark. The
widget consumes and produces only `PersistedState`; `to_query` and
`from_query` are one possible string grammar for it.

Query parameters (``prefix`` is usually the widget id):

- ``{prefix}nav``: bookmark index (omitted for the overview)
- ``{prefix}xyz``: rotation delta as dotted integers, e.g. ``05.00.-10``
- ``{prefix}zoom``: zoom delta with one decimal
- ``{prefix}pan``: manual pan delta as ``x,y`` (present only when dirty)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qs, urlencode

from .scene import OVERVIEW_INDEX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedState:
    """
    Structured persistence record.

    Attributes:
        bookmark_index: Settled bookmark (-1 for the overview)
        rotation_delta: Degrees added to the bookmark rotation
        zoom_delta: Added to the bookmark zoom
        pan_delta: Scene pixels added to the bookmark pan
        pan_dirty: The pan was moved by hand (not auto-centered)
    """

    bookmark_index: int = OVERVIEW_INDEX
    rotation_delta: Optional[Tuple[float, float, float]] = None
    zoom_delta: Optional[float] = None
    pan_delta: Optional[Tuple[float, float]] = None
    pan_dirty: bool = False

    @property
    def has_manual_delta(self) -> bool:
        return any(d is not None for d in (self.rotation_delta, self.zoom_delta, self.pan_delta))


def _format_angle(angle: float) -> str:
    value = int(round(angle))
    if value < 0:
        return f"-{abs(value):02d}"
    return f"{value:02d}"


def _parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def to_query(state: PersistedState, prefix: str = "") -> str:
    """Encode ``state`` as a URL query string (without the leading ``?``)."""
    params: Dict[str, str] = {}
    if state.bookmark_index != OVERVIEW_INDEX:
        params[f"{prefix}nav"] = str(state.bookmark_index)
    if state.rotation_delta is not None and any(round(a) for a in state.rotation_delta):
        params[f"{prefix}xyz"] = ".".join(_format_angle(a) for a in state.rotation_delta)
    if state.zoom_delta is not None and abs(state.zoom_delta) >= 0.05:
        params[f"{prefix}zoom"] = f"{state.zoom_delta:.1f}"
    if state.pan_dirty and state.pan_delta is not None:
        px, py = (int(round(v)) for v in state.pan_delta)
        params[f"{prefix}pan"] = f"{px},{py}"
    return urlencode(params)


def from_query(query: str, prefix: str = "") -> PersistedState:
    """
    Decode a query string produced by `to_query`.

    Unparseable components decode as zero, matching the lenient behaviour of
    shared links; an unparseable bookmark index falls back to the overview.
    """
    values = {k: v[0] for k, v in parse_qs(query.lstrip("?")).items() if v}

    index = OVERVIEW_INDEX
    raw_index = values.get(f"{prefix}nav")
    if raw_index is not None:
        try:
            index = int(raw_index)
        except ValueError:
            logger.warning("ignoring malformed bookmark index %r", raw_index)

    rotation = None
    raw_rotation = values.get(f"{prefix}xyz")
    if raw_rotation:
        parts = [_parse_float(p) for p in raw_rotation.split(".")]
        parts = (parts + [0.0, 0.0, 0.0])[:3]
        rotation = (parts[0], parts[1], parts[2])

    zoom = None
    raw_zoom = values.get(f"{prefix}zoom")
    if raw_zoom:
        zoom = _parse_float(raw_zoom)

    pan = None
    raw_pan = values.get(f"{prefix}pan")
    if raw_pan:
        parts = [_parse_float(p) for p in raw_pan.split(",")]
        parts = (parts + [0.0, 0.0])[:2]
        pan = (parts[0], parts[1])

    return PersistedState(index, rotation, zoom, pan, pan_dirty=pan is not None)
