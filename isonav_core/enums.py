"""
Core enumerations for the isonav scene-navigation system.

This module defines the named vocabularies shared by the geometry utilities,
the connector router, the highlight propagator and the camera state machine.
String-valued enums accept the literal names used in declarative scene
annotations (``"top-left"``, ``"arrowSmall"``, ``"dashed"``...).
"""

from enum import Enum, auto


class AnchorSide(Enum):
    """
    Named attachment points on an anchor rectangle.

    Edge sides resolve to the midpoint of that edge, corner sides to the exact
    corner, and CENTER to the rectangle centroid.
    """

    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @classmethod
    def parse(cls, value) -> "AnchorSide":
        """Parse a side name; unknown or empty names fall back to CENTER."""
        if isinstance(value, AnchorSide):
            return value
        if not value:
            return cls.CENTER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.CENTER


class Axis(Enum):
    """Routing axis for a connector segment."""

    HORIZONTAL = auto()
    """Segment runs along x."""

    VERTICAL = auto()
    """Segment runs along y."""


class PathShape(Enum):
    """
    Routing shapes produced by the connector router.

    - STRAIGHT: single segment, endpoints (almost) share an axis
    - S_SHAPE: three segments, default corners at 25%/75% of the run
    - L_SHAPE: two segments, one corner placed by a single waypoint offset
    - Z_SHAPE: four segments, three corners placed by both waypoint offsets
    """

    STRAIGHT = auto()
    S_SHAPE = auto()
    L_SHAPE = auto()
    Z_SHAPE = auto()


class DecorationKind(Enum):
    """Line endings that can be attached to the start or end of a connector."""

    NONE = "none"
    ARROW = "arrow"
    ARROW_SMALL = "arrowSmall"
    CIRCLE = "circle"
    ARROW_CIRCLE = "arrow-circle"

    @classmethod
    def parse(cls, value) -> "DecorationKind":
        if isinstance(value, DecorationKind):
            return value
        if not value:
            return cls.NONE
        try:
            return cls(str(value).strip())
        except ValueError:
            return cls.NONE

    @property
    def has_arrow(self) -> bool:
        return self in (DecorationKind.ARROW, DecorationKind.ARROW_SMALL, DecorationKind.ARROW_CIRCLE)

    @property
    def has_circle(self) -> bool:
        return self in (DecorationKind.CIRCLE, DecorationKind.ARROW_CIRCLE)


class LineStyle(Enum):
    """Stroke style of a connector line."""

    SOLID = "solid"
    DASHED = "dashed"

    @classmethod
    def parse(cls, value) -> "LineStyle":
        if isinstance(value, LineStyle):
            return value
        return cls.DASHED if str(value or "").strip().lower() == "dashed" else cls.SOLID


class CameraMode(Enum):
    """
    States of the camera/navigation state machine.

    - DEFAULT: overview pose (bookmark index -1) or initial state
    - AT_BOOKMARK: settled on a bookmark after a completed navigation
    - MANUAL: free camera after drag/keyboard/wheel input
    """

    DEFAULT = auto()
    """Overview pose, no bookmark selected."""

    AT_BOOKMARK = auto()
    """Camera settled on a bookmarked viewpoint."""

    MANUAL = auto()
    """Camera moved by direct user input."""


class RenderState(Enum):
    """
    Rendered highlight state of a scene node after propagation.

    - HIGHLIGHTED: the node itself matches the active groups and glows
    - INHERITED: rendered at full strength without glowing (a descendant of a
      highlighted node, an ancestor of one, or any node when nothing is
      highlighted)
    - DIMMED: neither the node nor anything in its subtree is relevant
    """

    HIGHLIGHTED = auto()
    """Node matched one of the requested groups."""

    INHERITED = auto()
    """Full strength, no glow."""

    DIMMED = auto()
    """Colours replaced by their reduced-alpha variants."""


class PoseSentinel(Enum):
    """Symbolic bookmark values used instead of a literal pose component."""

    KEEP = "keep"
    """Keep the current value of this pose component."""

    DEFAULT = "default"
    """Return this pose component to the widget default."""


class MeasureMode(Enum):
    """How the layout collaborator should measure an anchor rectangle."""

    FLAT = auto()
    """Flat/2D reference pose: stable geometry independent of the camera."""

    CURRENT = auto()
    """Rectangle under the current camera transform (fallback mode)."""
