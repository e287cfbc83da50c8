"""
Connector router: orthogonal, rounded-corner paths between two anchor rectangles.

Routing pipeline for one connector:

1. Resolve start and end points on the two anchor rectangles
2. Pick a shape: straight when the endpoints (almost) share an axis,
   otherwise S (no offsets), L (one offset) or Z (both offsets)
3. Round every interior corner with a radius that never overruns either
   adjoining segment
4. Attach start/end decorations and the optional traveling marker, gated by
   the connector's membership in the active highlight groups
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .colors import with_alpha
from .config import WidgetConfig
from .enums import AnchorSide, Axis, DecorationKind, LineStyle, PathShape
from .errors import UnresolvedAnchor
from .geometry import (
    AnchorRectangle,
    Point,
    anchor_point,
    axis_vector,
    orientation,
    safe_radius,
    side_vector,
    sign_or_one,
)
from .layout import AnchorSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectorSpec:
    """
    Declarative connector between two scene elements.

    Attributes:
        from_id, to_id: Element ids of the two endpoints
        from_anchor, to_anchor: Attachment sides on each element
        color: Stroke colour (None uses the configured default)
        waypoint_offsets: ``(start, end)`` magnitudes; either may be None
        line_style: Solid or dashed stroke
        start_decoration, end_decoration: Line endings
        animated: Attach a traveling marker while active
        groups: Highlight groups the connector belongs to
        from_center, to_center: Start from the (nudged) centroid instead of the edge
    """

    from_id: str
    to_id: str
    from_anchor: AnchorSide = AnchorSide.CENTER
    to_anchor: AnchorSide = AnchorSide.CENTER
    color: Optional[str] = None
    waypoint_offsets: Tuple[Optional[float], Optional[float]] = (None, None)
    line_style: LineStyle = LineStyle.SOLID
    start_decoration: DecorationKind = DecorationKind.NONE
    end_decoration: DecorationKind = DecorationKind.NONE
    animated: bool = False
    groups: Tuple[str, ...] = ()
    from_center: bool = False
    to_center: bool = False

    @property
    def label(self) -> str:
        return f"{self.from_id}->{self.to_id}"


# ----- path primitives -----
@dataclass(frozen=True)
class MoveTo:
    point: Point


@dataclass(frozen=True)
class LineTo:
    point: Point


@dataclass(frozen=True)
class QuadTo:
    control: Point
    end: Point


PathCommand = Union[MoveTo, LineTo, QuadTo]


@dataclass(frozen=True)
class Corner:
    point: Point
    radius: float


@dataclass(frozen=True)
class Decoration:
    """
    A line ending placed at one end of a connector.

    ``heading_deg`` is the direction the arrow points (screen angle, y down).
    Circle parts sit exactly on ``point``, the literal anchor point.
    """

    kind: DecorationKind
    at_start: bool
    point: Point
    heading_deg: float
    color: str
    circle_radius: float = 6.0
    circle_opacity: float = 0.8


@dataclass(frozen=True)
class MarkerAnimation:
    """Marker that travels the finished path end to end, looping indefinitely."""

    period_s: float
    radius: float
    color: str
    opacity: float = 0.9


@dataclass
class ConnectorRender:
    """Render primitive for one connector, consumed by the renderer."""

    spec: ConnectorSpec
    shape: PathShape
    points: List[Point]
    corners: List[Corner]
    commands: List[PathCommand]
    stroke: str
    stroke_width: float
    dash: Optional[str]
    decorations: List[Decoration] = field(default_factory=list)
    marker: Optional[MarkerAnimation] = None
    active: bool = True

    @property
    def segment_count(self) -> int:
        return len(self.points) - 1

    def segment_lengths(self) -> List[float]:
        return [a.distance_to(b) for a, b in zip(self.points, self.points[1:])]

    def svg_path(self) -> str:
        parts = []
        for cmd in self.commands:
            if isinstance(cmd, MoveTo):
                parts.append(f"M {_fmt_point(cmd.point)}")
            elif isinstance(cmd, LineTo):
                parts.append(f"L {_fmt_point(cmd.point)}")
            else:
                parts.append(f"Q {_fmt_point(cmd.control)} {_fmt_point(cmd.end)}")
        return " ".join(parts)


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _fmt_point(p: Point) -> str:
    return f"{_fmt(p.x)},{_fmt(p.y)}"


# ----- routing -----
def _outward(side: AnchorSide, axis: Axis, point: Point, other: Point) -> Tuple[Axis, int]:
    """Outward (axis, sign) of an endpoint; center anchors point at the other end."""
    vec = side_vector(side)
    if vec is not None:
        return vec
    delta = other.x - point.x if axis == Axis.HORIZONTAL else other.y - point.y
    return axis, sign_or_one(delta)


def _z_bridge(c1: Point, c3: Point, start_axis: Axis, end_axis: Axis) -> Point:
    if start_axis == Axis.HORIZONTAL and end_axis == Axis.VERTICAL:
        return Point(c1.x, c3.y)
    if start_axis == Axis.VERTICAL and end_axis == Axis.HORIZONTAL:
        return Point(c3.x, c1.y)
    return Point((c1.x + c3.x) / 2, (c1.y + c3.y) / 2)


def route_points(
    spec: ConnectorSpec,
    from_rect: AnchorRectangle,
    to_rect: AnchorRectangle,
    config: Optional[WidgetConfig] = None,
) -> Tuple[PathShape, List[Point]]:
    """
    Compute the routing polyline (before corner rounding).

    Returns:
        Tuple of (shape, points) where ``points`` runs from start to end
    """
    config = config or WidgetConfig()
    from_side = AnchorSide.parse(spec.from_anchor)
    to_side = AnchorSide.parse(spec.to_anchor)
    start = anchor_point(from_rect, from_side, spec.from_center, config.center_nudge)
    end = anchor_point(to_rect, to_side, spec.to_center, config.center_nudge)

    dx = end.x - start.x
    dy = end.y - start.y
    if abs(dx) < config.straight_threshold or abs(dy) < config.straight_threshold:
        return PathShape.STRAIGHT, [start, end]

    start_axis = orientation(from_side, to_side, start, end)
    end_axis = orientation(to_side, from_side, end, start)
    start_offset, end_offset = _offsets(spec)

    if start_offset is None and end_offset is None:
        return PathShape.S_SHAPE, _default_corners(start, end, start_axis, config.bend_ratios)

    if start_offset is not None and end_offset is not None:
        axis1, sign1 = _outward(from_side, start_axis, start, end)
        axis3, sign3 = _outward(to_side, end_axis, end, start)
        c1 = start + axis_vector(axis1, sign1).scaled(start_offset)
        c3 = end + axis_vector(axis3, sign3).scaled(end_offset)
        c2 = _z_bridge(c1, c3, axis1, axis3)
        return PathShape.Z_SHAPE, [start, c1, c2, c3, end]

    if start_offset is not None:
        axis, sign = _outward(from_side, start_axis, start, end)
        corner = start + axis_vector(axis, sign).scaled(start_offset)
    else:
        axis, sign = _outward(to_side, end_axis, end, start)
        corner = end + axis_vector(axis, sign).scaled(end_offset)
    return PathShape.L_SHAPE, [start, corner, end]


def _offsets(spec: ConnectorSpec) -> Tuple[Optional[float], Optional[float]]:
    offsets = tuple(spec.waypoint_offsets or ())
    start = offsets[0] if len(offsets) > 0 else None
    end = offsets[1] if len(offsets) > 1 else None
    return (
        abs(float(start)) if start is not None else None,
        abs(float(end)) if end is not None else None,
    )


def _default_corners(start: Point, end: Point, axis: Axis, ratios: Tuple[float, float]) -> List[Point]:
    """
    Two bends at ``ratios`` of the run along the start axis (S shape).

    The first bend stays on the start row (or column), the second sits on the
    end row (or column); the middle segment joins them diagonally.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    first, second = ratios
    if axis == Axis.HORIZONTAL:
        return [start, Point(start.x + dx * first, start.y), Point(start.x + dx * second, end.y), end]
    return [start, Point(start.x, start.y + dy * first), Point(end.x, start.y + dy * second), end]


def round_corners(points: Sequence[Point], base_radius: float = 10.0) -> Tuple[List[PathCommand], List[Corner]]:
    """
    Turn a polyline into path commands with a rounded transition at every
    interior point.

    Each corner radius is the safe radius of the two adjoining (Euclidean)
    segment lengths. The straight run into the corner is shortened by the
    radius and a quadratic curve with the corner as control point joins it to
    the run out of the corner.
    """
    commands: List[PathCommand] = [MoveTo(points[0])]
    corners: List[Corner] = []
    for prev, corner, nxt in zip(points, points[1:], points[2:]):
        incoming = corner - prev
        outgoing = nxt - corner
        radius = safe_radius(incoming.length(), outgoing.length(), base_radius)
        pre = corner - incoming.unit().scaled(radius)
        post = corner + outgoing.unit().scaled(radius)
        commands.append(LineTo(pre))
        commands.append(QuadTo(corner, post))
        corners.append(Corner(corner, radius))
    commands.append(LineTo(points[-1]))
    return commands, corners


def _heading(from_point: Point, to_point: Point) -> float:
    return math.degrees(math.atan2(to_point.y - from_point.y, to_point.x - from_point.x))


def is_connector_active(groups: Iterable[str], active_groups: Optional[Iterable[str]]) -> bool:
    """
    A connector is active when no highlight is set, when it declares no
    groups, or when one of its groups is highlighted.
    """
    groups = set(groups)
    if active_groups is None or not groups:
        return True
    return bool(groups & set(active_groups))


def route_connector(
    spec: ConnectorSpec,
    from_rect: AnchorRectangle,
    to_rect: AnchorRectangle,
    config: Optional[WidgetConfig] = None,
    active: bool = True,
) -> ConnectorRender:
    """
    Route one connector between two already-measured rectangles.

    Args:
        spec: Connector declaration
        from_rect: Anchor rectangle of ``spec.from_id``
        to_rect: Anchor rectangle of ``spec.to_id``
        config: Routing configuration (defaults when omitted)
        active: Whether the connector belongs to the active highlight set

    Returns:
        Render primitive with path, stroke, decorations and optional marker
    """
    config = config or WidgetConfig()
    shape, points = route_points(spec, from_rect, to_rect, config)
    if shape == PathShape.STRAIGHT:
        commands: List[PathCommand] = [MoveTo(points[0]), LineTo(points[-1])]
        corners: List[Corner] = []
    else:
        commands, corners = round_corners(points, config.corner_radius)

    color = spec.color or config.default_connector_color
    if active:
        stroke = color
        arrow_color = color
    else:
        stroke = with_alpha(color, config.dim_vector_alpha) or color
        arrow_color = config.dimmed_arrow_color

    decorations = []
    for kind, at_start in ((spec.start_decoration, True), (spec.end_decoration, False)):
        kind = DecorationKind.parse(kind)
        if kind == DecorationKind.NONE:
            continue
        if at_start:
            point, heading = points[0], _heading(points[1], points[0])
        else:
            point, heading = points[-1], _heading(points[-2], points[-1])
        decorations.append(
            Decoration(
                kind=kind,
                at_start=at_start,
                point=point,
                heading_deg=heading,
                color=arrow_color if kind.has_arrow else stroke,
                circle_radius=config.circle_radius,
            )
        )

    marker = None
    if spec.animated and active:
        marker = MarkerAnimation(config.marker_period_s, config.marker_radius, color)

    dashed = LineStyle.parse(spec.line_style) == LineStyle.DASHED
    return ConnectorRender(
        spec=spec,
        shape=shape,
        points=points,
        corners=corners,
        commands=commands,
        stroke=stroke,
        stroke_width=config.stroke_width,
        dash=config.dash_pattern if dashed else None,
        decorations=decorations,
        marker=marker,
        active=active,
    )


class ConnectorRouter:
    """
    Routes every connector of a scene against an anchor snapshot.

    Routing never raises for missing geometry: a connector whose endpoint
    cannot be measured is skipped with a warning and the rest are drawn.
    """

    def __init__(self, config: Optional[WidgetConfig] = None):
        self.config = config or WidgetConfig()

    def route(
        self,
        spec: ConnectorSpec,
        snapshot: AnchorSnapshot,
        active_groups: Optional[Iterable[str]] = None,
    ) -> ConnectorRender:
        from_rect, to_rect = snapshot.pair(spec.from_id, spec.to_id)
        active = is_connector_active(spec.groups, active_groups)
        return route_connector(spec, from_rect, to_rect, self.config, active)

    def route_all(
        self,
        connectors: Iterable[ConnectorSpec],
        snapshot: AnchorSnapshot,
        active_groups: Optional[Iterable[str]] = None,
    ) -> List[ConnectorRender]:
        snapshot.ensure_fresh()
        active = tuple(active_groups) if active_groups is not None else None
        renders = []
        for spec in connectors:
            try:
                renders.append(self.route(spec, snapshot, active))
            except UnresolvedAnchor as exc:
                logger.warning("skipping connector %s: %s", spec.label, exc)
        logger.debug("routed %d connectors", len(renders))
        return renders
