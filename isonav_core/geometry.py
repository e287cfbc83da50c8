"""
Geometry utilities for connector routing and camera projection.

This module provides the small pure functions that the router and the camera
build on:

- Anchor point resolution on a projected rectangle (edge midpoints, corners,
  centroid and the nudged "from center" variant)
- Routing orientation and outward axis/sign inference from anchor side names
- Safe corner radius computation
- Projection of flat scene geometry through a camera pose (numpy), used for
  auto-centering and for "current pose" measurements

Coordinates are 2D screen-style coordinates (y grows downwards). Flat scene
geometry is expressed relative to the scene origin, which the renderer places
at the viewport center.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from .enums import AnchorSide, Axis

if TYPE_CHECKING:  # pragma: no cover
    from .camera import CameraPose


@dataclass(frozen=True)
class Point:
    """A 2D point or vector."""

    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def unit(self) -> "Point":
        """Unit vector in the same direction; the zero vector stays zero."""
        n = self.length()
        if n == 0.0:
            return Point(0.0, 0.0)
        return Point(self.x / n, self.y / n)

    def distance_to(self, other: "Point") -> float:
        return (other - self).length()

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class AnchorRectangle:
    """
    Projected 2D bounding box of a scene element at a captured pose.

    Attributes:
        top_left, top_right, bottom_right, bottom_left: Corner points
    """

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    @classmethod
    def from_bounds(cls, left: float, top: float, right: float, bottom: float) -> "AnchorRectangle":
        return cls(
            Point(left, top),
            Point(right, top),
            Point(right, bottom),
            Point(left, bottom),
        )

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> "AnchorRectangle":
        return cls.from_bounds(x, y, x + width, y + height)

    @property
    def centroid(self) -> Point:
        return Point(
            (self.top_left.x + self.bottom_right.x) / 2,
            (self.top_left.y + self.bottom_right.y) / 2,
        )

    def corners(self) -> Tuple[Point, Point, Point, Point]:
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    def bounds(self) -> Tuple[float, float, float, float]:
        """Axis-aligned ``(left, top, right, bottom)`` bounds of the four corners."""
        xs = [p.x for p in self.corners()]
        ys = [p.y for p in self.corners()]
        return min(xs), min(ys), max(xs), max(ys)

    def contains(self, point: Point, tolerance: float = 1e-9) -> bool:
        left, top, right, bottom = self.bounds()
        return (
            left - tolerance <= point.x <= right + tolerance
            and top - tolerance <= point.y <= bottom + tolerance
        )


def _midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


_NUDGE_DIRECTIONS = {
    AnchorSide.LEFT: Point(-1.0, 0.0),
    AnchorSide.RIGHT: Point(1.0, 0.0),
    AnchorSide.TOP: Point(0.0, -1.0),
    AnchorSide.BOTTOM: Point(0.0, 1.0),
}


def anchor_point(
    rect: AnchorRectangle,
    side: AnchorSide,
    from_center: bool = False,
    nudge: float = 20.0,
) -> Point:
    """
    Resolve the attachment point of a connector on a rectangle.

    Args:
        rect: Projected rectangle of the element
        side: Requested anchor side
        from_center: Start from the centroid instead of the edge. With a
            directional side (left/right/top/bottom) the centroid is nudged
            ``nudge`` units toward that side so the line visibly leaves the
            shape; other sides return the exact centroid.
        nudge: Distance of the center push

    Returns:
        Point on the rectangle boundary, a corner, or the (nudged) centroid
    """
    side = AnchorSide.parse(side)
    center = rect.centroid

    if from_center:
        direction = _NUDGE_DIRECTIONS.get(side)
        if direction is None:
            return center
        return center + direction.scaled(nudge)

    if side == AnchorSide.TOP:
        return _midpoint(rect.top_left, rect.top_right)
    if side == AnchorSide.BOTTOM:
        return _midpoint(rect.bottom_left, rect.bottom_right)
    if side == AnchorSide.LEFT:
        return _midpoint(rect.top_left, rect.bottom_left)
    if side == AnchorSide.RIGHT:
        return _midpoint(rect.top_right, rect.bottom_right)
    if side == AnchorSide.TOP_LEFT:
        return rect.top_left
    if side == AnchorSide.TOP_RIGHT:
        return rect.top_right
    if side == AnchorSide.BOTTOM_LEFT:
        return rect.bottom_left
    if side == AnchorSide.BOTTOM_RIGHT:
        return rect.bottom_right
    return center


def orientation(
    this_side: AnchorSide,
    other_side: AnchorSide,
    this_point: Point,
    other_point: Point,
) -> Axis:
    """
    Decide which axis a connector leaves ``this_side`` along.

    left/right go horizontal first and top/bottom vertical first. A center
    anchor defers to the opposite anchor's side; when both are centers the
    axis with the larger absolute delta wins (ties go horizontal). Corner
    sides route horizontally.
    """
    this_side = AnchorSide.parse(this_side)
    other_side = AnchorSide.parse(other_side)

    if this_side in (AnchorSide.LEFT, AnchorSide.RIGHT):
        return Axis.HORIZONTAL
    if this_side in (AnchorSide.TOP, AnchorSide.BOTTOM):
        return Axis.VERTICAL
    if this_side == AnchorSide.CENTER:
        if other_side in (AnchorSide.LEFT, AnchorSide.RIGHT):
            return Axis.HORIZONTAL
        if other_side in (AnchorSide.TOP, AnchorSide.BOTTOM):
            return Axis.VERTICAL
        dx = abs(other_point.x - this_point.x)
        dy = abs(other_point.y - this_point.y)
        return Axis.HORIZONTAL if dx >= dy else Axis.VERTICAL
    return Axis.HORIZONTAL


_SIDE_VECTORS = {
    AnchorSide.LEFT: (Axis.HORIZONTAL, -1),
    AnchorSide.RIGHT: (Axis.HORIZONTAL, 1),
    AnchorSide.TOP: (Axis.VERTICAL, -1),
    AnchorSide.BOTTOM: (Axis.VERTICAL, 1),
    AnchorSide.TOP_LEFT: (Axis.HORIZONTAL, -1),
    AnchorSide.BOTTOM_LEFT: (Axis.HORIZONTAL, -1),
    AnchorSide.TOP_RIGHT: (Axis.HORIZONTAL, 1),
    AnchorSide.BOTTOM_RIGHT: (Axis.HORIZONTAL, 1),
}


def side_vector(side: AnchorSide) -> Optional[Tuple[Axis, int]]:
    """
    Map an anchor side to its outward ``(axis, sign)``.

    left/top are negative, right/bottom positive; corner sides use their
    horizontal component. CENTER has no intrinsic direction and returns None.
    """
    return _SIDE_VECTORS.get(AnchorSide.parse(side))


def axis_vector(axis: Axis, sign: int) -> Point:
    if axis == Axis.HORIZONTAL:
        return Point(float(sign), 0.0)
    return Point(0.0, float(sign))


def sign_or_one(value: float) -> int:
    """Sign of ``value`` with zero treated as positive."""
    return -1 if value < 0 else 1


def safe_radius(seg1_len: float, seg2_len: float, base: float = 10.0) -> float:
    """Corner radius that never overruns either adjoining straight segment."""
    return min(base, abs(seg1_len) / 2, abs(seg2_len) / 2)


# ----- projection -----
def rotation_matrix(rx_deg: float, ry_deg: float, rz_deg: float) -> np.ndarray:
    """
    3x3 rotation matrix for ``rotateX(rx) rotateY(ry) rotateZ(rz)``.

    The composition follows transform-list semantics: the point is rotated
    around z first, then y, then x.
    """
    ax, ay, az = np.radians([rx_deg, ry_deg, rz_deg])
    cx, sx = np.cos(ax), np.sin(ax)
    cy, sy = np.cos(ay), np.sin(ay)
    cz, sz = np.cos(az), np.sin(az)
    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_z = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])
    return rot_x @ rot_y @ rot_z


def project_points(pose: "CameraPose", points: np.ndarray) -> np.ndarray:
    """
    Project flat scene points (N x 2 or N x 3) to screen offsets from the
    viewport center.

    The renderer applies ``zoom * (R . p + pan)``; pan is therefore expressed
    in unscaled scene pixels.
    """
    pts = np.atleast_2d(np.asarray(points, dtype=float))
    if pts.shape[1] == 2:
        pts = np.hstack([pts, np.zeros((pts.shape[0], 1))])
    rot = rotation_matrix(pose.rotation_x, pose.rotation_y, pose.rotation_z)
    rotated = pts @ rot.T
    pan = np.array([pose.pan_x, pose.pan_y])
    return pose.zoom * (rotated[:, :2] + pan)


def projected_centroid(pose: "CameraPose", rect: AnchorRectangle) -> Point:
    """Screen offset of a flat rectangle's centroid from the viewport center."""
    c = rect.centroid
    x, y = project_points(pose, np.array([[c.x, c.y]]))[0]
    return Point(float(x), float(y))


def auto_center_pan(pose: "CameraPose", rect: AnchorRectangle) -> Tuple[float, float]:
    """
    Pan that places ``rect``'s centroid at the viewport center for ``pose``.

    Only the rotation of ``pose`` matters: the centroid is projected with zero
    pan and the pan that cancels it is returned in scene pixels.
    """
    c = rect.centroid
    rot = rotation_matrix(pose.rotation_x, pose.rotation_y, pose.rotation_z)
    rotated = rot @ np.array([c.x, c.y, 0.0])
    pan_x = -float(rotated[0])
    pan_y = -float(rotated[1])
    # avoid -0.0 in persisted output
    return (pan_x + 0.0, pan_y + 0.0)


def project_rectangle(pose: "CameraPose", rect: AnchorRectangle) -> AnchorRectangle:
    """Axis-aligned bounding rectangle of a flat rectangle under ``pose``."""
    corners = np.array([p.as_tuple() for p in rect.corners()])
    projected = project_points(pose, corners)
    left, top = projected.min(axis=0)
    right, bottom = projected.max(axis=0)
    return AnchorRectangle.from_bounds(float(left), float(top), float(right), float(bottom))
