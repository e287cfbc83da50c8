"""
Unit tests for geometry utilities.

These tests cover anchor point resolution, routing orientation, outward
axis/sign inference, the safe corner radius and the numpy projection helpers
used for auto-centering and current-pose measurement.
"""

import math

import numpy as np
import pytest

from isonav_core.camera import CameraPose
from isonav_core.enums import AnchorSide, Axis
from isonav_core.geometry import (
    AnchorRectangle,
    Point,
    anchor_point,
    auto_center_pan,
    orientation,
    project_rectangle,
    projected_centroid,
    rotation_matrix,
    safe_radius,
    side_vector,
    sign_or_one,
)


@pytest.fixture
def square():
    return AnchorRectangle.from_bounds(0, 0, 50, 50)


class TestPoint:
    """Test the small vector helpers."""

    def test_arithmetic(self):
        a = Point(1, 2)
        b = Point(4, 6)
        assert b - a == Point(3, 4)
        assert a + b == Point(5, 8)
        assert a.scaled(2) == Point(2, 4)
        assert (b - a).length() == 5.0

    def test_unit_of_zero_vector_stays_zero(self):
        assert Point(0, 0).unit() == Point(0.0, 0.0)
        assert Point(0, -3).unit() == Point(0.0, -1.0)


class TestAnchorRectangle:
    """Test rectangle construction and derived properties."""

    def test_from_xywh_matches_bounds(self):
        assert AnchorRectangle.from_xywh(10, 20, 30, 40) == AnchorRectangle.from_bounds(10, 20, 40, 60)

    def test_centroid_and_bounds(self, square):
        assert square.centroid == Point(25, 25)
        assert square.bounds() == (0, 0, 50, 50)

    def test_contains(self, square):
        assert square.contains(Point(0, 50))
        assert not square.contains(Point(51, 10))


class TestAnchorPoint:
    """Test attachment point resolution on a rectangle."""

    def test_edge_midpoints(self, square):
        assert anchor_point(square, AnchorSide.TOP) == Point(25, 0)
        assert anchor_point(square, AnchorSide.BOTTOM) == Point(25, 50)
        assert anchor_point(square, AnchorSide.LEFT) == Point(0, 25)
        assert anchor_point(square, AnchorSide.RIGHT) == Point(50, 25)

    def test_corners_are_exact(self, square):
        assert anchor_point(square, AnchorSide.TOP_LEFT) == Point(0, 0)
        assert anchor_point(square, AnchorSide.TOP_RIGHT) == Point(50, 0)
        assert anchor_point(square, AnchorSide.BOTTOM_RIGHT) == Point(50, 50)
        assert anchor_point(square, AnchorSide.BOTTOM_LEFT) == Point(0, 50)

    def test_unknown_side_falls_back_to_centroid(self, square):
        assert anchor_point(square, "diagonal") == Point(25, 25)
        assert anchor_point(square, None) == Point(25, 25)

    def test_from_center_nudges_toward_side(self, square):
        assert anchor_point(square, AnchorSide.RIGHT, from_center=True) == Point(45, 25)
        assert anchor_point(square, AnchorSide.TOP, from_center=True) == Point(25, 5)
        assert anchor_point(square, AnchorSide.LEFT, from_center=True, nudge=5) == Point(20, 25)

    def test_from_center_with_corner_side_is_exact_centroid(self, square):
        assert anchor_point(square, AnchorSide.TOP_LEFT, from_center=True) == Point(25, 25)

    def test_string_sides_are_parsed(self, square):
        assert anchor_point(square, "bottom-right") == Point(50, 50)
        assert anchor_point(square, " Left ") == Point(0, 25)


class TestOrientation:
    """Test which axis a connector leaves an anchor along."""

    def test_sides_fix_the_axis(self):
        p, q = Point(0, 0), Point(10, 100)
        assert orientation(AnchorSide.LEFT, AnchorSide.TOP, p, q) == Axis.HORIZONTAL
        assert orientation(AnchorSide.RIGHT, AnchorSide.CENTER, p, q) == Axis.HORIZONTAL
        assert orientation(AnchorSide.TOP, AnchorSide.LEFT, p, q) == Axis.VERTICAL
        assert orientation(AnchorSide.BOTTOM, AnchorSide.CENTER, p, q) == Axis.VERTICAL

    def test_center_defers_to_opposite_side(self):
        p, q = Point(0, 0), Point(10, 100)
        assert orientation(AnchorSide.CENTER, AnchorSide.RIGHT, p, q) == Axis.HORIZONTAL
        assert orientation(AnchorSide.CENTER, AnchorSide.TOP, p, Point(100, 10)) == Axis.VERTICAL

    def test_both_centers_use_larger_delta(self):
        p = Point(0, 0)
        assert orientation(AnchorSide.CENTER, AnchorSide.CENTER, p, Point(10, 20)) == Axis.VERTICAL
        assert orientation(AnchorSide.CENTER, AnchorSide.CENTER, p, Point(-30, 20)) == Axis.HORIZONTAL

    def test_tie_goes_horizontal(self):
        assert orientation(AnchorSide.CENTER, AnchorSide.CENTER, Point(0, 0), Point(5, -5)) == Axis.HORIZONTAL

    def test_corner_sides_route_horizontally(self):
        assert orientation(AnchorSide.TOP_RIGHT, AnchorSide.BOTTOM, Point(0, 0), Point(1, 100)) == Axis.HORIZONTAL


class TestSideVector:
    """Test outward axis and sign inference."""

    def test_edges(self):
        assert side_vector(AnchorSide.LEFT) == (Axis.HORIZONTAL, -1)
        assert side_vector(AnchorSide.RIGHT) == (Axis.HORIZONTAL, 1)
        assert side_vector(AnchorSide.TOP) == (Axis.VERTICAL, -1)
        assert side_vector(AnchorSide.BOTTOM) == (Axis.VERTICAL, 1)

    def test_corners_use_horizontal_component(self):
        assert side_vector("top-left") == (Axis.HORIZONTAL, -1)
        assert side_vector("bottom-right") == (Axis.HORIZONTAL, 1)

    def test_center_has_no_direction(self):
        assert side_vector(AnchorSide.CENTER) is None

    def test_sign_or_one(self):
        assert sign_or_one(-0.5) == -1
        assert sign_or_one(0.0) == 1
        assert sign_or_one(3) == 1


class TestSafeRadius:
    """Test that corner radii never overrun adjoining segments."""

    def test_long_segments_use_base(self):
        assert safe_radius(100, 100) == 10
        assert safe_radius(100, 100, base=25) == 25

    def test_short_segment_limits_radius(self):
        assert safe_radius(8, 100) == 4
        assert safe_radius(100, 6) == 3

    def test_negative_lengths_use_magnitude(self):
        assert safe_radius(-8, 100) == 4

    def test_radius_bounded_by_half_of_each_segment(self):
        for a in (0, 1, 7.5, 20, 300):
            for b in (0, 2, 19, 21, 500):
                r = safe_radius(a, b)
                assert r <= a / 2 and r <= b / 2 and r <= 10


class TestProjection:
    """Test numpy projection helpers."""

    def test_identity_rotation(self):
        assert np.allclose(rotation_matrix(0, 0, 0), np.eye(3))

    def test_z_rotation_turns_x_into_y(self):
        rotated = rotation_matrix(0, 0, 90) @ np.array([1.0, 0.0, 0.0])
        assert np.allclose(rotated, [0.0, 1.0, 0.0])

    def test_x_then_y_then_z_composition(self):
        combined = rotation_matrix(30, 20, 10)
        separate = rotation_matrix(30, 0, 0) @ rotation_matrix(0, 20, 0) @ rotation_matrix(0, 0, 10)
        assert np.allclose(combined, separate)

    def test_auto_center_pan_flat_pose(self):
        rect = AnchorRectangle.from_xywh(80, 30, 40, 40)
        pose = CameraPose(0, 0, 0, 1.0)
        assert auto_center_pan(pose, rect) == pytest.approx((-100.0, -50.0))

    def test_auto_center_pan_centers_for_any_rotation_and_zoom(self):
        rect = AnchorRectangle.from_xywh(100, 20, 80, 80)
        for pose in (CameraPose(), CameraPose(30, 0, -40, 1.5), CameraPose(80, 45, 170, 0.4)):
            centered = pose.with_pan(auto_center_pan(pose, rect))
            c = projected_centroid(centered, rect)
            assert math.hypot(c.x, c.y) < 1e-9

    def test_auto_center_pan_of_origin_has_no_negative_zero(self):
        rect = AnchorRectangle.from_xywh(-10, -10, 20, 20)
        pan = auto_center_pan(CameraPose(0, 0, 0), rect)
        assert all(math.copysign(1.0, v) == 1.0 for v in pan)

    def test_project_rectangle_scales_with_zoom(self):
        rect = AnchorRectangle.from_bounds(0, 0, 10, 10)
        projected = project_rectangle(CameraPose(0, 0, 0, 2.0), rect)
        assert projected.bounds() == pytest.approx((0, 0, 20, 20))

    def test_project_rectangle_is_axis_aligned_hull(self):
        rect = AnchorRectangle.from_bounds(-10, -10, 10, 10)
        projected = project_rectangle(CameraPose(0, 0, 45, 1.0), rect)
        half = 10 * math.sqrt(2)
        assert projected.bounds() == pytest.approx((-half, -half, half, half))
