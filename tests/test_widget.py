"""
Integration tests for the scene widget.

These tests drive a compiled scene through navigation, highlight, manual
input, persistence replay, autoplay and layout changes, checking the fixed
settle order and the final camera, highlight and connector state.
"""

import pytest

from isonav_core.camera import CameraPose
from isonav_core.compiler import compile_from_dict
from isonav_core.enums import AnchorSide, CameraMode, MeasureMode, PathShape, RenderState
from isonav_core.geometry import AnchorRectangle, anchor_point, auto_center_pan, project_rectangle, projected_centroid
from isonav_core.persistence import PersistedState, to_query
from isonav_core.scene import NavigationPoint
from isonav_core.widget import (
    CONNECTORS_ROUTED,
    HIGHLIGHT_CHANGE,
    NAVIGATION_CHANGE,
    NAVIGATION_START,
    NavigationChange,
    NavItem,
)

DB_RECT = AnchorRectangle.from_xywh(100, 20, 80, 80)


def record(widget, *events):
    log = []
    for name in events:
        widget.on(name, lambda payload, name=name: log.append((name, payload)))
    return log


class TestInitialState:
    def test_widget_starts_at_default(self, widget):
        assert widget.pose == CameraPose()
        assert widget.mode == CameraMode.DEFAULT
        assert widget.bookmark_index == -1
        assert widget.active_groups is None
        assert widget.idle

    def test_bookmarks_and_connectors(self, widget):
        assert [b.element_id for b in widget.bookmarks] == ["web", "api", "db", "notes"]
        assert len(widget.connector_renders) == 2
        assert all(r.active for r in widget.connector_renders)


class TestNavigateTo:
    """Navigation to a bookmark and the fixed settle order."""

    def test_db_bookmark_scenario(self, widget):
        assert widget.navigate_to(2)
        widget.run_until_idle()

        assert widget.pose.rotation == (30.0, 0.0, -40.0)
        assert widget.pose.zoom == 1.5
        assert widget.pose.pan == pytest.approx(auto_center_pan(CameraPose(30, 0, -40, 1.5), DB_RECT))
        assert widget.mode == CameraMode.AT_BOOKMARK
        assert widget.bookmark_index == 2
        assert widget.active_groups == ("db",)
        assert widget.selected_element_id == "db"

        states = widget.highlighter.states()
        assert states["db"] == RenderState.HIGHLIGHTED
        assert states["app"] == RenderState.INHERITED
        for dimmed in ("web", "api", "legend", "notes"):
            assert states[dimmed] == RenderState.DIMMED

    def test_auto_centered_element_sits_at_viewport_center(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        c = projected_centroid(widget.pose, DB_RECT)
        assert abs(c.x) < 1e-9 and abs(c.y) < 1e-9

    def test_literal_pan_is_used(self, widget):
        widget.navigate_to(1)
        widget.run_until_idle()
        assert widget.pose == CameraPose(45, 0, -20, 1.2, 10, 20)

    def test_keep_components(self, widget):
        widget.navigate_to(1)
        widget.run_until_idle()
        widget.navigate_to(3)
        widget.run_until_idle()
        assert widget.pose.rotation == (45.0, 0.0, -20.0)
        assert widget.pose.zoom == 1.2
        assert widget.active_groups is None

    def test_connectors_follow_highlight(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        by_id = {r.spec.label: r for r in widget.connector_renders}
        assert not by_id["web->api"].active
        assert by_id["web->api"].stroke.startswith("rgba(")
        assert by_id["api->db"].active
        assert by_id["api->db"].marker is not None
        assert by_id["api->db"].shape == PathShape.Z_SHAPE

    def test_settle_order(self, widget):
        log = record(widget, NAVIGATION_START, HIGHLIGHT_CHANGE, CONNECTORS_ROUTED, NAVIGATION_CHANGE)
        widget.navigate_to(2, on_complete=lambda: log.append(("complete", None)))
        assert [name for name, _ in log] == [NAVIGATION_START]
        widget.run_until_idle()

        assert [name for name, _ in log] == [
            NAVIGATION_START,
            HIGHLIGHT_CHANGE,
            CONNECTORS_ROUTED,
            "complete",
            NAVIGATION_CHANGE,
        ]
        assert log[1][1] == ("db",)
        assert log[-1][1] == NavigationChange(2, "db", "db", "storage")

    def test_no_routing_on_intermediate_frames(self, widget):
        log = record(widget, CONNECTORS_ROUTED)
        widget.navigate_to(0)
        frames = widget.run_until_idle()
        assert frames > 10
        assert len(log) == 1

    def test_rapid_double_navigation(self, widget):
        poses = []
        widget.camera.subscribe(poses.append)
        first, second = [], []
        changes = record(widget, NAVIGATION_CHANGE)

        widget.navigate_to(0, on_complete=lambda: first.append(1))
        for _ in range(10):
            widget.tick(1000 / 60)
        assert len(poses) == 10
        widget.navigate_to(2, on_complete=lambda: second.append(1))
        widget.run_until_idle()

        assert first == []
        assert second == [1]
        assert [c.index for _, c in changes] == [2]
        assert widget.bookmark_index == 2
        assert widget.pose.rotation == (30.0, 0.0, -40.0)

    def test_unknown_index(self, widget):
        assert widget.navigate_to(99) is False
        assert not widget.camera.animating

    def test_missing_element(self, widget):
        assert widget.navigate_to(NavigationPoint(7, element_id="ghost")) is False
        assert not widget.camera.animating

    def test_unmeasurable_auto_center_target(self, widget, caplog):
        assert widget.navigate_to(NavigationPoint(8, element_id="legend")) is False
        assert "legend" in caplog.text
        assert widget.pose == CameraPose()

    def test_listener_failure_does_not_break_navigation(self, widget, caplog):
        def broken(payload):
            raise RuntimeError("listener exploded")

        widget.on(NAVIGATION_CHANGE, broken)
        changes = record(widget, NAVIGATION_CHANGE)
        widget.navigate_to(2)
        widget.run_until_idle()
        assert len(changes) == 1
        assert "listener exploded" in caplog.text

    def test_off_removes_listener(self, widget):
        seen = []
        widget.on(NAVIGATION_CHANGE, seen.append)
        widget.off(NAVIGATION_CHANGE, seen.append)
        widget.navigate_to(2)
        widget.run_until_idle()
        assert seen == []


class TestNavigateByKey:
    def test_element_id(self, widget):
        assert widget.find_bookmark("db").index == 2

    def test_section_id(self, widget):
        assert widget.find_bookmark("storage").index == 2
        assert widget.find_bookmark("intro").index == 0

    def test_first_bookmarked_descendant(self, widget):
        assert widget.find_bookmark("app").index == 0

    def test_unknown_key(self, widget):
        assert widget.find_bookmark("nowhere") is None
        assert widget.navigate_by_key("nowhere") is False

    def test_navigates(self, widget):
        assert widget.navigate_by_key("backend")
        widget.run_until_idle()
        assert widget.bookmark_index == 1


class TestResetToDefault:
    def test_reset_clears_highlight(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        changes = record(widget, NAVIGATION_CHANGE)
        assert widget.reset_to_default()
        widget.run_until_idle()

        assert widget.pose == widget.camera.default_pose
        assert widget.mode == CameraMode.DEFAULT
        assert widget.bookmark_index == -1
        assert widget.active_groups is None
        assert widget.highlighter.dimmed_ids() == set()
        assert all(r.active for r in widget.connector_renders)
        assert changes[0][1] == NavigationChange(-1, None, None, None)


class TestHighlightApi:
    def test_highlight_and_clear(self, widget):
        log = record(widget, HIGHLIGHT_CHANGE, CONNECTORS_ROUTED)
        matched = widget.highlight(["frontend"])
        assert matched == {"web"}
        assert [name for name, _ in log] == [HIGHLIGHT_CHANGE, CONNECTORS_ROUTED]
        assert [r.active for r in widget.connector_renders] == [True, False]
        widget.clear_highlights()
        assert widget.active_groups is None
        assert all(r.active for r in widget.connector_renders)

    def test_toggle_group(self, widget):
        widget.toggle_group("db")
        assert widget.active_groups == ("db",)
        widget.toggle_group("db")
        assert widget.active_groups is None

    def test_render_hints(self, widget):
        widget.highlight(["db"])
        hints = widget.render_hints()
        assert hints["db"].matched
        assert hints["web"].dimmed
        assert hints["web"].color_override["background"].startswith("rgba(")


class TestManualInput:
    def test_adjust_switches_to_manual(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        widget.adjust(rotation=(5, 0, -10))
        assert widget.mode == CameraMode.MANUAL
        assert widget.pose.rotation == (35.0, 0.0, -50.0)

    def test_adjust_during_navigation_cancels_it(self, widget):
        changes = record(widget, NAVIGATION_CHANGE)
        widget.navigate_to(2)
        widget.tick(100)
        widget.adjust(pan=(10, 0))
        widget.run_until_idle()
        assert changes == []
        assert widget.bookmark_index == -1

    def test_nudge_rotation(self, widget):
        widget.nudge_rotation("y", 1)
        assert widget.mode == CameraMode.MANUAL
        widget.run_until_idle()
        assert widget.pose.rotation_y == 15.0
        widget.nudge_rotation("z", -1)
        widget.run_until_idle()
        assert widget.pose.rotation_z == -50.0

    def test_nudge_rejects_unknown_axis(self, widget):
        with pytest.raises(ValueError):
            widget.nudge_rotation("w")

    def test_center_on(self, widget):
        assert widget.center_on("db")
        widget.run_until_idle()
        c = projected_centroid(widget.pose, DB_RECT)
        assert abs(c.x) < 1e-9 and abs(c.y) < 1e-9
        assert widget.mode == CameraMode.MANUAL
        assert widget.camera.pan_dirty

    def test_center_on_unmeasurable(self, widget):
        assert widget.center_on("legend") is False


class TestPersistence:
    def test_state_at_bookmark_has_no_deltas(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        state = widget.persisted_state()
        assert state == PersistedState(bookmark_index=2)
        assert to_query(state) == "nav=2"

    def test_rotation_delta(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        widget.adjust(rotation=(5, 0, -10))
        state = widget.persisted_state()
        assert state.rotation_delta == pytest.approx((5, 0, -10))
        assert state.pan_delta is None
        assert to_query(state) == "nav=2&xyz=05.00.-10"

    def test_pan_delta_requires_dirty_pan(self, widget):
        widget.navigate_to(2)
        widget.run_until_idle()
        widget.adjust(pan=(75, -30))
        state = widget.persisted_state()
        assert state.pan_dirty
        assert state.pan_delta == pytest.approx((50, -20))

    def test_load_persisted_scenario(self, widget):
        at_settle = []
        widget.on(NAVIGATION_CHANGE, lambda change: at_settle.append(widget.pose))
        done = []
        state = PersistedState(bookmark_index=2, pan_delta=(50, -20), pan_dirty=True)

        assert widget.load_persisted(state, on_complete=lambda: done.append(1))
        widget.run_until_idle()

        bookmark_pose = at_settle[0]
        assert bookmark_pose.rotation == (30.0, 0.0, -40.0)
        assert widget.pose.pan == pytest.approx((bookmark_pose.pan_x + 50, bookmark_pose.pan_y - 20))
        assert widget.pose.rotation == bookmark_pose.rotation
        assert widget.mode == CameraMode.MANUAL
        assert widget.bookmark_index == 2
        assert widget.active_groups == ("db",)
        assert done == [1]
        assert widget.persisted_state().pan_delta == pytest.approx((50, -20))

    def test_load_without_deltas(self, widget):
        done = []
        assert widget.load_persisted(PersistedState(bookmark_index=1), on_complete=lambda: done.append(1))
        widget.run_until_idle()
        assert widget.mode == CameraMode.AT_BOOKMARK
        assert done == [1]

    def test_load_overview_with_zoom_delta(self, widget):
        widget.load_persisted(PersistedState(zoom_delta=0.5))
        widget.run_until_idle()
        assert widget.bookmark_index == -1
        assert widget.pose.zoom == pytest.approx(1.5)

    def test_load_missing_bookmark(self, widget):
        assert widget.load_persisted(PersistedState(bookmark_index=42)) is False


class TestAutoplay:
    def test_sequence(self, widget):
        assert widget.autoplay_sequence() == [0, 1, 2, 3, -1]

    def test_cycles_through_bookmarks_and_overview(self, make_widget):
        widget = make_widget(navigation_duration_ms=100, autoplay_interval_ms=50)
        visited = []
        widget.on(NAVIGATION_CHANGE, lambda change: visited.append(change.index))
        widget.start_autoplay()
        assert widget.autoplaying
        for _ in range(2000):
            widget.tick(10)
            if len(visited) >= 6:
                break
        assert visited[:6] == [0, 1, 2, 3, -1, 0]

    def test_unreachable_bookmark_is_skipped(self):
        spec = {
            "config": {"navigation_duration_ms": 100, "autoplay_interval_ms": 100},
            "scene": [
                {"id": "a", "rect": [0, 0, 50, 50], "nav": {}},
                {"id": "ghost", "nav": {}},
                {"id": "c", "rect": [200, 0, 50, 50], "nav": {}},
            ],
        }
        widget = compile_from_dict(spec).build_widget()
        visited = []
        widget.on(NAVIGATION_CHANGE, lambda change: visited.append(change.index))
        widget.start_autoplay()
        for _ in range(2000):
            widget.tick(16)
            if len(visited) >= 4:
                break
        assert widget.autoplaying
        assert visited[:4] == [0, 2, -1, 0]

    def test_dwell_starts_after_settle(self, make_widget):
        widget = make_widget(navigation_duration_ms=100, autoplay_interval_ms=1000)
        visited = []
        widget.on(NAVIGATION_CHANGE, lambda change: visited.append(change.index))
        widget.start_autoplay()
        for _ in range(100):
            widget.tick(10)
        # 100ms flight plus less than one full dwell
        assert visited == [0]

    def test_public_navigation_stops_autoplay(self, make_widget):
        widget = make_widget(navigation_duration_ms=100, autoplay_interval_ms=50)
        widget.start_autoplay()
        widget.navigate_to(3)
        assert not widget.autoplaying
        widget.run_until_idle()
        for _ in range(50):
            widget.tick(10)
        assert widget.bookmark_index == 3

    def test_manual_input_stops_autoplay(self, widget):
        widget.start_autoplay()
        widget.adjust(rotation=(1, 0, 0))
        assert not widget.autoplaying


class TestNavigationBar:
    def test_entries(self, widget):
        assert widget.navigation_bar() == [
            NavItem(-1, None, "overview"),
            NavItem(1, "backend", "backend"),
            NavItem(0, "intro", "intro"),
            NavItem(2, "storage", "storage"),
            NavItem(3, "notes", "notes"),
        ]


class TestLayoutChanges:
    def test_resnapshot_after_settle_delay(self, widget):
        api_db = widget.connector_renders[1]
        assert api_db.points[-1] == anchor_point(DB_RECT, AnchorSide.TOP)

        widget.layout.set_xywh("db", 200, 20, 80, 80)
        widget.notify_dimensions_changed()
        assert not widget.idle
        widget.tick(50)
        assert widget.snapshot.is_stale
        widget.tick(60)
        assert not widget.snapshot.is_stale
        assert widget.idle
        moved = widget.connector_renders[1]
        assert moved.points[-1] == anchor_point(AnchorRectangle.from_xywh(200, 20, 80, 80), AnchorSide.TOP)

    def test_current_measure_mode_resnapshots_at_settle(self, make_widget):
        widget = make_widget(measure_mode=MeasureMode.CURRENT)
        widget.navigate_to(2)
        widget.run_until_idle()
        assert widget.snapshot.pose == widget.pose
        api_rect = project_rectangle(widget.pose, AnchorRectangle.from_xywh(-40, -130, 100, 80))
        api_db = widget.connector_renders[1]
        assert api_db.points[0] == anchor_point(api_rect, AnchorSide.RIGHT)


class TestNavSelectedTarget:
    def test_face_target(self, make_doc):
        from isonav_core.scene import SceneNode

        doc = make_doc(nav_selected_target="top")
        app = doc.tree.get("app")
        app.add_child(SceneNode("app-top", kind="top"))
        doc.tree.reindex()
        widget = doc.build_widget()
        widget.navigate_to(2)
        widget.run_until_idle()
        assert widget.selected_element_id == "app-top"
