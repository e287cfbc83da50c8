"""
Scene widget: coordinates the camera, the highlight propagator and the router.

A `SceneWidget` owns one camera pose, one highlight state and one anchor
snapshot. The host drives it by calling `SceneWidget.tick` once per frame.
Connector routing happens only when a navigation settles, when the highlight
set changes, after a dimension change has settled, or on an explicit
`redraw`; never on intermediate animation frames.

On completion of every navigation the order is fixed:

1. Camera mode becomes AT_BOOKMARK (or DEFAULT for the overview)
2. The bookmark's groups are highlighted (or the highlight is cleared)
3. Connectors are re-routed against the settled state
4. The caller's completion callback fires (exactly once)
5. A ``navigationChange`` event is emitted
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from .camera import CameraPose, CameraStateMachine
from .config import WidgetConfig
from .enums import CameraMode, MeasureMode, PoseSentinel
from .errors import UnresolvedAnchor
from .geometry import auto_center_pan
from .highlight import HighlightPropagator
from .layout import AnchorSnapshot, LayoutProvider, StaticLayout
from .persistence import PersistedState
from .router import ConnectorRender, ConnectorRouter, ConnectorSpec
from .scene import OVERVIEW_INDEX, NavigationPoint, RenderHint, SceneTree

logger = logging.getLogger(__name__)

NAVIGATION_START = "navigationStart"
NAVIGATION_CHANGE = "navigationChange"
HIGHLIGHT_CHANGE = "highlightChange"
CONNECTORS_ROUTED = "connectorsRouted"

_EPSILON = 1e-9


@dataclass(frozen=True)
class NavigationChange:
    """Payload of the ``navigationChange`` event."""

    index: int
    element_id: Optional[str]
    target_element_id: Optional[str]
    section_id: Optional[str]


@dataclass(frozen=True)
class NavItem:
    """One entry of the navigation bar model."""

    index: int
    key: Optional[str]
    label: str


class SceneWidget:
    """
    Interactive scene-navigation widget core.

    Args:
        tree: Scene tree from the scene builder
        bookmarks: Navigation points in document order
        connectors: Connector declarations
        layout: Measurement collaborator (an empty `StaticLayout` by default)
        config: Widget configuration
        measure_mode: FLAT snapshots are taken at the reference pose; CURRENT
            snapshots are retaken under the settled pose on every settle
    """

    def __init__(
        self,
        tree: SceneTree,
        bookmarks: Sequence[NavigationPoint] = (),
        connectors: Iterable[ConnectorSpec] = (),
        layout: Optional[LayoutProvider] = None,
        config: Optional[WidgetConfig] = None,
        measure_mode: MeasureMode = MeasureMode.FLAT,
    ):
        self.config = config or WidgetConfig()
        self.tree = tree
        self.bookmarks: List[NavigationPoint] = sorted(bookmarks, key=lambda b: b.index)
        self._by_index: Dict[int, NavigationPoint] = {b.index: b for b in self.bookmarks}
        self.connectors: List[ConnectorSpec] = list(connectors)
        self.layout = layout if layout is not None else StaticLayout()

        self.camera = CameraStateMachine(self.config)
        self.highlighter = HighlightPropagator(tree, self.config)
        self.router = ConnectorRouter(self.config)
        self.snapshot = AnchorSnapshot(self.layout, measure_mode, self.camera.pose)
        self.overview = NavigationPoint(
            OVERVIEW_INDEX,
            rotation=PoseSentinel.DEFAULT,
            zoom=PoseSentinel.DEFAULT,
            pan=PoseSentinel.DEFAULT,
        )

        self.connector_renders: List[ConnectorRender] = []
        self.selected_element_id: Optional[str] = None
        self._base_pose: CameraPose = self.camera.pose
        self._listeners: Dict[str, List[Callable]] = {}
        self._settle_remaining_ms: Optional[float] = None
        self._autoplay_interval_ms: Optional[float] = None
        self._autoplay_remaining_ms: Optional[float] = None

        self.redraw()

    # ----- events -----
    def on(self, event: str, listener: Callable) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Callable) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, payload=None) -> None:
        """Call every listener of ``event``; a failing listener is logged and skipped."""
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception("listener for %s failed", event)

    # ----- state views -----
    @property
    def pose(self) -> CameraPose:
        return self.camera.pose

    @property
    def mode(self) -> CameraMode:
        return self.camera.mode

    @property
    def bookmark_index(self) -> int:
        return self.camera.bookmark_index

    @property
    def active_groups(self):
        return self.highlighter.active_groups

    @property
    def autoplaying(self) -> bool:
        return self._autoplay_interval_ms is not None

    def bookmark(self, index: int) -> Optional[NavigationPoint]:
        if index == OVERVIEW_INDEX:
            return self.overview
        return self._by_index.get(index)

    def render_hints(self) -> Dict[str, RenderHint]:
        """Per-node highlight projection for the renderer (nodes with ids)."""
        return {n.id: n.hint for n in self.tree.walk() if n.id}

    # ----- target resolution -----
    def _flat_rect(self, element_id: Optional[str]):
        rect = self.layout.measure(element_id, MeasureMode.FLAT) if element_id else None
        if rect is None:
            raise UnresolvedAnchor(element_id)
        return rect

    def resolve_target(self, point: NavigationPoint) -> CameraPose:
        """
        Target pose of ``point``; literal values are clamped.

        Raises:
            UnresolvedAnchor: The bookmark needs auto-centering on an element
                that cannot be measured
        """
        current = self.camera.pose
        default = self.camera.default_pose

        if point.rotation is None or point.rotation is PoseSentinel.KEEP:
            rotation = current.rotation
        elif point.rotation is PoseSentinel.DEFAULT:
            rotation = default.rotation
        else:
            rotation = point.rotation

        if point.zoom is None or point.zoom is PoseSentinel.KEEP:
            zoom = current.zoom
        elif point.zoom is PoseSentinel.DEFAULT:
            zoom = default.zoom
        else:
            zoom = point.zoom

        pose = self.camera.clamp(current.with_rotation(rotation).with_zoom(zoom))

        if point.pan is PoseSentinel.KEEP:
            pan = current.pan
        elif point.pan is PoseSentinel.DEFAULT:
            pan = default.pan
        elif point.pan is None:
            if point.element_id:
                pan = auto_center_pan(pose, self._flat_rect(point.element_id))
            else:
                pan = default.pan
        else:
            pan = point.pan
        return pose.with_pan(pan)

    def _lookup(self, target: Union[NavigationPoint, int]) -> Optional[NavigationPoint]:
        if isinstance(target, NavigationPoint):
            return target
        return self.bookmark(int(target))

    # ----- navigation -----
    def navigate_to(
        self,
        target: Union[NavigationPoint, int],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Fly to a bookmark (by point or index).

        Supersedes any running transition. Cancels autoplay.

        Returns:
            False when the bookmark or its element cannot be resolved (the
            camera is left untouched), True once the transition has started
        """
        self.stop_autoplay()
        return self._navigate(target, on_complete)

    def _navigate(self, target, on_complete=None, duration_ms: Optional[float] = None) -> bool:
        point = self._lookup(target)
        if point is None:
            logger.warning("no bookmark with index %r", target)
            return False
        if point.element_id and self.tree.get(point.element_id) is None:
            logger.warning("bookmark %d targets missing element %r", point.index, point.element_id)
            return False
        try:
            pose = self.resolve_target(point)
        except UnresolvedAnchor as exc:
            logger.warning("cannot auto-center bookmark %d: %s", point.index, exc)
            return False

        logger.debug("navigating to bookmark %d", point.index)
        self.camera.animate_to(
            pose,
            self.config.navigation_duration_ms if duration_ms is None else duration_ms,
            on_complete=lambda: self._settle(point, on_complete),
        )
        self.emit(NAVIGATION_START, point)
        return True

    def _settle(self, point: NavigationPoint, on_complete: Optional[Callable[[], None]]) -> None:
        self.camera.settle(point.index)
        self.camera.pan_dirty = False
        self._base_pose = self.camera.pose

        if point.activate_groups:
            self.highlighter.apply(point.activate_groups)
        else:
            self.highlighter.clear()
        self.emit(HIGHLIGHT_CHANGE, self.highlighter.active_groups)

        node = self.tree.get(point.element_id)
        target_node = self.tree.resolve_nav_target(node, self.config.nav_selected_target) if node else None
        self.selected_element_id = target_node.id if target_node is not None else None

        self.redraw()
        if on_complete is not None:
            on_complete()

        section = point.section_id or (self.tree.find_section(node) if node else None)
        self.emit(
            NAVIGATION_CHANGE,
            NavigationChange(point.index, point.element_id, self.selected_element_id, section),
        )
        if self.autoplaying:
            self._autoplay_remaining_ms = self._autoplay_interval_ms

    def navigate_by_key(self, key: str, on_complete: Optional[Callable[[], None]] = None) -> bool:
        """
        Navigate using a public key: a bookmarked element id, then a section
        id, then the first bookmarked element inside the element named ``key``.
        """
        point = self.find_bookmark(key)
        if point is None:
            logger.warning("no bookmark reachable from key %r", key)
            return False
        return self.navigate_to(point, on_complete)

    def find_bookmark(self, key: str) -> Optional[NavigationPoint]:
        for point in self.bookmarks:
            if point.element_id == key:
                return point
        for point in self.bookmarks:
            if point.section_id == key:
                return point
        node = self.tree.get(key)
        if node is None:
            return None
        by_element = {b.element_id: b for b in reversed(self.bookmarks) if b.element_id}
        stack = list(reversed(node.children))
        while stack:
            child = stack.pop()
            if child.id in by_element:
                return by_element[child.id]
            stack.extend(reversed(child.children))
        return None

    def reset_to_default(self, on_complete: Optional[Callable[[], None]] = None) -> bool:
        """Fly to the default pose (bookmark -1); the highlight is always cleared."""
        self.stop_autoplay()
        return self._navigate(self.overview, on_complete)

    # ----- manual input -----
    def adjust(self, rotation=None, zoom_factor=None, pan=None) -> CameraPose:
        """Immediate manual delta (drag, keys, wheel); see `CameraStateMachine.adjust`."""
        self.stop_autoplay()
        return self.camera.adjust(rotation=rotation, zoom_factor=zoom_factor, pan=pan)

    def nudge_rotation(self, axis: str, direction: int = 1) -> CameraPose:
        """Animate a discrete rotation step around ``axis`` ("x", "y" or "z")."""
        self.stop_autoplay()
        step = self.config.nudge_step_deg * (1 if direction >= 0 else -1)
        deltas = {"x": (step, 0.0, 0.0), "y": (0.0, step, 0.0), "z": (0.0, 0.0, step)}
        if axis not in deltas:
            raise ValueError(f"unknown rotation axis {axis!r}")
        self.camera.mode = CameraMode.MANUAL
        return self.camera.animate_to(
            self.camera.pose.offset(rotation=deltas[axis]), self.config.nudge_duration_ms
        )

    def center_on(self, element_id: str) -> bool:
        """Pan so that ``element_id`` sits at the viewport center (click to focus)."""
        self.stop_autoplay()
        try:
            rect = self._flat_rect(element_id)
        except UnresolvedAnchor as exc:
            logger.warning("cannot focus: %s", exc)
            return False
        target = self.camera.pose.with_pan(auto_center_pan(self.camera.pose, rect))
        self.camera.mode = CameraMode.MANUAL
        self.camera.pan_dirty = True
        self.camera.animate_to(target, self.config.focus_duration_ms)
        return True

    # ----- persistence -----
    def persisted_state(self) -> PersistedState:
        """Bookmark index plus the manual deltas applied since it settled."""
        base = self._base_pose
        pose = self.camera.pose
        rotation = tuple(c - b for c, b in zip(pose.rotation, base.rotation))
        zoom = pose.zoom - base.zoom
        pan = (pose.pan_x - base.pan_x, pose.pan_y - base.pan_y)
        return PersistedState(
            bookmark_index=self.camera.bookmark_index,
            rotation_delta=rotation if any(abs(d) > _EPSILON for d in rotation) else None,
            zoom_delta=zoom if abs(zoom) > _EPSILON else None,
            pan_delta=pan if self.camera.pan_dirty and any(abs(d) > _EPSILON for d in pan) else None,
            pan_dirty=self.camera.pan_dirty,
        )

    def load_persisted(
        self,
        state: PersistedState,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Replay a persisted viewpoint in two steps.

        The camera first navigates to the stored bookmark (re-establishing its
        highlight and connectors), then animates the stored manual deltas on
        top of the settled bookmark pose.
        """

        def apply_deltas() -> None:
            if not state.has_manual_delta:
                if on_complete is not None:
                    on_complete()
                return
            target = self._base_pose.offset(
                rotation=state.rotation_delta,
                zoom=state.zoom_delta,
                pan=state.pan_delta,
            )
            self.camera.mode = CameraMode.MANUAL
            self.camera.pan_dirty = state.pan_dirty or state.pan_delta is not None
            self.camera.animate_to(target, self.config.navigation_duration_ms, on_complete)

        self.stop_autoplay()
        if state.bookmark_index == OVERVIEW_INDEX:
            return self._navigate(self.overview, apply_deltas)
        if self.bookmark(state.bookmark_index) is None:
            logger.warning("persisted bookmark %d does not exist", state.bookmark_index)
            return False
        return self._navigate(state.bookmark_index, apply_deltas)

    # ----- autoplay -----
    def autoplay_sequence(self) -> List[int]:
        """Bookmark indices in order, followed by the overview."""
        return [b.index for b in self.bookmarks] + [OVERVIEW_INDEX]

    def start_autoplay(self, interval_ms: Optional[float] = None) -> None:
        """Cycle through the bookmarks, dwelling ``interval_ms`` after each settle."""
        if not self.bookmarks:
            logger.warning("autoplay requested without bookmarks")
            return
        self._autoplay_interval_ms = self.config.autoplay_interval_ms if interval_ms is None else interval_ms
        self._autoplay_remaining_ms = None
        self._advance_autoplay()

    def stop_autoplay(self) -> None:
        if self._autoplay_interval_ms is not None:
            logger.debug("autoplay stopped")
        self._autoplay_interval_ms = None
        self._autoplay_remaining_ms = None

    def _advance_autoplay(self) -> None:
        sequence = self.autoplay_sequence()
        current = self.camera.bookmark_index
        if current in sequence and current != OVERVIEW_INDEX:
            start = sequence.index(current) + 1
        else:
            start = 0
        self._autoplay_remaining_ms = None
        for offset in range(len(sequence)):
            following = sequence[(start + offset) % len(sequence)]
            if self._navigate(following):
                return
            logger.debug("autoplay skipping unreachable bookmark %d", following)
        logger.warning("autoplay has no reachable bookmark")
        self.stop_autoplay()

    # ----- highlight -----
    def highlight(self, groups: Optional[Iterable[str]]) -> Set[str]:
        matched = self.highlighter.apply(groups)
        self.emit(HIGHLIGHT_CHANGE, self.highlighter.active_groups)
        self.redraw()
        return matched

    def clear_highlights(self) -> None:
        self.highlight(None)

    def toggle_group(self, key: str) -> Set[str]:
        """Highlight ``key`` alone, or clear when it is already the only active group."""
        if self.highlighter.active_groups == (key,):
            return self.highlight(None)
        return self.highlight([key])

    # ----- navigation bar model -----
    def navigation_bar(self) -> List[NavItem]:
        """
        Entries for a navigation bar: the overview first, then one entry per
        section (first bookmark of each) sorted by section name, then the
        bookmarks without a section in index order.
        """
        items = [NavItem(OVERVIEW_INDEX, None, "overview")]
        sectioned: Dict[str, NavigationPoint] = {}
        loose: List[NavigationPoint] = []
        for point in self.bookmarks:
            if point.section_id:
                sectioned.setdefault(point.section_id, point)
            else:
                loose.append(point)
        for section in sorted(sectioned):
            point = sectioned[section]
            items.append(NavItem(point.index, section, section))
        for point in loose:
            items.append(NavItem(point.index, point.element_id, point.element_id or str(point.index)))
        return items

    # ----- layout / redraw -----
    def notify_dimensions_changed(self) -> None:
        """Schedule a resnapshot once the layout has settled."""
        self._settle_remaining_ms = self.config.settle_delay_ms

    def redraw(self) -> List[ConnectorRender]:
        """Re-route every connector against the settled pose and highlight."""
        if self.snapshot.mode == MeasureMode.CURRENT:
            self.snapshot.retake(self.camera.pose)
        self.connector_renders = self.router.route_all(
            self.connectors, self.snapshot, self.highlighter.active_groups
        )
        self.emit(CONNECTORS_ROUTED, self.connector_renders)
        return self.connector_renders

    def tick(self, dt_ms: float) -> CameraPose:
        """Per-frame entry point: camera interpolation, settle timer, autoplay."""
        pose = self.camera.tick(dt_ms)

        if self._settle_remaining_ms is not None:
            self._settle_remaining_ms -= dt_ms
            if self._settle_remaining_ms <= 0:
                self._settle_remaining_ms = None
                self.snapshot.ensure_fresh(self.camera.pose)
                self.redraw()

        if self._autoplay_remaining_ms is not None and not self.camera.animating:
            self._autoplay_remaining_ms -= dt_ms
            if self._autoplay_remaining_ms <= 0:
                self._advance_autoplay()
        return pose

    @property
    def idle(self) -> bool:
        return not self.camera.animating and self._settle_remaining_ms is None

    def run_until_idle(self, frame_ms: float = 1000.0 / 60, max_frames: int = 100000) -> int:
        """Tick until no transition or settle timer is pending; returns frames run."""
        frames = 0
        while not self.idle and frames < max_frames:
            self.tick(frame_ms)
            frames += 1
        return frames
