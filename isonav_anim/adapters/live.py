from __future__ import annotations

from typing import Iterator, List, Optional

from isonav_core.scene import NavigationPoint
from isonav_core.widget import (
    CONNECTORS_ROUTED,
    HIGHLIGHT_CHANGE,
    NAVIGATION_CHANGE,
    NAVIGATION_START,
    NavigationChange,
    SceneWidget,
)

from isonav_anim.adapters.base import SceneStepper
from isonav_anim.models.events import (
    ConnectorPath,
    Event,
    FrameEnd,
    FrameStart,
    HighlightApplied,
    NavigationSettled,
    NavigationStarted,
    PoseFrame,
    SceneDeclared,
)


class WidgetStepper(SceneStepper):
    """
    Drives a live widget at a fixed frame rate and streams what a renderer
    would receive: one pose per frame plus navigation, highlight and
    connector events at the frame they happened.
    """

    def __init__(self, widget: SceneWidget, fps: float = 60.0, max_frames: int = 600):
        self.widget = widget
        self.fps = float(fps)
        self.max_frames = max_frames
        self.frame_index = 0
        self.t = 0.0
        self._pending: List[Event] = []
        widget.on(NAVIGATION_START, self._on_start)
        widget.on(NAVIGATION_CHANGE, self._on_change)
        widget.on(HIGHLIGHT_CHANGE, self._on_highlight)
        widget.on(CONNECTORS_ROUTED, self._on_routed)

    def close(self) -> None:
        self.widget.off(NAVIGATION_START, self._on_start)
        self.widget.off(NAVIGATION_CHANGE, self._on_change)
        self.widget.off(HIGHLIGHT_CHANGE, self._on_highlight)
        self.widget.off(CONNECTORS_ROUTED, self._on_routed)

    # ----- widget listeners -----
    def _on_start(self, point: NavigationPoint) -> None:
        self._pending.append(NavigationStarted(point.index, point.element_id, t=self.t))

    def _on_change(self, change: NavigationChange) -> None:
        self._pending.append(
            NavigationSettled(
                change.index,
                change.element_id,
                change.target_element_id,
                change.section_id,
                t=self.t,
            )
        )

    def _on_highlight(self, groups) -> None:
        dimmed = tuple(sorted(self.widget.highlighter.dimmed_ids()))
        self._pending.append(HighlightApplied(groups, dimmed, t=self.t))

    def _on_routed(self, renders) -> None:
        for r in renders:
            self._pending.append(
                ConnectorPath(r.spec.label, r.svg_path(), r.stroke, r.active, r.marker is not None, t=self.t)
            )

    # ----- stepping -----
    def reset(self) -> None:
        super().reset()
        self._pending = []

    def tick(self) -> None:
        self._begin_frame()
        self.widget.tick(self.frame_ms)

    def declare(self) -> SceneDeclared:
        nodes = [
            {"id": n.id, "kind": n.kind, "groups": list(n.group_memberships)}
            for n in self.widget.tree.walk()
            if n.id
        ]
        bookmarks = [
            {"index": b.index, "element_id": b.element_id, "section_id": b.section_id}
            for b in self.widget.bookmarks
        ]
        connectors = [c.label for c in self.widget.connectors]
        return SceneDeclared(nodes=nodes, bookmarks=bookmarks, connectors=connectors, fps=self.fps)

    def _frame(self) -> Iterator[Event]:
        pose = self.widget.pose
        yield PoseFrame(
            pose.rotation_x,
            pose.rotation_y,
            pose.rotation_z,
            pose.zoom,
            pose.pan_x,
            pose.pan_y,
            t=self.t,
        )
        pending, self._pending = self._pending, []
        yield from pending

    def stream_events(self, frames: Optional[int] = None) -> Iterator[Event]:
        """
        Stream frames until the widget is idle (or for exactly ``frames``
        frames), bounded by ``max_frames``.

        Frame 0 carries the current pose and anything that happened before
        streaming started (for example the start of a navigation).
        """
        yield self.declare()

        yield FrameStart(frame_index=self.frame_index, t=self.t)
        yield from self._frame()
        yield FrameEnd(frame_index=self.frame_index, t=self.t)

        produced = 0
        while produced < self.max_frames:
            if frames is None and self.widget.idle:
                break
            if frames is not None and produced >= frames:
                break
            self._begin_frame()
            yield FrameStart(frame_index=self.frame_index, t=self.t)
            self.widget.tick(self.frame_ms)
            yield from self._frame()
            yield FrameEnd(frame_index=self.frame_index, t=self.t)
            produced += 1
