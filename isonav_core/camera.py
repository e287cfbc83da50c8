"""
Camera pose, eased interpolation and the camera state machine.

The state machine owns the single `CameraPose` of a widget. It is advanced
by an external driver calling `CameraStateMachine.tick` once per frame;
every intermediate pose is published to renderer subscribers. At most one
interpolation runs at a time: starting a new one supersedes the current one
and drops its completion callback.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from .config import WidgetConfig
from .enums import CameraMode
from .scene import OVERVIEW_INDEX

logger = logging.getLogger(__name__)

PoseListener = Callable[["CameraPose"], None]


@dataclass(frozen=True)
class CameraPose:
    """
    Camera transform applied by the renderer.

    Attributes:
        rotation_x, rotation_y, rotation_z: Rotation in degrees
        zoom: Uniform scale
        pan_x, pan_y: Translation in unscaled scene pixels
    """

    rotation_x: float = 45.0
    rotation_y: float = 0.0
    rotation_z: float = -35.0
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    @classmethod
    def from_config(cls, config: WidgetConfig) -> "CameraPose":
        rx, ry, rz = config.default_rotation
        px, py = config.default_pan
        return cls(rx, ry, rz, config.default_zoom, px, py)

    @property
    def rotation(self) -> Tuple[float, float, float]:
        return (self.rotation_x, self.rotation_y, self.rotation_z)

    @property
    def pan(self) -> Tuple[float, float]:
        return (self.pan_x, self.pan_y)

    def with_rotation(self, rotation: Tuple[float, float, float]) -> "CameraPose":
        rx, ry, rz = rotation
        return replace(self, rotation_x=float(rx), rotation_y=float(ry), rotation_z=float(rz))

    def with_pan(self, pan: Tuple[float, float]) -> "CameraPose":
        px, py = pan
        return replace(self, pan_x=float(px), pan_y=float(py))

    def with_zoom(self, zoom: float) -> "CameraPose":
        return replace(self, zoom=float(zoom))

    def offset(
        self,
        rotation: Optional[Tuple[float, float, float]] = None,
        zoom: Optional[float] = None,
        pan: Optional[Tuple[float, float]] = None,
    ) -> "CameraPose":
        """Pose shifted by additive deltas; omitted components are unchanged."""
        pose = self
        if rotation is not None:
            dx, dy, dz = rotation
            pose = pose.with_rotation((pose.rotation_x + dx, pose.rotation_y + dy, pose.rotation_z + dz))
        if zoom is not None:
            pose = pose.with_zoom(pose.zoom + zoom)
        if pan is not None:
            dx, dy = pan
            pose = pose.with_pan((pose.pan_x + dx, pose.pan_y + dy))
        return pose

    def lerp(self, other: "CameraPose", t: float) -> "CameraPose":
        def mix(a: float, b: float) -> float:
            return a + (b - a) * t

        return CameraPose(
            mix(self.rotation_x, other.rotation_x),
            mix(self.rotation_y, other.rotation_y),
            mix(self.rotation_z, other.rotation_z),
            mix(self.zoom, other.zoom),
            mix(self.pan_x, other.pan_x),
            mix(self.pan_y, other.pan_y),
        )

    def isclose(self, other: "CameraPose", tol: float = 1e-6) -> bool:
        return all(abs(a - b) <= tol for a, b in zip(self.as_tuple(), other.as_tuple()))

    def as_tuple(self) -> Tuple[float, ...]:
        return (self.rotation_x, self.rotation_y, self.rotation_z, self.zoom, self.pan_x, self.pan_y)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def ease_in_out_quad(t: float) -> float:
    """Quadratic ease in/out on ``[0, 1]``."""
    if t < 0.5:
        return 2 * t * t
    return -1 + (4 - 2 * t) * t


class Interpolation:
    """
    Eased transition between two poses, advanced by elapsed milliseconds.

    The final tick always returns ``target`` exactly.
    """

    def __init__(
        self,
        start: CameraPose,
        target: CameraPose,
        duration_ms: float,
        easing: Callable[[float], float] = ease_in_out_quad,
    ):
        self.start = start
        self.target = target
        self.duration_ms = max(0.0, float(duration_ms))
        self.easing = easing
        self.elapsed_ms = 0.0

    @property
    def progress(self) -> float:
        if self.duration_ms <= 0:
            return 1.0
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def done(self) -> bool:
        return self.progress >= 1.0

    def tick(self, dt_ms: float) -> CameraPose:
        self.elapsed_ms += max(0.0, dt_ms)
        t = self.progress
        if t >= 1.0:
            return self.target
        return self.start.lerp(self.target, self.easing(t))


class CameraStateMachine:
    """
    Holds the camera pose and runs navigation/manual transitions.

    States are DEFAULT (overview), AT_BOOKMARK(index) and MANUAL. The state
    machine only changes the pose; the widget decides what happens when a
    transition settles through the completion callback.

    Args:
        config: Limits, defaults and durations
        pose: Initial pose (defaults to the configured default pose)
    """

    def __init__(self, config: Optional[WidgetConfig] = None, pose: Optional[CameraPose] = None):
        self.config = config or WidgetConfig()
        self.default_pose = self.clamp(CameraPose.from_config(self.config))
        self.pose = self.clamp(pose) if pose is not None else self.default_pose
        self.mode = CameraMode.DEFAULT
        self.bookmark_index = OVERVIEW_INDEX
        self.pan_dirty = False
        self._interpolation: Optional[Interpolation] = None
        self._on_complete: Optional[Callable[[], None]] = None
        self._listeners: List[PoseListener] = []

    # ----- renderer subscription -----
    def subscribe(self, listener: PoseListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: PoseListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.pose)
            except Exception:
                logger.exception("pose listener %r failed", listener)

    # ----- limits -----
    def clamp(self, pose: CameraPose) -> CameraPose:
        """Clamp rotation to the configured limits and zoom to the zoom range."""
        rotation = self.config.rotation_limits.clamp(*pose.rotation)
        zoom = self.config.clamp_zoom(pose.zoom)
        clamped = replace(pose.with_rotation(rotation), zoom=zoom)
        if clamped != pose:
            logger.debug("pose clamped from %s to %s", pose.as_tuple(), clamped.as_tuple())
        return clamped

    # ----- animation -----
    @property
    def animating(self) -> bool:
        return self._interpolation is not None

    @property
    def target(self) -> Optional[CameraPose]:
        return self._interpolation.target if self._interpolation is not None else None

    def animate_to(
        self,
        target: CameraPose,
        duration_ms: Optional[float] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> CameraPose:
        """
        Start an eased transition from the current pose to ``target``.

        Any running transition is abandoned and its callback never fires.

        Returns:
            The clamped target pose
        """
        clamped = self.clamp(target)
        if self._interpolation is not None:
            logger.debug("superseding in-flight interpolation")
        duration = self.config.navigation_duration_ms if duration_ms is None else duration_ms
        self._interpolation = Interpolation(self.pose, clamped, duration)
        self._on_complete = on_complete
        return clamped

    def cancel(self) -> None:
        self._interpolation = None
        self._on_complete = None

    def tick(self, dt_ms: float) -> CameraPose:
        """Advance the running transition by ``dt_ms`` and publish the new pose."""
        interpolation = self._interpolation
        if interpolation is None:
            return self.pose
        self.pose = interpolation.tick(dt_ms)
        self._publish()
        if interpolation.done and self._interpolation is interpolation:
            callback = self._on_complete
            self._interpolation = None
            self._on_complete = None
            if callback is not None:
                callback()
        return self.pose

    def run_to_completion(self, frame_ms: float = 1000.0 / 60, max_frames: int = 100000) -> int:
        """Tick until no transition is running; returns the number of frames."""
        frames = 0
        while self.animating and frames < max_frames:
            self.tick(frame_ms)
            frames += 1
        return frames

    # ----- immediate changes -----
    def set_pose(self, pose: CameraPose) -> CameraPose:
        self.cancel()
        self.pose = self.clamp(pose)
        self._publish()
        return self.pose

    def adjust(
        self,
        rotation: Optional[Tuple[float, float, float]] = None,
        zoom_factor: Optional[float] = None,
        pan: Optional[Tuple[float, float]] = None,
    ) -> CameraPose:
        """
        Apply a manual delta immediately (drag, keyboard, wheel).

        Cancels any running transition and switches to MANUAL. Pan deltas are
        screen pixels and are divided by the current zoom; a pan marks the pan
        as manually dirty.
        """
        self.cancel()
        pose = self.pose
        if rotation is not None:
            pose = pose.offset(rotation=rotation)
        if zoom_factor is not None:
            pose = pose.with_zoom(pose.zoom * zoom_factor)
        pose = self.clamp(pose)
        if pan is not None:
            dx, dy = pan
            pose = pose.offset(pan=(dx / pose.zoom, dy / pose.zoom))
            self.pan_dirty = True
        self.pose = pose
        self.mode = CameraMode.MANUAL
        self._publish()
        return self.pose

    def settle(self, index: int) -> None:
        """Record the completed navigation target."""
        self.bookmark_index = index
        self.mode = CameraMode.DEFAULT if index == OVERVIEW_INDEX else CameraMode.AT_BOOKMARK
