"""
Layout measurement capability and the per-settle anchor snapshot.

The widget never queries element geometry per frame. It takes an
`AnchorSnapshot` once per settle from a `LayoutProvider` and routes every
connector against that snapshot. The provider keeps an epoch counter that is
bumped on every dimension change; a snapshot whose epoch lags behind is stale
and must be retaken before it is used for drawing.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

from .enums import MeasureMode
from .errors import StaleGeometrySnapshot, UnresolvedAnchor
from .geometry import AnchorRectangle, project_rectangle

if TYPE_CHECKING:  # pragma: no cover
    from .camera import CameraPose

logger = logging.getLogger(__name__)


class LayoutProvider(ABC):
    """Measurement collaborator supplying anchor rectangles by element id."""

    @property
    @abstractmethod
    def epoch(self) -> int:
        ...

    @abstractmethod
    def measure(
        self,
        element_id: str,
        mode: MeasureMode = MeasureMode.FLAT,
        pose: Optional["CameraPose"] = None,
    ) -> Optional[AnchorRectangle]:
        ...


class StaticLayout(LayoutProvider):
    """
    Layout provider backed by flat rectangles keyed by element id.

    FLAT measurements return the stored rectangle. CURRENT measurements
    project it through the supplied pose and return the screen-space bounding
    box (relative to the viewport center).
    """

    def __init__(self, rects: Optional[Dict[str, AnchorRectangle]] = None):
        self._rects: Dict[str, AnchorRectangle] = dict(rects or {})
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._rects

    def ids(self) -> Iterable[str]:
        return self._rects.keys()

    def set_rect(self, element_id: str, rect: AnchorRectangle) -> None:
        """Store or replace a rectangle; counts as a dimension change."""
        self._rects[element_id] = rect
        self.mark_dimensions_changed()

    def set_xywh(self, element_id: str, x: float, y: float, width: float, height: float) -> None:
        self.set_rect(element_id, AnchorRectangle.from_xywh(x, y, width, height))

    def remove(self, element_id: str) -> None:
        if self._rects.pop(element_id, None) is not None:
            self.mark_dimensions_changed()

    def mark_dimensions_changed(self) -> None:
        self._epoch += 1

    def measure(self, element_id, mode=MeasureMode.FLAT, pose=None):
        rect = self._rects.get(element_id)
        if rect is None:
            return None
        if mode == MeasureMode.CURRENT:
            if pose is None:
                raise ValueError("CURRENT measurement requires a pose")
            return project_rectangle(pose, rect)
        return rect


class AnchorSnapshot:
    """
    Anchor rectangles captured once per settle.

    Rectangles are captured lazily on first lookup and kept until the snapshot
    is retaken, so a connector drawn mid-animation sees the same geometry as
    the last settle.

    Args:
        layout: Measurement collaborator
        mode: Measurement mode used for every capture
        pose: Pose used for CURRENT captures
    """

    def __init__(
        self,
        layout: LayoutProvider,
        mode: MeasureMode = MeasureMode.FLAT,
        pose: Optional["CameraPose"] = None,
    ):
        self.layout = layout
        self.mode = mode
        self.pose = pose
        self.epoch = layout.epoch
        self._rects: Dict[str, Optional[AnchorRectangle]] = {}

    @property
    def is_stale(self) -> bool:
        return self.epoch != self.layout.epoch

    def check_fresh(self) -> None:
        if self.is_stale:
            raise StaleGeometrySnapshot(self.epoch, self.layout.epoch)

    def retake(self, pose: Optional["CameraPose"] = None) -> None:
        """Drop every captured rectangle and re-stamp with the current epoch."""
        if pose is not None:
            self.pose = pose
        self._rects.clear()
        self.epoch = self.layout.epoch
        logger.debug("anchor snapshot retaken at epoch %d", self.epoch)

    def ensure_fresh(self, pose: Optional["CameraPose"] = None) -> bool:
        """
        Retake the snapshot if a dimension change happened since capture.

        Returns:
            True if the snapshot was stale and has been retaken
        """
        try:
            self.check_fresh()
        except StaleGeometrySnapshot as exc:
            logger.debug("%s; resnapshotting", exc)
            self.retake(pose)
            return True
        return False

    def rect(self, element_id: Optional[str]) -> Optional[AnchorRectangle]:
        if not element_id:
            return None
        if element_id not in self._rects:
            self._rects[element_id] = self.layout.measure(element_id, self.mode, self.pose)
        return self._rects[element_id]

    def require(self, element_id: Optional[str]) -> AnchorRectangle:
        rect = self.rect(element_id)
        if rect is None:
            raise UnresolvedAnchor(element_id)
        return rect

    def pair(self, from_id: str, to_id: str) -> Tuple[AnchorRectangle, AnchorRectangle]:
        return self.require(from_id), self.require(to_id)
