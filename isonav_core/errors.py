"""
Error taxonomy for the isonav core.

None of these are fatal: the router, compiler and widget catch them at their
boundary, log a warning and continue with a partial result (a connector or a
bookmark is omitted). Out-of-range poses are clamped and never raise.
"""

from __future__ import annotations


class SceneError(Exception):
    """Base class for recoverable scene errors."""


class UnresolvedAnchor(SceneError):
    """A connector endpoint or navigation target could not be measured."""

    def __init__(self, element_id: str | None):
        self.element_id = element_id
        super().__init__(f"element {element_id!r} could not be resolved")


class MalformedBookmarkSpec(SceneError, ValueError):
    """A declarative bookmark annotation could not be parsed."""


class MalformedConnectorSpec(SceneError, ValueError):
    """A declarative connector annotation could not be parsed."""


class StaleGeometrySnapshot(SceneError):
    """Anchor rectangles were captured before the latest dimension change."""

    def __init__(self, snapshot_epoch: int, layout_epoch: int):
        self.snapshot_epoch = snapshot_epoch
        self.layout_epoch = layout_epoch
        super().__init__(
            f"anchor snapshot epoch {snapshot_epoch} is behind layout epoch {layout_epoch}"
        )
