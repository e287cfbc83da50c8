from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from isonav_anim.models.events import Event


class SceneEventSource(ABC):
    """Anything that yields frame events: a live widget or a recording."""

    @abstractmethod
    def stream_events(self) -> Iterator[Event]:
        ...


class SceneStepper(SceneEventSource):
    """
    Event source that owns the frame clock of a live widget.

    One frame advances the widget by ``frame_ms``; ``frame_index`` and ``t``
    (seconds) always describe the last frame reached.
    """

    fps: float = 60.0
    frame_index: int = 0
    t: float = 0.0

    @property
    def frame_ms(self) -> float:
        return 1000.0 / self.fps

    def _begin_frame(self) -> None:
        self.frame_index += 1
        self.t = self.frame_index * self.frame_ms / 1000.0

    @abstractmethod
    def tick(self) -> None:
        """Advance the widget by one frame."""

    def step(self, n: int = 1) -> None:
        for _ in range(n):
            self.tick()

    def reset(self) -> None:
        self.frame_index = 0
        self.t = 0.0
