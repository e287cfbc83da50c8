from __future__ import annotations

import json
from dataclasses import asdict
from typing import Iterable, Iterator

from isonav_anim.adapters.base import SceneEventSource
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


_TYPE_MAP = {
    "SceneDeclared": SceneDeclared,
    "FrameStart": FrameStart,
    "FrameEnd": FrameEnd,
    "PoseFrame": PoseFrame,
    "NavigationStarted": NavigationStarted,
    "NavigationSettled": NavigationSettled,
    "HighlightApplied": HighlightApplied,
    "ConnectorPath": ConnectorPath,
}


class JsonlEventSource(SceneEventSource):
    def __init__(self, path: str):
        self.path = path

    def stream_events(self) -> Iterator[Event]:
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                obj = json.loads(line)
                typ = obj.pop("type", None)
                cls = _TYPE_MAP.get(typ)
                if cls is None:
                    continue
                if cls is HighlightApplied:
                    # JSON has no tuples
                    if obj.get("groups") is not None:
                        obj["groups"] = tuple(obj["groups"])
                    obj["dimmed"] = tuple(obj.get("dimmed", ()))
                yield cls(**obj)


def write_events_jsonl(events: Iterable[Event], path: str) -> int:
    """Write events one JSON object per line; returns the number written."""
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for ev in events:
            obj = {"type": type(ev).__name__}
            obj.update(asdict(ev))
            f.write(json.dumps(obj) + "\n")
            count += 1
    return count
