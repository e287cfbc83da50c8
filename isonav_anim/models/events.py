from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class SceneDeclared:
    nodes: List[Dict[str, Any]]
    bookmarks: List[Dict[str, Any]]
    connectors: List[str]
    fps: float = 60.0


@dataclass(frozen=True)
class FrameStart:
    frame_index: int
    t: Optional[float] = None


@dataclass(frozen=True)
class FrameEnd:
    frame_index: int
    t: Optional[float] = None


@dataclass(frozen=True)
class PoseFrame:
    rotation_x: float
    rotation_y: float
    rotation_z: float
    zoom: float
    pan_x: float
    pan_y: float
    t: Optional[float] = None


@dataclass(frozen=True)
class NavigationStarted:
    index: int
    element_id: Optional[str] = None
    t: Optional[float] = None


@dataclass(frozen=True)
class NavigationSettled:
    index: int
    element_id: Optional[str] = None
    target_element_id: Optional[str] = None
    section_id: Optional[str] = None
    t: Optional[float] = None


@dataclass(frozen=True)
class HighlightApplied:
    groups: Optional[Tuple[str, ...]]
    dimmed: Tuple[str, ...] = ()
    t: Optional[float] = None


@dataclass(frozen=True)
class ConnectorPath:
    connector_id: str
    path: str
    stroke: str
    active: bool = True
    animated: bool = False
    t: Optional[float] = None


Event = Union[
    SceneDeclared,
    FrameStart,
    FrameEnd,
    PoseFrame,
    NavigationStarted,
    NavigationSettled,
    HighlightApplied,
    ConnectorPath,
]


@dataclass(frozen=True)
class Transition:
    idx: int
    duration: float
    events: List[Event]
    settled: bool = True
