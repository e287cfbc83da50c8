"""
isonav Core Package.

This package contains the core of an isometric scene-navigation widget:

- Scene data structures (SceneTree, SceneNode, NavigationPoint)
- Connector routing between anchor rectangles (ConnectorRouter)
- Hierarchical highlight/dim propagation (HighlightPropagator)
- Camera pose interpolation and navigation (CameraStateMachine, SceneWidget)
- YAML scene compiler, persistence record and scroll synchronisation

A widget is driven by calling `SceneWidget.tick` once per frame; everything
else reacts to navigation requests, manual input and layout changes.
"""

# isonav Core Package

__version__ = "0.1.0"

from .enums import (
    AnchorSide,
    Axis,
    CameraMode,
    DecorationKind,
    LineStyle,
    MeasureMode,
    PathShape,
    PoseSentinel,
    RenderState,
)
from .config import RotationLimits, WidgetConfig
from .errors import (
    MalformedBookmarkSpec,
    MalformedConnectorSpec,
    SceneError,
    StaleGeometrySnapshot,
    UnresolvedAnchor,
)
from .geometry import AnchorRectangle, Point
from .scene import OVERVIEW_INDEX, NavigationPoint, RenderHint, SceneNode, SceneTree
from .layout import AnchorSnapshot, LayoutProvider, StaticLayout
from .router import ConnectorRender, ConnectorRouter, ConnectorSpec, route_connector
from .highlight import HighlightPropagator
from .camera import CameraPose, CameraStateMachine, Interpolation
from .persistence import PersistedState, from_query, to_query
from .widget import NAVIGATION_CHANGE, NavigationChange, NavItem, SceneWidget
from .scroll_sync import ScrollSync
from .compiler import SceneDocument, compile_from_dict, compile_from_file, compile_from_yaml
