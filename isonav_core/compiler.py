"""
YAML scene compiler for isonav widgets.

This module compiles a declarative scene description into a
`SceneDocument`: the scene tree, its bookmarks, its connectors, the flat
layout rectangles and the widget configuration.

YAML schema (minimal):

config:                      # optional WidgetConfig overrides
  navigation_duration_ms: 800
scene:
  - id: app
    kind: scene              # scene | top | front | ... | face | element
    section: intro           # optional content section
    groups: [web]            # highlight group memberships
    activate: [web]          # groups highlighted when this bookmark settles
    rect: [0, 0, 400, 300]   # flat layout x, y, width, height
    colors: {background: "#ffffff", border: "#333333"}
    nav: {xyz: "30.00.-40", zoom: "1.5"}   # makes the node a bookmark
    children: [...]
connectors:
  - ids: "api,db"            # or from: api / to: db
    positions: "left,bottom" # or fromPoint / toPoint
    vertices: "40,30"        # or edgeAt; ",60" and "50," give one offset
    endStyles: "none,arrow"  # or startLine / endLine
    groups: "db"             # or keys / key
    lineStyle: dashed
    animated: true

Notes:
- Bookmarks are numbered in pre-order document order. A node with
  ``nav: {}`` (or ``nav: true``) keeps rotation and zoom and auto-centers.
- ``xyz``, ``zoom`` and ``pan`` accept ``keep`` and ``default``.
- A malformed bookmark or connector is skipped with a warning; the rest of
  the scene still compiles and bookmark indices stay contiguous.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .config import WidgetConfig
from .enums import AnchorSide, DecorationKind, LineStyle, MeasureMode, PoseSentinel
from .errors import MalformedBookmarkSpec, MalformedConnectorSpec
from .layout import StaticLayout
from .router import ConnectorSpec
from .scene import NavigationPoint, SceneNode, SceneTree

logger = logging.getLogger(__name__)


@dataclass
class SceneDocument:
    """Everything a widget needs, compiled from one scene description."""

    tree: SceneTree
    bookmarks: List[NavigationPoint] = field(default_factory=list)
    connectors: List[ConnectorSpec] = field(default_factory=list)
    layout: StaticLayout = field(default_factory=StaticLayout)
    config: WidgetConfig = field(default_factory=WidgetConfig)

    def build_widget(self, measure_mode: MeasureMode = MeasureMode.FLAT):
        from .widget import SceneWidget

        return SceneWidget(
            self.tree,
            self.bookmarks,
            self.connectors,
            layout=self.layout,
            config=self.config,
            measure_mode=measure_mode,
        )


# ----- value parsers -----
def _sentinel(value: Any) -> Optional[PoseSentinel]:
    if isinstance(value, PoseSentinel):
        return value
    if isinstance(value, str) and value.strip().lower() in ("keep", "default"):
        return PoseSentinel(value.strip().lower())
    return None


def _components(value: Any, sep: str, error: type, what: str) -> List[Any]:
    if isinstance(value, str):
        return value.split(sep)
    try:
        return list(value)
    except TypeError:
        raise error(f"{what} {value!r} must be a {sep!r}-separated string or a list") from None


def parse_xyz(value: Any):
    """
    Parse a rotation such as ``"30.00.-40"`` or ``[30, 0, -40]``.

    Returns:
        ``(x, y, z)`` degrees, a `PoseSentinel`, or None when ``value`` is empty

    Raises:
        MalformedBookmarkSpec: Wrong number of components or a non-number
    """
    if value is None or value == "":
        return None
    sentinel = _sentinel(value)
    if sentinel is not None:
        return sentinel
    parts = _components(value, ".", MalformedBookmarkSpec, "rotation")
    if len(parts) != 3:
        raise MalformedBookmarkSpec(f"rotation {value!r} must have three components")
    try:
        x, y, z = (float(p) for p in parts)
    except (TypeError, ValueError):
        raise MalformedBookmarkSpec(f"rotation {value!r} is not numeric") from None
    return (x, y, z)


def parse_zoom(value: Any):
    if value is None or value == "":
        return None
    sentinel = _sentinel(value)
    if sentinel is not None:
        return sentinel
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedBookmarkSpec(f"zoom {value!r} is not numeric") from None


def parse_pan(value: Any):
    """Parse a pan such as ``"100,-50"`` or ``[100, -50]``; None means auto-center."""
    if value is None or value == "":
        return None
    sentinel = _sentinel(value)
    if sentinel is not None:
        return sentinel
    parts = _components(value, ",", MalformedBookmarkSpec, "pan")
    if len(parts) != 2:
        raise MalformedBookmarkSpec(f"pan {value!r} must have two components")
    try:
        x, y = (float(p) for p in parts)
    except (TypeError, ValueError):
        raise MalformedBookmarkSpec(f"pan {value!r} is not numeric") from None
    return (x, y)


def parse_vertices(value: Any) -> Tuple[Optional[float], Optional[float]]:
    """Parse waypoint offsets ``"50,40"``, ``",60"`` or ``"50,"``."""
    if value is None or value == "":
        return (None, None)
    parts = _components(value, ",", MalformedConnectorSpec, "waypoint offsets")
    parts = (parts + [None, None])[:2]
    offsets = []
    for part in parts:
        if part is None or (isinstance(part, str) and not part.strip()):
            offsets.append(None)
            continue
        try:
            offsets.append(abs(float(part)))
        except (TypeError, ValueError):
            raise MalformedConnectorSpec(f"waypoint offset {part!r} is not numeric") from None
    return offsets[0], offsets[1]


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def _pair(value: Any) -> Tuple[Optional[str], Optional[str]]:
    items = _components(value or [], ",", MalformedConnectorSpec, "pair")
    items = [str(i).strip() if i is not None else "" for i in items] + ["", ""]
    return items[0] or None, items[1] or None


# ----- scene tree -----
def _build_node(spec: Dict[str, Any], layout: StaticLayout) -> SceneNode:
    node = SceneNode(
        id=spec.get("id"),
        kind=spec.get("kind", "element"),
        group_memberships=_string_list(spec.get("groups")),
        activate_groups=_string_list(spec.get("activate")),
        section_id=spec.get("section"),
        colors=dict(spec.get("colors") or {}),
        focus_center=bool(spec.get("focus_center", False)),
        meta=dict(spec.get("meta") or {}),
    )
    if node.id is not None:
        node.id = str(node.id)
    nav = spec.get("nav")
    if nav is not None and nav is not False:
        node.meta["nav"] = nav if isinstance(nav, dict) else {}

    rect = spec.get("rect")
    if rect is not None:
        if node.id is None:
            logger.warning("ignoring rect on a node without id")
        else:
            try:
                x, y, w, h = (float(v) for v in rect)
            except (TypeError, ValueError):
                logger.warning("ignoring malformed rect %r on %s", rect, node.id)
            else:
                layout.set_xywh(node.id, x, y, w, h)

    for child in spec.get("children", []) or []:
        node.add_child(_build_node(child, layout))
    return node


def _bookmark(node: SceneNode, tree: SceneTree, index: int) -> NavigationPoint:
    nav = node.meta.get("nav") or {}
    return NavigationPoint(
        index=index,
        element_id=node.id,
        section_id=tree.find_section(node),
        rotation=parse_xyz(nav.get("xyz")),
        zoom=parse_zoom(nav.get("zoom")),
        pan=parse_pan(nav.get("pan")),
        activate_groups=tuple(tree.inherited_activate_groups(node)),
    )


def collect_bookmarks(tree: SceneTree) -> List[NavigationPoint]:
    """Bookmarks of every node carrying ``nav`` data, in document order."""
    bookmarks: List[NavigationPoint] = []
    for node in tree.walk():
        if "nav" not in node.meta:
            continue
        try:
            bookmarks.append(_bookmark(node, tree, len(bookmarks)))
        except MalformedBookmarkSpec as exc:
            logger.warning("skipping bookmark on %s: %s", node.label(), exc)
    return bookmarks


# ----- connectors -----
def parse_connector(spec: Dict[str, Any], config: WidgetConfig) -> ConnectorSpec:
    """
    Parse one connector declaration (compact or legacy keys).

    Raises:
        MalformedConnectorSpec: Missing endpoint ids or bad offsets
    """
    if "ids" in spec:
        from_id, to_id = _pair(spec["ids"])
    else:
        from_id, to_id = spec.get("from"), spec.get("to")
    if not from_id or not to_id:
        raise MalformedConnectorSpec(f"connector {spec!r} needs two element ids")

    if "positions" in spec:
        from_anchor, to_anchor = _pair(spec["positions"])
    else:
        from_anchor, to_anchor = spec.get("fromPoint"), spec.get("toPoint")

    offsets = parse_vertices(spec.get("vertices", spec.get("edgeAt")))

    if "endStyles" in spec:
        start, end = _pair(spec["endStyles"])
    else:
        start = spec.get("startLine") or (
            "circle" if spec.get("showStartCircle") else
            (None if spec.get("showArrow") is False else config.default_start_decoration)
        )
        end = spec.get("endLine") or (
            "circle" if spec.get("showEndCircle") else
            (None if spec.get("showArrow") is False else config.default_end_decoration)
        )

    groups = spec.get("groups", spec.get("keys"))
    if groups is None and spec.get("key"):
        groups = [spec["key"]]

    animation = spec.get("animationStyle", spec.get("lineAnimated"))
    if animation is None:
        animated = bool(spec.get("animated", config.default_animated))
    else:
        animated = animation is True or str(animation).lower() == "circle"

    return ConnectorSpec(
        from_id=str(from_id),
        to_id=str(to_id),
        from_anchor=AnchorSide.parse(from_anchor),
        to_anchor=AnchorSide.parse(to_anchor),
        color=spec.get("color"),
        waypoint_offsets=offsets,
        line_style=LineStyle.parse(spec.get("lineStyle", config.default_line_style)),
        start_decoration=DecorationKind.parse(start),
        end_decoration=DecorationKind.parse(end),
        animated=animated,
        groups=tuple(_string_list(groups)),
        from_center=bool(spec.get("fromCenter", False)),
        to_center=bool(spec.get("toCenter", False)),
    )


def compile_from_dict(spec: Dict[str, Any]) -> SceneDocument:
    """
    Compile a YAML-parsed dictionary into a `SceneDocument`.

    Args:
        spec: Parsed YAML dictionary

    Returns:
        SceneDocument: The compiled scene
    """
    config = WidgetConfig.from_dict(spec.get("config"))
    layout = StaticLayout()
    roots = spec.get("scene", []) or []
    if isinstance(roots, dict):
        roots = [roots]
    tree = SceneTree([_build_node(r, layout) for r in roots])

    connectors: List[ConnectorSpec] = []
    for raw in spec.get("connectors", []) or []:
        try:
            connectors.append(parse_connector(raw, config))
        except MalformedConnectorSpec as exc:
            logger.warning("skipping connector: %s", exc)

    bookmarks = collect_bookmarks(tree)
    logger.debug(
        "compiled scene: %d nodes, %d bookmarks, %d connectors",
        len(tree),
        len(bookmarks),
        len(connectors),
    )
    return SceneDocument(tree, bookmarks, connectors, layout, config)


def compile_from_yaml(yaml_text: str) -> SceneDocument:
    """Compile from YAML text into a `SceneDocument`."""
    data = yaml.safe_load(yaml_text) or {}
    return compile_from_dict(data)


def compile_from_file(path: str) -> SceneDocument:
    """Compile from a YAML file path into a `SceneDocument`."""
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    return compile_from_yaml(txt)
