"""
Scene data structures for isonav.

This module defines the scene tree owned by the scene builder:
- SceneNode: A visual element with group memberships, colours and children
- RenderHint: The derived, reversible highlight projection of a node
- SceneTree: Container for root nodes with lookup and traversal helpers
- NavigationPoint: A bookmarked viewpoint created from scene annotations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .enums import PoseSentinel, RenderState

try:
    import networkx as nx

    HAS_NETWORKX = True
except ImportError:
    HAS_NETWORKX = False

logger = logging.getLogger(__name__)

OVERVIEW_INDEX = -1
"""Reserved bookmark index meaning "overview / default pose"."""

FACE_KINDS = ("top", "bottom", "front", "back", "left", "right")
"""Kinds of the six directional faces of a box-shaped scene."""


@dataclass
class RenderHint:
    """
    Highlight projection of one node, written only by the highlight propagator.

    Attributes:
        highlighted: The node matched, or sits below a node that matched
        matched: The node's own group memberships matched (it glows)
        dimmed: Neither the node nor its subtree is relevant to the active groups
        color_override: Reduced-alpha colours replacing the originals while dimmed
    """

    highlighted: bool = False
    matched: bool = False
    dimmed: bool = False
    color_override: Dict[str, str] = field(default_factory=dict)

    @property
    def state(self) -> RenderState:
        if self.dimmed:
            return RenderState.DIMMED
        if self.matched:
            return RenderState.HIGHLIGHTED
        return RenderState.INHERITED

    def reset(self) -> None:
        self.highlighted = False
        self.matched = False
        self.dimmed = False
        self.color_override = {}


@dataclass(eq=False)
class SceneNode:
    """
    A visual element of the scene tree.

    Nodes compare by identity so that anonymous nodes (no id) can be used as
    dictionary keys.

    Attributes:
        id: Optional unique identifier (used by connectors and bookmarks)
        kind: "scene" for a box/flat scene, a face kind ("top", "front"...)
            or "element" for anything else
        group_memberships: Highlight groups this node belongs to
        activate_groups: Groups a bookmark on this node highlights on arrival
        section_id: Content section linked to this node (scroll sync, hash)
        colors: Authored colours by channel (background, border, text, stroke, fill)
        focus_center: Clicking the node pans it to the viewport center
        meta: Additional free-form metadata
        children: Child nodes
        hint: Derived highlight projection
    """

    id: Optional[str] = None
    kind: str = "element"
    group_memberships: List[str] = field(default_factory=list)
    activate_groups: List[str] = field(default_factory=list)
    section_id: Optional[str] = None
    colors: Dict[str, str] = field(default_factory=dict)
    focus_center: bool = False
    meta: dict = field(default_factory=dict)
    children: List["SceneNode"] = field(default_factory=list)
    hint: RenderHint = field(default_factory=RenderHint)
    parent: Optional["SceneNode"] = field(default=None, repr=False)

    def add_child(self, child: "SceneNode") -> "SceneNode":
        child.parent = self
        self.children.append(child)
        return child

    def effective_colors(self) -> Dict[str, str]:
        """Colours the renderer should paint: originals overlaid by any dim override."""
        colors = dict(self.colors)
        colors.update(self.hint.color_override)
        return colors

    def label(self) -> str:
        return self.id or f"<{self.kind}>"


Rotation = Tuple[float, float, float]
Pan = Tuple[float, float]


@dataclass(frozen=True)
class NavigationPoint:
    """
    A bookmarked viewpoint.

    ``rotation``/``zoom`` set to None keep the current value; ``pan`` set to
    None requests auto-centering on ``element_id``. Any component may also be
    a `PoseSentinel`.

    Attributes:
        index: Position in the bookmark list (-1 is reserved for the overview)
        element_id: Scene element the bookmark belongs to
        section_id: Linked content section
        rotation: Literal ``(x, y, z)`` degrees or a sentinel
        zoom: Literal zoom or a sentinel
        pan: Literal ``(x, y)`` scene pixels or a sentinel
        activate_groups: Groups highlighted once the camera settles
    """

    index: int
    element_id: Optional[str] = None
    section_id: Optional[str] = None
    rotation: Union[Rotation, PoseSentinel, None] = None
    zoom: Union[float, PoseSentinel, None] = None
    pan: Union[Pan, PoseSentinel, None] = None
    activate_groups: Tuple[str, ...] = ()

    @property
    def key(self) -> Optional[str]:
        """Public key of the bookmark: its section, else its element id."""
        return self.section_id or self.element_id


class SceneTree:
    """
    Container for the scene's root nodes.

    Maintains an id index and parent links; offers pre-order traversal,
    ancestor walks and a NetworkX export.
    """

    def __init__(self, roots: Optional[List[SceneNode]] = None):
        self.roots: List[SceneNode] = []
        self.index: Dict[str, SceneNode] = {}
        for root in roots or []:
            self.add_root(root)

    def add_root(self, node: SceneNode) -> SceneNode:
        node.parent = None
        self.roots.append(node)
        self._link(node)
        return node

    def _link(self, node: SceneNode) -> None:
        if node.id:
            if node.id in self.index and self.index[node.id] is not node:
                logger.warning("duplicate scene id %r; the later node wins lookups", node.id)
            self.index[node.id] = node
        for child in node.children:
            child.parent = node
            self._link(child)

    def reindex(self) -> None:
        """Rebuild parent links and the id index after external edits."""
        self.index = {}
        for root in self.roots:
            root.parent = None
            self._link(root)

    def get(self, node_id: Optional[str]) -> Optional[SceneNode]:
        if not node_id:
            return None
        return self.index.get(node_id)

    def walk(self) -> Iterator[SceneNode]:
        """Pre-order traversal of every node (document order)."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def ancestors(self, node: SceneNode) -> Iterator[SceneNode]:
        current = node.parent
        while current is not None:
            yield current
            current = current.parent

    def closest(self, node: SceneNode, kind: str) -> Optional[SceneNode]:
        """The node itself or its nearest ancestor of the given kind."""
        if node.kind == kind:
            return node
        for ancestor in self.ancestors(node):
            if ancestor.kind == kind:
                return ancestor
        return None

    def inherited_activate_groups(self, node: SceneNode) -> List[str]:
        """Activate groups of the node, else of its nearest ancestor declaring some."""
        if node.activate_groups:
            return list(node.activate_groups)
        for ancestor in self.ancestors(node):
            if ancestor.activate_groups:
                return list(ancestor.activate_groups)
        return []

    def find_section(self, node: SceneNode) -> Optional[str]:
        """Section of the node, else of its enclosing scene."""
        if node.section_id:
            return node.section_id
        scene = self.closest(node, "scene")
        return scene.section_id if scene is not None else None

    def nodes_in_section(self, section_id: str) -> List[SceneNode]:
        return [n for n in self.walk() if n.section_id == section_id]

    def resolve_nav_target(self, node: SceneNode, target: str = "clicked") -> SceneNode:
        """
        Element that should carry the "selected" marker after navigating to ``node``.

        With ``target == "clicked"`` this is the node itself. Otherwise the
        direct child face of the enclosing scene whose kind equals ``target``.
        Faces without a direction (nested panels) look past their directional
        parent face to the scene that owns it. The result must live in the
        same scene as ``node``, otherwise the clicked node is returned.
        """
        if target == "clicked" or target not in FACE_KINDS:
            return node

        if node.kind == "scene":
            scene = node
        else:
            scene = None
            if node.kind == "face":
                # nested face: walk up to a directional face first
                for ancestor in self.ancestors(node):
                    if ancestor.kind in FACE_KINDS:
                        scene = self.closest(ancestor, "scene")
                        break
            if scene is None:
                scene = self.closest(node, "scene")

        if scene is None:
            return node
        for child in scene.children:
            if child.kind == target:
                if self.closest(node, "scene") is scene or node is scene:
                    return child
                return node
        return node

    # ----- export / validation -----
    def to_networkx(self) -> "nx.DiGraph":
        """
        Convert the scene tree to a NetworkX DiGraph (parent -> child edges).

        Anonymous nodes get synthetic ``kind#n`` identifiers.

        Raises:
            ImportError: If NetworkX is not available
        """
        if not HAS_NETWORKX:
            raise ImportError(
                "NetworkX is required for graph conversion. Install with: pip install networkx"
            )

        G = nx.DiGraph()
        names: Dict[SceneNode, str] = {}
        for n, node in enumerate(self.walk()):
            name = node.id or f"{node.kind}#{n}"
            names[node] = name
            attrs = {
                "kind": node.kind,
                "groups": ",".join(node.group_memberships),
                "activate": ",".join(node.activate_groups),
                "state": node.hint.state.name,
            }
            if node.section_id:
                attrs["section"] = node.section_id
            G.add_node(name, **attrs)
            if node.parent is not None:
                G.add_edge(names[node.parent], name)
        return G

    def export_graphml(self, filepath: str) -> None:
        """Export the scene tree to GraphML."""
        nx.write_graphml(self.to_networkx(), filepath)

    def validate(self) -> Dict[str, List[str]]:
        """
        Structural checks of the tree.

        Returns:
            Dictionary of issue lists by category (empty categories removed)
        """
        issues: Dict[str, List[str]] = {
            "duplicate_ids": [],
            "parent_links": [],
            "unknown_groups": [],
        }
        seen: Dict[str, int] = {}
        memberships = set()
        for node in self.walk():
            if node.id:
                seen[node.id] = seen.get(node.id, 0) + 1
            memberships.update(node.group_memberships)
            for child in node.children:
                if child.parent is not node:
                    issues["parent_links"].append(
                        f"Node '{child.label()}' is not linked to parent '{node.label()}'"
                    )
        for node_id, count in seen.items():
            if count > 1:
                issues["duplicate_ids"].append(f"Id '{node_id}' used by {count} nodes")
        for node in self.walk():
            for group in node.activate_groups:
                if group not in memberships:
                    issues["unknown_groups"].append(
                        f"Node '{node.label()}' activates group '{group}' that no node belongs to"
                    )
        return {k: v for k, v in issues.items() if v}
