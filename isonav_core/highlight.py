"""
Hierarchical highlight/dim propagation over the scene tree.

Every call to `HighlightPropagator.apply` leaves each node in exactly one of
three rendered states:

- HIGHLIGHTED: the node's own group memberships intersect the request
- INHERITED: full strength without glowing (below a matched node, above a
  matched node, or anywhere while no highlight is active)
- DIMMED: neither the node nor anything in its subtree is relevant

Dimming is a reversible colour transform: a node's original colours are
captured the first time it is dimmed and an alpha-reduced override is
published through its `RenderHint`. Un-dimming drops the override and the
cached originals, so the painted colours return bit-for-bit.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .colors import with_alpha
from .config import WidgetConfig
from .enums import RenderState
from .router import ConnectorSpec, is_connector_active
from .scene import SceneNode, SceneTree

logger = logging.getLogger(__name__)


def normalize_groups(groups: Iterable[str]) -> Tuple[str, ...]:
    """Strip, drop empties and de-duplicate while keeping request order."""
    seen: Dict[str, None] = {}
    for group in groups:
        if group is None:
            continue
        key = str(group).strip()
        if key:
            seen.setdefault(key, None)
    return tuple(seen)


class HighlightPropagator:
    """
    Applies and reverses group highlighting on a `SceneTree`.

    The propagator only reads group memberships and writes each node's
    `RenderHint`; it never touches the node's authored colours.

    Args:
        tree: Scene tree to classify
        config: Dim alphas (defaults when omitted)
    """

    def __init__(self, tree: SceneTree, config: Optional[WidgetConfig] = None):
        self.tree = tree
        self.config = config or WidgetConfig()
        self.active_groups: Optional[Tuple[str, ...]] = None
        self._originals: Dict[SceneNode, Dict[str, str]] = {}

    @property
    def is_active(self) -> bool:
        return self.active_groups is not None

    def apply(self, groups: Optional[Iterable[str]]) -> Set[str]:
        """
        Highlight ``groups`` (None or an empty request clears).

        The tree is fully cleared first and then reclassified from scratch,
        so the result never depends on the previous request.

        Returns:
            Ids of the nodes whose own memberships matched
        """
        if groups is None:
            self.clear()
            return set()
        requested = normalize_groups(groups)
        if not requested:
            self.clear()
            return set()

        self.clear()
        self.active_groups = requested
        wanted = set(requested)
        matched: Set[str] = set()
        for root in self.tree.roots:
            self._classify(root, False, wanted, matched)

        logger.debug(
            "highlight %s: %d matched, %d dimmed",
            ",".join(requested),
            len(matched),
            len(self._originals),
        )
        return matched

    def _classify(
        self,
        node: SceneNode,
        parent_highlighted: bool,
        wanted: Set[str],
        matched: Set[str],
    ) -> Tuple[bool, bool]:
        """Returns ``(highlighted, any_subtree_match)`` for ``node``."""
        is_match = not wanted.isdisjoint(node.group_memberships)
        highlighted = is_match or parent_highlighted
        subtree_match = is_match
        for child in node.children:
            _, child_match = self._classify(child, highlighted, wanted, matched)
            subtree_match = subtree_match or child_match

        node.hint.matched = is_match
        node.hint.highlighted = highlighted
        if is_match and node.id:
            matched.add(node.id)
        if not highlighted and not subtree_match:
            self._dim(node)
        return highlighted, subtree_match

    def _dim(self, node: SceneNode) -> None:
        if node not in self._originals:
            self._originals[node] = dict(node.colors)
        originals = self._originals[node]
        alphas = self.config.dim_alphas()
        override = {}
        for channel, value in originals.items():
            alpha = alphas.get(channel)
            if alpha is None:
                continue
            dimmed = with_alpha(value, alpha)
            if dimmed is not None:
                override[channel] = dimmed
        node.hint.dimmed = True
        node.hint.color_override = override

    def _undim(self, node: SceneNode) -> None:
        node.hint.dimmed = False
        node.hint.color_override = {}
        self._originals.pop(node, None)

    def clear(self) -> None:
        """Restore every dimmed node and drop highlight flags; a no-op when idle."""
        if self.active_groups is None and not self._originals:
            return
        for node in self.tree.walk():
            if node.hint.dimmed:
                self._undim(node)
            node.hint.highlighted = False
            node.hint.matched = False
        # nodes detached from the tree since they were dimmed
        for node in list(self._originals):
            self._undim(node)
        self.active_groups = None
        logger.debug("highlight cleared")

    def connector_active(self, spec: ConnectorSpec) -> bool:
        return is_connector_active(spec.groups, self.active_groups)

    def dimmed_ids(self) -> Set[str]:
        return {n.id for n in self.tree.walk() if n.hint.dimmed and n.id}

    def highlighted_ids(self) -> Set[str]:
        return {n.id for n in self.tree.walk() if n.hint.matched and n.id}

    def states(self) -> Dict[str, RenderState]:
        """Rendered state of every node with an id."""
        return {n.id: n.hint.state for n in self.tree.walk() if n.id}

    def dimmed_nodes(self) -> List[SceneNode]:
        return [n for n in self.tree.walk() if n.hint.dimmed]
