"""Scene hierarchy reconstruction.

Transforms are copied into an arena and addressed by integer handles once
parsing is done; parent -> child edges live in a NetworkX DiGraph over those
handles. Roots are transforms whose parent is the '0' sentinel.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

import networkx as nx

from .errors import HierarchyCycleError
from .scene_parser import SceneNode, TransformRef
from ..utils.logger import get_logger

logger = get_logger("analyzer.hierarchy")

INDENT = "-"


def anchor_sort_key(anchor: str):
    """Numeric anchors sort by value, anything else after them lexically."""
    try:
        return (0, int(anchor), "")
    except ValueError:
        return (1, 0, anchor)


@dataclass
class HierarchyDump:
    """Rendered hierarchy plus the structural problems met on the way."""
    lines: List[str] = field(default_factory=list)
    dangling_owners: List[str] = field(default_factory=list)  # Transform anchors whose GameObject is missing
    cycles: List[List[str]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(line + "\n" for line in self.lines)


class HierarchyBuilder:
    """Build and render the transform forest of one scene."""

    def __init__(self, nodes: Mapping[str, SceneNode], transforms: Mapping[str, TransformRef],
                 strict_cycles: bool = False):
        """
        Args:
            nodes: GameObjects keyed by anchor
            transforms: Transforms keyed by anchor
            strict_cycles: Raise HierarchyCycleError instead of recording the cycle
        """
        self.nodes = nodes
        self.strict_cycles = strict_cycles

        self.arena: List[TransformRef] = sorted(
            transforms.values(), key=lambda t: anchor_sort_key(t.own_anchor)
        )
        self.handles: Dict[str, int] = {t.own_anchor: i for i, t in enumerate(self.arena)}
        self.graph = self._build_graph()

    def _build_graph(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        graph.add_nodes_from(range(len(self.arena)))
        for handle, transform in enumerate(self.arena):
            if transform.is_root:
                continue
            parent = self.handles.get(transform.parent_anchor)
            if parent is not None:
                graph.add_edge(parent, handle)
        return graph

    def roots(self) -> List[int]:
        return [h for h, t in enumerate(self.arena) if t.is_root]

    def children(self, handle: int) -> List[int]:
        # Arena order is anchor order, so sorting handles sorts siblings by anchor
        return sorted(self.graph.successors(handle))

    def build(self) -> HierarchyDump:
        """Depth-first render of every root.

        Each reachable GameObject becomes one line prefixed by one dash per
        level. A transform whose GameObject is unknown ends its branch.

        Raises:
            HierarchyCycleError: On a cycle when strict_cycles is set
        """
        dump = HierarchyDump(cycles=self.find_cycles())
        for cycle in dump.cycles:
            if self.strict_cycles:
                raise HierarchyCycleError(cycle)
            logger.warning("Transform cycle %s is unreachable from any root", " -> ".join(cycle))

        for root in self.roots():
            self._visit(root, 0, dump)
        return dump

    def find_cycles(self) -> List[List[str]]:
        """Anchor lists of every parent loop, each rotated to start at its lowest anchor.

        Every transform has a single parent, so a loop can never hang below a
        root; its members are simply never rendered.
        """
        cycles = []
        for cycle in nx.simple_cycles(self.graph):
            start = cycle.index(min(cycle))
            rotated = cycle[start:] + cycle[:start]
            cycles.append([self.arena[h].own_anchor for h in rotated])
        return sorted(cycles, key=lambda c: anchor_sort_key(c[0]))

    def _visit(self, handle: int, level: int, dump: HierarchyDump):
        transform = self.arena[handle]
        node = self.nodes.get(transform.owner_anchor)
        if node is None:
            dump.dangling_owners.append(transform.own_anchor)
            return

        dump.lines.append(f"{INDENT * level}{node.name}")

        for child in self.children(handle):
            self._visit(child, level + 1, dump)


def build_hierarchy(nodes: Mapping[str, SceneNode], transforms: Mapping[str, TransformRef]) -> str:
    """Render the indented hierarchy text for one scene."""
    return HierarchyBuilder(nodes, transforms).build().text
