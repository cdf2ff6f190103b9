"""Node/edge store enforcing the forest invariant."""

import itertools
import logging
from collections import deque
from typing import Dict, Iterator, List, Optional, Set, Tuple

from mindmapper.model import Node, NodeKind, DEFAULT_SHAPES, DEFAULT_COLORS


logger = logging.getLogger(__name__)

Edge = Tuple[int, int]  # (parent_id, child_id)


class GraphError(Exception):
    """Base class for rejected graph mutations."""


class CycleViolation(GraphError):
    """The edge would make a node its own ancestor."""


class DuplicateParent(GraphError):
    """The child already has an incoming edge."""


class UnknownNode(GraphError):
    """A referenced node id is not in the graph."""


class Graph:
    """Nodes plus parent -> child edges forming a forest.

    Nodes keep insertion order, which is also the draw order (last is
    topmost). Edges are stored as pairs of stable node ids.
    """

    def __init__(self):
        self._nodes: Dict[int, Node] = {}
        self._edges: List[Edge] = []
        self._parent: Dict[int, int] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    def get(self, node_id: Optional[int]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def node(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownNode(f"No node with id {node_id}") from None

    # ==================== Mutation ====================

    def create_node(self, kind: NodeKind = NodeKind.CHILD, **attrs) -> Node:
        """Allocate a node. No edge is created."""
        attrs.setdefault("shape", DEFAULT_SHAPES[kind])
        attrs.setdefault("color", DEFAULT_COLORS[kind])
        node = Node(id=next(self._ids), kind=kind, **attrs)
        self._nodes[node.id] = node
        return node

    def create_edge(self, parent_id: int, child_id: int):
        """Add a parent -> child edge.

        Raises DuplicateParent if the child already has a parent (the old edge
        is not replaced) and CycleViolation for self-edges or edges from a
        descendant of the child.
        """
        self._check_edge(parent_id, child_id)
        if child_id in self._parent:
            raise DuplicateParent(
                f"Node {child_id} already has parent {self._parent[child_id]}"
            )
        self._add_edge(parent_id, child_id)

    def detach(self, child_id: int) -> Optional[int]:
        """Remove the incoming edge of a node, returning the old parent."""
        parent_id = self._parent.pop(child_id, None)
        if parent_id is not None:
            self._edges.remove((parent_id, child_id))
        return parent_id

    def reparent(self, child_id: int, new_parent_id: int):
        """Replace the incoming edge of ``child_id``.

        Validation happens before the old edge is touched, so a rejected
        reparent leaves the graph unchanged.
        """
        self._check_edge(new_parent_id, child_id)
        self.detach(child_id)
        self._add_edge(new_parent_id, child_id)

    def delete_subtree(self, root_id: int) -> Set[int]:
        """Remove a node, all its descendants and every edge touching them."""
        self.node(root_id)
        doomed = {root_id} | self.descendants_of(root_id)
        missing = [node_id for node_id in doomed if node_id not in self._nodes]
        if missing:
            raise GraphError(f"Edges reference missing nodes {sorted(missing)}")

        for node_id in doomed:
            del self._nodes[node_id]
            self._parent.pop(node_id, None)
        self._edges = [
            (p, c) for (p, c) in self._edges if p not in doomed and c not in doomed
        ]
        logger.debug("Deleted subtree of %s (%d nodes)", root_id, len(doomed))
        return doomed

    def _check_edge(self, parent_id: int, child_id: int):
        self.node(parent_id)
        self.node(child_id)
        if parent_id == child_id:
            raise CycleViolation(f"Node {child_id} cannot be its own parent")
        if self.is_descendant(child_id, parent_id):
            raise CycleViolation(
                f"Node {parent_id} is a descendant of {child_id}"
            )

    def _add_edge(self, parent_id: int, child_id: int):
        self._edges.append((parent_id, child_id))
        self._parent[child_id] = parent_id

    # ==================== Traversal ====================

    def parent_of(self, node_id: int) -> Optional[int]:
        return self._parent.get(node_id)

    def children_of(self, node_id: int) -> List[int]:
        """Children in edge insertion order."""
        return [c for (p, c) in self._edges if p == node_id]

    def has_children(self, node_id: int) -> bool:
        return any(p == node_id for (p, _) in self._edges)

    def descendants_of(self, node_id: int) -> Set[int]:
        """All transitive children, breadth first. Excludes the node itself."""
        visited = {node_id}
        found: Set[int] = set()
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for child in self.children_of(current):
                if child not in visited:
                    visited.add(child)
                    found.add(child)
                    queue.append(child)
        return found

    def is_descendant(self, ancestor_id: int, node_id: int) -> bool:
        """True if ``node_id`` is reachable from ``ancestor_id`` via child edges."""
        return node_id in self.descendants_of(ancestor_id)

    def roots(self) -> List[int]:
        return [node_id for node_id in self._nodes if node_id not in self._parent]

    # ==================== Snapshots ====================

    def snapshot(self) -> dict:
        """Structural copy of nodes and edges, ids preserved, bitmaps dropped."""
        return {
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [list(edge) for edge in self._edges],
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> "Graph":
        graph = cls()
        for node_data in data.get("nodes", []):
            node = Node.from_dict(node_data)
            graph._nodes[node.id] = node
        for parent_id, child_id in data.get("edges", []):
            graph.create_edge(parent_id, child_id)
        next_id = max(graph._nodes, default=0) + 1
        graph._ids = itertools.count(next_id)
        return graph
