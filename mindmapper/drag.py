"""Rigid subtree dragging, drop-target detection and reparenting."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from mindmapper.geometry import contains_point
from mindmapper.graph import Graph, GraphError
from mindmapper.model import Node, NodeKind, Shape
from mindmapper.visibility import is_visible


logger = logging.getLogger(__name__)


def hit_test(graph: Graph, x: float, y: float,
             exclude: Optional[int] = None) -> Optional[Node]:
    """Find the topmost visible node containing the point."""
    for node in reversed(graph.nodes):
        if node.id == exclude:
            continue
        if not is_visible(graph, node.id):
            continue
        if contains_point(node, x, y):
            return node
    return None


def propagate_color(graph: Graph, node_id: int, color: str):
    """Colour a node and its descendants.

    Annotation children keep their own colour, and so does everything
    below them.
    """
    graph.node(node_id).color = color
    queue = deque([node_id])
    visited = {node_id}
    while queue:
        current = queue.popleft()
        for child_id in graph.children_of(current):
            child = graph.get(child_id)
            if child is None or child_id in visited or child.is_annotation:
                continue
            visited.add(child_id)
            child.color = color
            queue.append(child_id)


@dataclass
class DropResult:
    """Outcome of a finished drag gesture."""
    moved: bool = False
    new_parent_id: Optional[int] = None
    mirrored: bool = False

    @property
    def changed(self) -> bool:
        return self.moved or self.new_parent_id is not None or self.mirrored


class DragGesture:
    """State held from pointer-down to pointer-up on a node.

    Descendant offsets are captured once at the start, so the subtree moves
    as a rigid body and never re-lays itself out mid-drag.
    """

    def __init__(self, graph: Graph, node_id: int):
        self.graph = graph
        self.node_id = node_id
        node = graph.node(node_id)
        self.start_x = node.x
        self.start_y = node.y
        self.offsets: Dict[int, Tuple[float, float]] = {}
        for descendant_id in graph.descendants_of(node_id):
            descendant = graph.node(descendant_id)
            self.offsets[descendant_id] = (descendant.x - node.x, descendant.y - node.y)

    @property
    def node(self) -> Optional[Node]:
        return self.graph.get(self.node_id)

    def update(self, x: float, y: float):
        node = self.node
        if node is None:
            return
        node.x = x
        node.y = y
        for descendant_id, (dx, dy) in self.offsets.items():
            descendant = self.graph.get(descendant_id)
            if descendant is not None:
                descendant.x = x + dx
                descendant.y = y + dy

    def finish(self, x: float, y: float) -> DropResult:
        """Drop the node at (x, y), reparenting onto a valid target under it."""
        node = self.node
        if node is None:
            return DropResult()
        self.update(x, y)
        result = DropResult(moved=(node.x, node.y) != (self.start_x, self.start_y))

        target = hit_test(self.graph, x, y, exclude=self.node_id)
        if target is not None and self._can_drop_on(target):
            try:
                # Dropping on the current parent keeps the edge and its sibling order
                if self.graph.parent_of(self.node_id) != target.id:
                    self.graph.reparent(self.node_id, target.id)
            except GraphError as exc:
                logger.debug("Drop rejected: %s", exc)
            else:
                result.new_parent_id = target.id
                if not node.is_annotation:
                    node.kind = NodeKind.CHILD
                    node.shape = Shape.RECTANGLE
                    propagate_color(self.graph, self.node_id, target.color)

        if self.offsets:
            result.mirrored = self._mirror_if_side_changed()
        return result

    def _can_drop_on(self, target: Node) -> bool:
        if target.is_annotation:
            return False
        return not self.graph.is_descendant(self.node_id, target.id)

    def _mirror_if_side_changed(self) -> bool:
        """Flip the subtree horizontally when the node crossed its parent."""
        parent = self.graph.get(self.graph.parent_of(self.node_id))
        if parent is None:
            return False
        node = self.node
        was_right = self.start_x >= parent.x
        is_right = node.x >= parent.x
        if was_right == is_right:
            return False
        for descendant_id in self.graph.descendants_of(self.node_id):
            descendant = self.graph.node(descendant_id)
            descendant.x = node.x - (descendant.x - node.x)
        return True
