"""Fold-based visibility and the renderer input contract."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from mindmapper.graph import Graph, Edge
from mindmapper.model import Camera, Node


def is_visible(graph: Graph, node_id: int) -> bool:
    """A node is hidden when any ancestor is folded.

    A folded node itself stays visible. Recomputed on every call because
    folding, reparenting and deletion all change ancestor chains.
    """
    if node_id not in graph:
        return False
    visited = {node_id}
    current = graph.parent_of(node_id)
    while current is not None and current not in visited:
        parent = graph.get(current)
        if parent is None:
            break
        if parent.folded:
            return False
        visited.add(current)
        current = graph.parent_of(current)
    return True


def visible_nodes(graph: Graph) -> List[Node]:
    return [node for node in graph.nodes if is_visible(graph, node.id)]


def visible_edges(graph: Graph) -> List[Edge]:
    return [
        (parent_id, child_id) for (parent_id, child_id) in graph.edges
        if is_visible(graph, parent_id) and is_visible(graph, child_id)
    ]


@dataclass(frozen=True)
class RenderList:
    """Everything a renderer needs for one frame. Read-only by contract."""
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    camera: Camera
    background: str
    selected_id: Optional[int] = None
    editing: bool = False
    folded_with_children: frozenset = frozenset()


def build_render_list(graph: Graph, camera: Camera, background: str,
                      selected_id: Optional[int] = None,
                      editing: bool = False) -> RenderList:
    nodes = tuple(visible_nodes(graph))
    folded = frozenset(
        node.id for node in nodes if node.folded and graph.has_children(node.id)
    )
    return RenderList(
        nodes=nodes,
        edges=tuple(visible_edges(graph)),
        camera=Camera(camera.x, camera.y, camera.zoom),
        background=background,
        selected_id=selected_id,
        editing=editing,
        folded_with_children=folded,
    )
