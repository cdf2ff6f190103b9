"""Kind-specific sizing, hit-testing and placement."""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from mindmapper.model import Node, NodeKind, NODE_RADIUS


CHILD_OFFSET_X = NODE_RADIUS * 2.5
CHILD_OFFSET_Y = -NODE_RADIUS * 0.75
SIBLING_SPACING = NODE_RADIUS * 1.5
PLACEMENT_STEP = NODE_RADIUS * 1.5
PLACEMENT_MAX_ATTEMPTS = 100


@dataclass(frozen=True)
class Dimensions:
    """Footprint of a node centred on its position."""
    width: float
    height: float
    is_rect: bool
    radius: Optional[float] = None

    @property
    def bounding_radius(self) -> float:
        if self.radius is not None:
            return self.radius
        return max(self.width, self.height) / 2


# Footprint used for a child that has not been created yet
NEW_CHILD_DIMENSIONS = Dimensions(
    width=(NODE_RADIUS * 2) / 1.3,
    height=(NODE_RADIUS * 2) / 2,
    is_rect=True,
)


def _child_dimensions(node: Node) -> Dimensions:
    # Estimated text metrics; the renderer must size rectangles the same way
    scale = (node.radius or NODE_RADIUS) / NODE_RADIUS
    father_size = NODE_RADIUS * 2 * scale
    min_width = father_size / 1.3
    min_height = father_size / 2
    padding = 8 * scale
    char_width = 7 * scale

    width = max(len(node.text) * char_width + padding, min_width)
    line_height = 14 * scale
    lines = math.ceil(len(node.text) / (width / char_width))
    height = max(lines * line_height + padding, min_height)
    return Dimensions(width=width, height=height, is_rect=True)


def _round_dimensions(node: Node) -> Dimensions:
    radius = node.radius or NODE_RADIUS
    return Dimensions(width=radius * 2, height=radius * 2, is_rect=False, radius=radius)


def node_dimensions(node: Node) -> Dimensions:
    """Return the footprint of a node according to its kind."""
    if node.kind is NodeKind.CHILD:
        return _child_dimensions(node)
    return _round_dimensions(node)


def contains_point(node: Node, x: float, y: float) -> bool:
    """Check if a world-space point falls inside a node."""
    dims = node_dimensions(node)
    if dims.is_rect:
        return (abs(x - node.x) <= dims.width / 2 and
                abs(y - node.y) <= dims.height / 2)
    dx = x - node.x
    dy = y - node.y
    return dx * dx + dy * dy < dims.radius * dims.radius


def footprints_collide(x1: float, y1: float, a: Dimensions,
                       x2: float, y2: float, b: Dimensions) -> bool:
    """Overlap test between two footprints.

    Mixed circle/rectangle pairs are approximated as two circles.
    """
    if a.is_rect and b.is_rect:
        return (abs(x1 - x2) < (a.width + b.width) / 2 and
                abs(y1 - y2) < (a.height + b.height) / 2)
    distance = math.hypot(x1 - x2, y1 - y2)
    return distance < a.bounding_radius + b.bounding_radius


def collides_with_any(x: float, y: float, dims: Dimensions, nodes: Iterable[Node]) -> bool:
    for other in nodes:
        if footprints_collide(x, y, dims, other.x, other.y, node_dimensions(other)):
            return True
    return False


def find_free_position(x: float, y: float, nodes: Iterable[Node],
                       dims: Dimensions = NEW_CHILD_DIMENSIONS,
                       step: float = PLACEMENT_STEP,
                       max_attempts: int = PLACEMENT_MAX_ATTEMPTS) -> Tuple[float, float]:
    """Probe downwards from (x, y) until the footprint no longer overlaps.

    Gives up after ``max_attempts`` shifts and returns the last candidate, which
    may still overlap in a very dense area.
    """
    nodes = list(nodes)
    attempts = 0
    while collides_with_any(x, y, dims, nodes) and attempts < max_attempts:
        y += step
        attempts += 1
    return x, y
