"""Node and camera data types for Mind Mapper."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


NODE_RADIUS = 60  # Base unit for node sizes
MIN_NODE_RADIUS = 30
MAX_NODE_RADIUS = 120
RADIUS_STEP = 5

DEFAULT_FONT_SIZE = 16
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 72
FONT_SIZE_STEP = 2

MIN_IMAGE_SCALE = 0.1
MAX_IMAGE_SCALE = 3.0
IMAGE_SCALE_STEP = 0.1

NODE_COLOR = "#ffffff"
TEXT_COLOR = "#333333"
BACKGROUND_COLOR = "#ffffff"


class NodeKind(Enum):
    """Role of a node in the map."""
    FATHER = "father"
    CHILD = "child"
    TEXT = "text"  # Free annotation


class Shape(Enum):
    """Outline drawn around a node."""
    CIRCLE = "circle"
    RECTANGLE = "square"
    NONE = "none"


DEFAULT_SHAPES = {
    NodeKind.FATHER: Shape.CIRCLE,
    NodeKind.CHILD: Shape.RECTANGLE,
    NodeKind.TEXT: Shape.NONE,
}

DEFAULT_COLORS = {
    NodeKind.FATHER: NODE_COLOR,
    NodeKind.CHILD: NODE_COLOR,
    NodeKind.TEXT: TEXT_COLOR,
}

DEFAULT_TEXTS = {
    NodeKind.FATHER: "Father Node",
    NodeKind.CHILD: "Child Node",
    NodeKind.TEXT: "Text",
}


@dataclass
class Camera:
    """Pan offset and zoom, carried through snapshots untouched."""
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "zoom": self.zoom}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Camera":
        if not data:
            return cls()
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            zoom=float(data.get("zoom", 1.0)),
        )


@dataclass
class Node:
    """A visual vertex of the map.

    ``id`` is a stable handle allocated by the graph. It survives deletions
    of other nodes and undo/redo restores, so it is safe to hold across an
    asynchronous image decode.
    """
    id: int
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    kind: NodeKind = NodeKind.CHILD
    shape: Shape = Shape.RECTANGLE
    color: str = NODE_COLOR
    radius: float = NODE_RADIUS
    url: Optional[str] = None
    folded: bool = False
    image: Any = field(default=None, repr=False, compare=False)
    image_data_url: Optional[str] = field(default=None, repr=False)
    image_scale: float = 1.0
    font_size: float = DEFAULT_FONT_SIZE

    @property
    def is_annotation(self) -> bool:
        return self.kind is NodeKind.TEXT

    @property
    def default_text(self) -> str:
        return DEFAULT_TEXTS[self.kind]

    def to_dict(self) -> dict:
        """Serialisable form. The decoded image is never included."""
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "text": self.text,
            "kind": self.kind.value,
            "shape": self.shape.value,
            "color": self.color,
            "radius": self.radius,
            "url": self.url,
            "folded": self.folded,
            "image_data_url": self.image_data_url,
            "image_scale": self.image_scale,
            "font_size": self.font_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        return cls(
            id=data["id"],
            x=data["x"],
            y=data["y"],
            text=data["text"],
            kind=NodeKind(data["kind"]),
            shape=Shape(data["shape"]),
            color=data["color"],
            radius=data["radius"],
            url=data.get("url"),
            folded=bool(data.get("folded", False)),
            image_data_url=data.get("image_data_url"),
            image_scale=data.get("image_scale", 1.0),
            font_size=data.get("font_size", DEFAULT_FONT_SIZE),
        )
