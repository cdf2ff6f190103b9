"""Reading and writing ``.dimap`` documents.

A document holds the node list, the connections as pairs of indices into
that list, the camera and the background colour. Indices are rebuilt from
the stable node ids on every encode and mapped back to fresh ids on every
decode, so they never leak into the live graph.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from mindmapper.graph import Graph, GraphError
from mindmapper.model import (
    Camera, NodeKind, Shape, DEFAULT_COLORS, DEFAULT_SHAPES,
    NODE_RADIUS, DEFAULT_FONT_SIZE, BACKGROUND_COLOR,
)


logger = logging.getLogger(__name__)

FILE_EXTENSION = ".dimap"


class DocumentError(Exception):
    """The document could not be parsed into a valid map."""


@dataclass
class Document:
    """Decoded contents of a document."""
    graph: Graph
    camera: Camera
    background: str = BACKGROUND_COLOR


def encode_node(node) -> Dict[str, Any]:
    return {
        "x": node.x,
        "y": node.y,
        "text": node.text,
        "type": node.kind.value,
        "shape": node.shape.value,
        "color": node.color,
        "radius": node.radius,
        "fontSize": node.font_size,
        "url": node.url,
        "folded": node.folded,
        "imageDataURL": node.image_data_url,
        "imageScale": node.image_scale,
    }


def encode_document(graph: Graph, camera: Camera, background: str) -> dict:
    index_of = {node.id: index for index, node in enumerate(graph.nodes)}
    return {
        "nodes": [encode_node(node) for node in graph.nodes],
        "connections": [
            [index_of[parent_id], index_of[child_id]] for parent_id, child_id in graph.edges
        ],
        "camera": camera.to_dict(),
        "backgroundColor": background,
    }


def _number(data: dict, key: str, default: Optional[float] = None) -> float:
    value = data.get(key)
    if value is None:
        if default is None:
            raise DocumentError(f"Node is missing '{key}'")
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DocumentError(f"Node field '{key}' must be a number, got {value!r}")
    return float(value)


def _decode_node(graph: Graph, data: Any):
    if not isinstance(data, dict):
        raise DocumentError(f"Node entry must be an object, got {type(data).__name__}")
    try:
        kind = NodeKind(data.get("type") or NodeKind.CHILD.value)
        shape = Shape(data.get("shape") or DEFAULT_SHAPES[kind].value)
    except ValueError as exc:
        raise DocumentError(str(exc)) from exc

    text = data.get("text") or ""
    if not isinstance(text, str):
        raise DocumentError("Node text must be a string")

    return graph.create_node(
        kind=kind,
        shape=shape,
        x=_number(data, "x"),
        y=_number(data, "y"),
        text=text,
        color=data.get("color") or DEFAULT_COLORS[kind],
        radius=_number(data, "radius", NODE_RADIUS) or NODE_RADIUS,
        font_size=_number(data, "fontSize", DEFAULT_FONT_SIZE) or DEFAULT_FONT_SIZE,
        url=data.get("url") or None,
        folded=bool(data.get("folded", False)),
        image_data_url=data.get("imageDataURL") or None,
        image_scale=_number(data, "imageScale", 1.0) or 1.0,
    )


def decode_document(data: Any) -> Document:
    """Build a fresh graph from a parsed document.

    Connections that would break the forest invariant are skipped with a
    warning; anything structurally malformed raises DocumentError.
    """
    if not isinstance(data, dict):
        raise DocumentError("Document must be a JSON object")

    raw_nodes = data.get("nodes") or []
    raw_connections = data.get("connections") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_connections, list):
        raise DocumentError("'nodes' and 'connections' must be lists")

    graph = Graph()
    ids = [_decode_node(graph, entry).id for entry in raw_nodes]

    for connection in raw_connections:
        if (not isinstance(connection, (list, tuple)) or len(connection) != 2 or
                not all(isinstance(i, int) and not isinstance(i, bool) for i in connection)):
            raise DocumentError(f"Malformed connection {connection!r}")
        start, end = connection
        if not (0 <= start < len(ids) and 0 <= end < len(ids)):
            raise DocumentError(f"Connection {connection!r} points outside the node list")
        try:
            graph.create_edge(ids[start], ids[end])
        except GraphError as exc:
            logger.warning("Skipping connection %s: %s", connection, exc)

    camera_data = data.get("camera")
    if camera_data is not None and not isinstance(camera_data, dict):
        raise DocumentError("'camera' must be an object")
    try:
        camera = Camera.from_dict(camera_data)
    except (TypeError, ValueError) as exc:
        raise DocumentError(f"Invalid camera: {exc}") from exc
    if not (math.isfinite(camera.zoom) and camera.zoom > 0):
        raise DocumentError(f"Camera zoom must be a positive number, got {camera.zoom}")

    background = data.get("backgroundColor") or BACKGROUND_COLOR
    return Document(graph=graph, camera=camera, background=background)


def dumps(graph: Graph, camera: Camera, background: str) -> str:
    return json.dumps(encode_document(graph, camera, background), indent=4)


def loads(text: str) -> Document:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"Invalid file format: {exc}") from exc
    return decode_document(data)
