import json

import pytest

from mindmapper import codec
from mindmapper.codec import DocumentError
from mindmapper.graph import Graph
from mindmapper.model import Camera, NodeKind, Shape


def test_connections_use_compact_indices(graph: Graph, chain) -> None:
    a, b, c = chain
    extra = graph.create_node(x=0.0, y=300.0, text="extra")
    graph.create_edge(a.id, extra.id)
    graph.delete_subtree(b.id)

    data = codec.encode_document(graph, Camera(), "#ffffff")

    assert [n["text"] for n in data["nodes"]] == ["A", "extra"]
    assert data["connections"] == [[0, 1]]


def test_encoded_node_uses_document_keys(graph: Graph) -> None:
    node = graph.create_node(kind=NodeKind.TEXT, x=1.0, y=2.0, text="hi",
                             url="https://example.com", image_scale=0.5)

    encoded = codec.encode_node(node)

    assert encoded["type"] == "text"
    assert encoded["shape"] == "none"
    assert encoded["fontSize"] == 16
    assert encoded["imageScale"] == 0.5
    assert encoded["imageDataURL"] is None
    assert "id" not in encoded


def test_minimal_nodes_get_defaults() -> None:
    document = codec.decode_document({
        "nodes": [{"x": 10, "y": 20}, {"x": 0, "y": 0, "type": "text"}],
        "connections": [[0, 1]],
    })

    first, second = document.graph.nodes
    assert first.kind is NodeKind.CHILD
    assert first.shape is Shape.RECTANGLE
    assert first.radius == 60
    assert first.color == "#ffffff"
    assert first.text == ""
    assert second.color == "#333333"
    assert document.graph.edges == [(first.id, second.id)]
    assert document.camera == Camera()
    assert document.background == "#ffffff"


def test_saved_document_loads_back(graph: Graph, chain) -> None:
    a, b, c = chain
    b.folded = True
    b.url = "https://example.com"
    camera = Camera(x=12.5, y=-4.0, zoom=1.5)

    text = codec.dumps(graph, camera, "#eeeeee")
    document = codec.loads(text)

    assert [n.text for n in document.graph.nodes] == ["A", "B", "C"]
    assert len(document.graph.edges) == 2
    assert document.graph.nodes[1].folded
    assert document.graph.nodes[1].url == "https://example.com"
    assert document.camera == camera
    assert document.background == "#eeeeee"
    assert text.startswith("{\n    ")


def test_forest_breaking_connections_are_skipped(caplog) -> None:
    document = codec.decode_document({
        "nodes": [{"x": 0, "y": 0}, {"x": 1, "y": 0}, {"x": 2, "y": 0}],
        "connections": [[0, 2], [1, 2], [2, 0], [1, 1]],
    })

    ids = [n.id for n in document.graph.nodes]
    assert document.graph.edges == [(ids[0], ids[2])]
    assert "Skipping connection" in caplog.text


@pytest.mark.parametrize("data", [
    [],
    {"nodes": {"first": {"x": 0, "y": 0}}},
    {"nodes": [{"x": 0, "y": 0}], "connections": [[0, 1]]},
    {"nodes": [{"x": 0, "y": 0}], "connections": [[0]]},
    {"nodes": [{"x": 0, "y": 0}], "connections": [["0", "0"]]},
    {"nodes": [{"y": 0}]},
    {"nodes": [{"x": "left", "y": 0}]},
    {"nodes": [{"x": 0, "y": 0, "type": "planet"}]},
    {"nodes": ["node"]},
    {"nodes": [], "camera": [1, 2]},
    {"nodes": [], "camera": {"x": "far"}},
    {"nodes": [], "camera": {"zoom": 0}},
    {"nodes": [], "camera": {"zoom": -2}},
])
def test_malformed_documents_are_rejected(data) -> None:
    with pytest.raises(DocumentError):
        codec.decode_document(data)


def test_invalid_json_is_a_document_error() -> None:
    with pytest.raises(DocumentError):
        codec.loads("{nodes: oops")


def test_empty_document_has_no_nodes() -> None:
    document = codec.loads(json.dumps({}))

    assert len(document.graph) == 0
