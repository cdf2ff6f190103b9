import json
from pathlib import Path

import pytest

from mindmapper import codec
from mindmapper.cli import main
from mindmapper.graph import Graph
from mindmapper.model import Camera, NodeKind


@pytest.fixture
def dimap_file(tmp_path: Path) -> Path:
    graph = Graph()
    root = graph.create_node(kind=NodeKind.FATHER, x=0.0, y=0.0, text="Root")
    child = graph.create_node(x=150.0, y=-45.0, text="Child")
    leaf = graph.create_node(x=300.0, y=-90.0, text="Leaf")
    graph.create_edge(root.id, child.id)
    graph.create_edge(child.id, leaf.id)
    child.folded = True

    path = tmp_path / "sample.dimap"
    path.write_text(codec.dumps(graph, Camera(x=3.0), "#fafafa"), encoding="utf-8")
    return path


@pytest.fixture
def db_args(tmp_path: Path):
    return ["--db", str(tmp_path / "cli.db")]


def test_verify_file_prints_counts(dimap_file: Path, db_args, capsys) -> None:
    assert main(db_args + ["verify", "--file", str(dimap_file)]) == 0

    out = capsys.readouterr().out
    assert "nodes=3 edges=2 roots=1 hidden=1 images=0" in out
    assert "Background: #fafafa" in out


def test_import_then_export(dimap_file: Path, db_args, tmp_path: Path, capsys) -> None:
    out_path = tmp_path / "out" / "copy.dimap"

    assert main(db_args + ["import", "--file", str(dimap_file)]) == 0
    assert main(db_args + ["export", "--out", str(out_path)]) == 0

    exported = json.loads(out_path.read_text(encoding="utf-8"))
    assert [n["text"] for n in exported["nodes"]] == ["Root", "Child", "Leaf"]
    assert exported["connections"] == [[0, 1], [1, 2]]
    assert "Imported 3 node(s)" in capsys.readouterr().out


def test_import_refuses_to_overwrite(dimap_file: Path, db_args) -> None:
    main(db_args + ["import", "--file", str(dimap_file)])

    with pytest.raises(SystemExit, match="--overwrite"):
        main(db_args + ["import", "--file", str(dimap_file)])

    assert main(db_args + ["import", "--file", str(dimap_file), "--overwrite"]) == 0


def test_export_without_stored_map_fails(db_args, tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="No stored map"):
        main(db_args + ["export", "--out", str(tmp_path / "x.dimap")])


def test_verify_reports_bad_files(db_args, tmp_path: Path) -> None:
    broken = tmp_path / "broken.dimap"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit, match="Error loading mind map"):
        main(db_args + ["verify", "--file", str(broken)])
    with pytest.raises(SystemExit, match="File not found"):
        main(db_args + ["verify", "--file", str(tmp_path / "missing.dimap")])


def test_render_writes_png(dimap_file: Path, db_args, tmp_path: Path) -> None:
    pytest.importorskip("cairo")
    out_path = tmp_path / "map.png"

    assert main(db_args + ["render", "--file", str(dimap_file),
                           "--out", str(out_path), "--scale", "1"]) == 0

    assert out_path.read_bytes().startswith(b"\x89PNG")
