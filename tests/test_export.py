from pathlib import Path

import pytest

pytest.importorskip("cairo")

from mindmapper.export import MapExporter, get_export_dir, hex_to_rgb  # noqa: E402
from mindmapper.session import Session  # noqa: E402

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def test_hex_colours_are_parsed() -> None:
    assert hex_to_rgb("#ffffff") == (1.0, 1.0, 1.0)
    assert hex_to_rgb("#f00") == (1.0, 0.0, 0.0)
    assert hex_to_rgb("chartreuse") == (0.0, 0.0, 0.0)


def test_export_writes_png(session: Session, tmp_path: Path) -> None:
    session.select(session.graph.nodes[0].id)
    session.paste_text("one\n\ntwo")
    session.double_click(0, 400)
    session.key_press("Enter")
    target = tmp_path / "map.png"

    assert MapExporter().export_png(session.render_list(), str(target), scale=1.0)

    assert target.read_bytes().startswith(PNG_SIGNATURE)


def test_export_skips_hidden_nodes(session: Session, tmp_path: Path) -> None:
    root = session.graph.nodes[0]
    session.select(root.id)
    session.paste_text("far away child")
    session.toggle_fold()
    small = tmp_path / "folded.png"

    assert MapExporter().export_png(session.render_list(), str(small), scale=1.0,
                                    transparent=True)
    assert small.exists()


def test_empty_map_is_not_exported(session: Session, tmp_path: Path) -> None:
    session.select(session.graph.nodes[0].id)
    session.delete_selected_node()
    target = tmp_path / "empty.png"

    assert not MapExporter().export_png(session.render_list(), str(target))
    assert not target.exists()


def test_export_dir_lives_in_data_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("MINDMAPPER_DATA_DIR", str(tmp_path))

    assert get_export_dir() == tmp_path / "exports"
    assert (tmp_path / "exports").is_dir()
