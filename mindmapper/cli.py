"""Command line helper for Mind Mapper documents.

Moves maps between the local store and ``.dimap`` files, checks documents
and renders PNG snapshots.

Usage:
  mindmapper export --out mymap.dimap
  mindmapper import --file mymap.dimap [--overwrite]
  mindmapper verify [--file mymap.dimap]
  mindmapper render [--file mymap.dimap] --out mymap.png
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from mindmapper import __version__, codec
from mindmapper.store import LocalStore
from mindmapper.visibility import build_render_list, visible_nodes


logger = logging.getLogger(__name__)


def _read_document(path: Path) -> codec.Document:
    path = path.expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    try:
        return codec.loads(path.read_text(encoding="utf-8"))
    except codec.DocumentError as exc:
        raise SystemExit(f"Error loading mind map: {exc}")


def _stored_document(store: LocalStore) -> codec.Document:
    state = store.load_state()
    if state is None:
        raise SystemExit(f"No stored map in {store.db_path}")
    try:
        return codec.decode_document(state)
    except codec.DocumentError as exc:
        raise SystemExit(f"Stored map is unreadable: {exc}")


def _load(args: argparse.Namespace, store: LocalStore) -> codec.Document:
    if args.file:
        return _read_document(Path(args.file))
    return _stored_document(store)


def _cmd_export(args: argparse.Namespace, store: LocalStore) -> int:
    document = _stored_document(store)
    out_path = Path(args.out).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        codec.dumps(document.graph, document.camera, document.background),
        encoding="utf-8",
    )
    print(f"Wrote map: {out_path}")
    return 0


def _cmd_import(args: argparse.Namespace, store: LocalStore) -> int:
    document = _read_document(Path(args.file))
    if store.load_state() is not None and not args.overwrite:
        raise SystemExit(
            f"A map is already stored in {store.db_path}. "
            "Re-run with --overwrite to replace it."
        )
    store.save_state(codec.encode_document(document.graph, document.camera, document.background))
    print(f"Imported {len(document.graph)} node(s)")
    return 0


def _cmd_verify(args: argparse.Namespace, store: LocalStore) -> int:
    document = _load(args, store)
    graph = document.graph
    hidden = len(graph) - len(visible_nodes(graph))
    images = sum(1 for node in graph.nodes if node.image_data_url)

    print("Mind map verification")
    print(f"  Source: {args.file or store.db_path}")
    print(f"  Counts: nodes={len(graph)} edges={len(graph.edges)} "
          f"roots={len(graph.roots())} hidden={hidden} images={images}")
    print(f"  Camera: x={document.camera.x} y={document.camera.y} zoom={document.camera.zoom}")
    print(f"  Background: {document.background}")
    return 0


def _cmd_render(args: argparse.Namespace, store: LocalStore) -> int:
    from mindmapper.preflight import run_preflight_or_die

    run_preflight_or_die(need_cairo=True, need_pixbuf=False)

    from mindmapper.export import MapExporter, get_export_dir

    document = _load(args, store)
    out_path = Path(args.out).expanduser() if args.out else get_export_dir() / "mindmap.png"
    render_list = build_render_list(document.graph, document.camera, document.background)
    if not MapExporter().export_png(render_list, str(out_path), scale=args.scale,
                                    transparent=args.transparent):
        print("Nothing to render")
        return 1
    print(f"Wrote image: {out_path.resolve()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mindmapper")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    parser.add_argument("--db", help="Path to the local store (default: data dir)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_exp = sub.add_parser("export", help="Write the stored map to a .dimap file")
    p_exp.add_argument("--out", required=True, help="Output .dimap path")
    p_exp.set_defaults(func=_cmd_export)

    p_imp = sub.add_parser("import", help="Load a .dimap file into the local store")
    p_imp.add_argument("--file", required=True, help="Input .dimap path")
    p_imp.add_argument("--overwrite", action="store_true",
                       help="Replace a map that is already stored")
    p_imp.set_defaults(func=_cmd_import)

    p_ver = sub.add_parser("verify", help="Check a .dimap file or the stored map")
    p_ver.add_argument("--file", help="Path to a .dimap file (if omitted, verifies the stored map)")
    p_ver.set_defaults(func=_cmd_verify)

    p_ren = sub.add_parser("render", help="Render the visible map to PNG")
    p_ren.add_argument("--file", help="Path to a .dimap file (if omitted, renders the stored map)")
    p_ren.add_argument("--out", help="Output .png path (default: exports folder)")
    p_ren.add_argument("--scale", type=float, default=2.0, help="Pixels per world unit")
    p_ren.add_argument("--transparent", action="store_true", help="Skip the background fill")
    p_ren.set_defaults(func=_cmd_render)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = LocalStore(Path(args.db).expanduser() if args.db else None)
    try:
        return int(args.func(args, store))
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
