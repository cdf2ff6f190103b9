"""Dependency preflight checks.

Image decoding needs the GdkPixbuf introspection bindings and PNG export
needs pycairo. Both are compiled against system libraries, so a missing
piece is reported up front with a clear message instead of an ImportError
deep inside a command.
Set MINDMAPPER_SKIP_PREFLIGHT=1 to bypass.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PreflightResult:
    ok: bool
    message: str


def _check_cairo() -> Optional[str]:
    try:
        import cairo  # type: ignore[import-not-found]  # noqa: F401
    except Exception as exc:  # pylint: disable=broad-except
        return (
            "Missing Python dependency 'pycairo'. "
            "Install it with pip (pycairo) and ensure cairo is available. "
            f"Underlying error: {exc}"
        )
    return None


def _check_pixbuf() -> Optional[str]:
    try:
        import gi  # type: ignore[import-not-found]

        gi.require_version("GdkPixbuf", "2.0")
        from gi.repository import GdkPixbuf, GLib  # type: ignore[import-not-found]  # noqa: F401
    except Exception as exc:  # pylint: disable=broad-except
        return (
            "Missing GdkPixbuf/GLib bindings. Install PyGObject and the "
            "gdk-pixbuf typelib (e.g. gir1.2-gdkpixbuf-2.0 or gdk-pixbuf2). "
            f"Underlying error: {exc}"
        )
    return None


def run_preflight(*, need_cairo: bool = True, need_pixbuf: bool = True) -> PreflightResult:
    """Run checks and return a structured result."""
    if os.environ.get("MINDMAPPER_SKIP_PREFLIGHT") == "1":
        return PreflightResult(True, "Preflight skipped via MINDMAPPER_SKIP_PREFLIGHT=1")

    if need_cairo:
        error = _check_cairo()
        if error:
            return PreflightResult(False, error)

    if need_pixbuf:
        error = _check_pixbuf()
        if error:
            return PreflightResult(False, error)

    return PreflightResult(True, "Preflight OK")


def run_preflight_or_die(*, need_cairo: bool = True, need_pixbuf: bool = True) -> None:
    result = run_preflight(need_cairo=need_cairo, need_pixbuf=need_pixbuf)
    if result.ok:
        return

    sys.stderr.write("\nMind Mapper preflight check failed:\n")
    sys.stderr.write(result.message)
    sys.stderr.write("\n\n")
    raise SystemExit(1)
