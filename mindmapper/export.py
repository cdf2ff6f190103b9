"""PNG snapshot export of the visible map."""

import math
from pathlib import Path
from typing import Tuple

import cairo

from mindmapper.geometry import node_dimensions
from mindmapper.model import Node, NodeKind, Shape, NODE_RADIUS, TEXT_COLOR
from mindmapper.store import get_data_dir
from mindmapper.visibility import RenderList


LINE_COLOR = "#757575"
FOLD_INDICATOR_COLOR = "#555555"


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """Parse ``#rgb`` or ``#rrggbb``; anything unreadable becomes black."""
    value = (color or "").lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        return tuple(int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError:
        return (0.0, 0.0, 0.0)


class MapExporter:
    """Draws a render list onto a cairo image surface.

    Shapes and text follow the on-screen conventions: father nodes are
    circles, child nodes rounded rectangles sized like their hit area, and
    annotations bare coloured text. Decoded images are not drawn.
    """

    PADDING = 50
    CHILD_FONT_SIZE = 12
    NODE_FONT_SIZE = 16

    def export_png(self, render_list: RenderList, filepath: str,
                   scale: float = 2.0, transparent: bool = False) -> bool:
        """Export the visible map to a PNG file."""
        if not render_list.nodes:
            return False

        min_x, min_y, max_x, max_y = self._bounds(render_list)
        width = int((max_x - min_x + self.PADDING * 2) * scale)
        height = int((max_y - min_y + self.PADDING * 2) * scale)

        surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, width, height)
        cr = cairo.Context(surface)
        cr.scale(scale, scale)
        cr.translate(-min_x + self.PADDING, -min_y + self.PADDING)

        if not transparent:
            cr.set_source_rgb(*hex_to_rgb(render_list.background))
            cr.paint()

        self._draw_connections(cr, render_list)
        for node in render_list.nodes:
            self._draw_node(cr, node, node.id in render_list.folded_with_children)

        surface.write_to_png(filepath)
        return True

    def _bounds(self, render_list: RenderList):
        min_x = min_y = math.inf
        max_x = max_y = -math.inf
        for node in render_list.nodes:
            dims = node_dimensions(node)
            min_x = min(min_x, node.x - dims.width / 2)
            max_x = max(max_x, node.x + dims.width / 2)
            min_y = min(min_y, node.y - dims.height / 2)
            max_y = max(max_y, node.y + dims.height / 2)
        return min_x, min_y, max_x, max_y

    def _draw_connections(self, cr, render_list: RenderList):
        """Straight lines between visible parents and children."""
        by_id = {node.id: node for node in render_list.nodes}
        cr.set_source_rgb(*hex_to_rgb(LINE_COLOR))
        cr.set_line_width(2)
        for parent_id, child_id in render_list.edges:
            parent = by_id[parent_id]
            child = by_id[child_id]
            # Annotations hang off the tree without a visible line
            if parent.is_annotation or child.is_annotation:
                continue
            cr.move_to(parent.x, parent.y)
            cr.line_to(child.x, child.y)
            cr.stroke()

    def _draw_node(self, cr, node: Node, show_fold_indicator: bool):
        dims = node_dimensions(node)

        if node.shape is not Shape.NONE:
            if node.kind is NodeKind.CHILD or node.shape is Shape.RECTANGLE:
                self._draw_rounded_rect(cr, node.x - dims.width / 2, node.y - dims.height / 2,
                                        dims.width, dims.height, 8)
            else:
                cr.new_path()
                cr.arc(node.x, node.y, dims.radius, 0, 2 * math.pi)
            cr.set_source_rgb(*hex_to_rgb(node.color))
            cr.fill_preserve()
            cr.set_source_rgb(*hex_to_rgb(LINE_COLOR))
            cr.set_line_width(1)
            cr.stroke()

        self._draw_text(cr, node)

        if show_fold_indicator:
            size = 10
            cr.set_source_rgb(*hex_to_rgb(FOLD_INDICATOR_COLOR))
            cr.rectangle(node.x + dims.width / 2 - size, node.y + dims.height / 2 - size,
                         size, size)
            cr.fill()

    def _draw_text(self, cr, node: Node):
        if node.is_annotation:
            font_size = node.font_size
            color = node.color
        elif node.kind is NodeKind.CHILD:
            font_size = self.CHILD_FONT_SIZE * node.radius / NODE_RADIUS
            color = TEXT_COLOR
        else:
            font_size = self.NODE_FONT_SIZE
            color = TEXT_COLOR

        lines = node.text.split("\n")
        line_height = font_size * 1.2
        cr.set_source_rgb(*hex_to_rgb(color))
        cr.select_font_face("Sans", cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(font_size)

        y = node.y - (len(lines) * line_height) / 2 + font_size * 0.9
        for line in lines:
            extents = cr.text_extents(line)
            cr.move_to(node.x - extents.x_advance / 2, y)
            cr.show_text(line)
            y += line_height

    def _draw_rounded_rect(self, cr, x, y, w, h, radius):
        """Draw a rounded rectangle path."""
        cr.new_path()
        cr.arc(x + w - radius, y + radius, radius, -math.pi / 2, 0)
        cr.arc(x + w - radius, y + h - radius, radius, 0, math.pi / 2)
        cr.arc(x + radius, y + h - radius, radius, math.pi / 2, math.pi)
        cr.arc(x + radius, y + radius, radius, math.pi, 3 * math.pi / 2)
        cr.close_path()


def get_export_dir() -> Path:
    """Get the default export directory."""
    export_dir = get_data_dir() / "exports"
    export_dir.mkdir(exist_ok=True)
    return export_dir
