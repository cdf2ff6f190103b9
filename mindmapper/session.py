"""Interactive editing session: selection, text editing and gestures."""

import logging
import re
from enum import Enum
from functools import partial
from typing import Callable, Optional
from urllib.parse import urlparse

from mindmapper import codec
from mindmapper.drag import DragGesture, hit_test, propagate_color
from mindmapper.geometry import (
    find_free_position, CHILD_OFFSET_X, CHILD_OFFSET_Y, SIBLING_SPACING,
)
from mindmapper.graph import Graph, GraphError
from mindmapper.history import HistoryManager
from mindmapper.imaging import DecodedImage, ImageDecoder, fit_scale, to_data_url
from mindmapper.model import (
    Camera, Node, NodeKind, BACKGROUND_COLOR, DEFAULT_TEXTS,
    MIN_NODE_RADIUS, MAX_NODE_RADIUS, RADIUS_STEP,
    MIN_FONT_SIZE, MAX_FONT_SIZE, FONT_SIZE_STEP,
    MIN_IMAGE_SCALE, MAX_IMAGE_SCALE, IMAGE_SCALE_STEP,
)
from mindmapper.store import LocalStore, SessionSettings
from mindmapper.visibility import RenderList, build_render_list


logger = logging.getLogger(__name__)

# Pointer buttons, GDK numbering
LEFT_BUTTON = 1
RIGHT_BUTTON = 3

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


class Mode(Enum):
    """What pointer and keyboard input currently means."""
    IDLE = "idle"
    SELECTED = "selected"
    TEXT_EDITING = "text_editing"
    DRAGGING = "dragging"
    CONNECTING = "connecting"


def is_valid_url(text: str) -> bool:
    """Scheme-qualified text without whitespace, e.g. https:, mailto: or urn: links."""
    text = text.strip()
    if not text or any(ch.isspace() for ch in text):
        return False
    parsed = urlparse(text)
    return bool(parsed.scheme) and len(text) > len(parsed.scheme) + 1


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Session:
    """One editable map with its selection, gestures and history.

    All mutation happens synchronously inside the input handlers. Every
    committed change records exactly one history entry and, when a store is
    attached, rewrites the stored document.
    """

    def __init__(self, store: Optional[LocalStore] = None,
                 decoder: Optional[ImageDecoder] = None,
                 settings: Optional[SessionSettings] = None):
        self.store = store
        if settings is None:
            settings = store.get_session_settings() if store else SessionSettings()
        self.settings = settings
        self._decoder = decoder

        self.graph = Graph()
        self.camera = Camera()
        self.background = settings.background
        self.history = HistoryManager(max_size=settings.history_size)

        # Interaction state
        self.mode = Mode.IDLE
        self.selected_id: Optional[int] = None
        self.armed = False  # Next typed character replaces the text
        self.drag: Optional[DragGesture] = None
        self.connect_start_id: Optional[int] = None
        self.pointer = (0.0, 0.0)
        self._edit_origin: Optional[str] = None

        # Callbacks
        self.on_changed: Optional[Callable[[], None]] = None
        self.on_open_link: Optional[Callable[[str], None]] = None

    # ==================== Lifecycle ====================

    def init(self):
        """Seed from the local store, or a single root node, and start history."""
        document = None
        state = self.store.load_state() if self.store else None
        if state:
            try:
                document = codec.decode_document(state)
            except codec.DocumentError as exc:
                logger.warning("Ignoring stored map: %s", exc)

        if document is not None and len(document.graph):
            self._install(document.graph, document.camera, document.background)
        else:
            self._install_default()
        self.history.clear()
        self._commit()

    def reset(self):
        """Discard the map and start over from a single root node."""
        self._install_default()
        self.history.clear()
        self._commit()

    def teardown(self):
        self._clear_transient()
        self.on_changed = None
        self.on_open_link = None
        if self.store:
            self.store.close()
            self.store = None

    def _install_default(self):
        graph = Graph()
        graph.create_node(kind=NodeKind.FATHER, x=0.0, y=0.0,
                          text=DEFAULT_TEXTS[NodeKind.FATHER])
        self._install(graph, Camera(), self.settings.background)

    def _install(self, graph: Graph, camera: Camera, background: str):
        self.graph = graph
        self.camera = camera
        self.background = background
        self._clear_transient()
        self._request_image_decodes()

    def _clear_transient(self):
        self.mode = Mode.IDLE
        self.selected_id = None
        self.armed = False
        self.drag = None
        self.connect_start_id = None
        self._edit_origin = None

    # ==================== State ====================

    @property
    def selected(self) -> Optional[Node]:
        return self.graph.get(self.selected_id)

    @property
    def editing(self) -> bool:
        return self.mode is Mode.TEXT_EDITING

    def snapshot(self) -> dict:
        state = self.graph.snapshot()
        state["camera"] = self.camera.to_dict()
        state["background"] = self.background
        return state

    def render_list(self) -> RenderList:
        return build_render_list(self.graph, self.camera, self.background,
                                 self.selected_id, self.editing)

    def select(self, node_id: Optional[int]):
        """Change the selection; arms replacement typing for the new node."""
        self.selected_id = node_id if node_id in self.graph else None
        self.armed = self.selected_id is not None
        self._edit_origin = None
        self.mode = Mode.SELECTED if self.selected_id is not None else Mode.IDLE

    def _settle_mode(self):
        self.mode = Mode.SELECTED if self.selected is not None else Mode.IDLE

    def _commit(self):
        self.history.commit(self.snapshot())
        self._autosave()
        self._notify()

    def _autosave(self):
        if self.store and self.settings.autosave:
            self.store.save_state(self.document())

    def _notify(self):
        if self.on_changed:
            self.on_changed()

    # ==================== History ====================

    def undo(self) -> bool:
        state = self.history.undo()
        if state is None:
            return False
        self._restore(state)
        return True

    def redo(self) -> bool:
        state = self.history.redo()
        if state is None:
            return False
        self._restore(state)
        return True

    def _restore(self, state: dict):
        """Replace the live map wholesale; images re-decode in the background."""
        self._install(
            Graph.from_snapshot(state),
            Camera.from_dict(state.get("camera")),
            state.get("background") or BACKGROUND_COLOR,
        )
        self._autosave()
        self._notify()

    # ==================== Documents ====================

    def document(self) -> dict:
        return codec.encode_document(self.graph, self.camera, self.background)

    def save_document(self) -> str:
        return codec.dumps(self.graph, self.camera, self.background)

    def load_document(self, text: str):
        """Replace the map with a parsed document.

        Raises DocumentError for malformed input, leaving the session as it was.
        """
        try:
            document = codec.loads(text)
        except codec.DocumentError as exc:
            logger.error("Error loading mind map: %s", exc)
            raise
        if not len(document.graph):
            self._install_default()
        else:
            self._install(document.graph, document.camera, document.background)
        self.history.clear()
        self._commit()

    # ==================== Images ====================

    @property
    def decoder(self) -> ImageDecoder:
        if self._decoder is None:
            from mindmapper.pixbuf import PixbufDecoder
            self._decoder = PixbufDecoder()
        return self._decoder

    def _request_image_decodes(self):
        for node in self.graph.nodes:
            node.image = None
            if node.image_data_url:
                self._decode(node.id, node.image_data_url, self._on_image_restored)

    def _decode(self, node_id: int, data_url: str, handler):
        self.decoder.decode_async(data_url, partial(handler, node_id, data_url))

    def _on_image_restored(self, node_id: int, data_url: str,
                           image: Optional[DecodedImage]):
        node = self.graph.get(node_id)
        if node is None or node.image_data_url != data_url:
            logger.debug("Discarding stale image for node %s", node_id)
            return
        if image is None:
            node.image = None
            node.image_data_url = None
        else:
            node.image = image.bitmap
        self._notify()

    def _on_image_pasted(self, node_id: int, data_url: str,
                         image: Optional[DecodedImage]):
        node = self.graph.get(node_id)
        if node is None:
            logger.debug("Pasted image arrived for deleted node %s", node_id)
            return
        if image is None:
            logger.warning("Pasted image could not be decoded")
            return
        node.image_scale = fit_scale(image, node.radius)
        node.image = image.bitmap
        node.image_data_url = data_url
        self._commit()

    # ==================== Pointer ====================

    def pointer_down(self, x: float, y: float, button: int = LEFT_BUTTON,
                     ctrl: bool = False):
        self.pointer = (x, y)
        if self.editing:
            self._finish_editing()

        hit = hit_test(self.graph, x, y)
        if hit is None:
            self.select(None)
            return

        if button == LEFT_BUTTON:
            self.select(hit.id)
            if ctrl and hit.url:
                if self.on_open_link:
                    self.on_open_link(hit.url)
                return
            self.drag = DragGesture(self.graph, hit.id)
            self.mode = Mode.DRAGGING
        elif button == RIGHT_BUTTON:
            self.connect_start_id = hit.id
            self.mode = Mode.CONNECTING

    def pointer_move(self, x: float, y: float):
        self.pointer = (x, y)
        if self.mode is Mode.DRAGGING and self.drag:
            self.drag.update(x, y)
        self._notify()

    def pointer_up(self, x: float, y: float, button: int = LEFT_BUTTON):
        self.pointer = (x, y)
        if self.mode is Mode.CONNECTING and button == RIGHT_BUTTON:
            self._finish_connection(x, y)
        elif self.mode is Mode.DRAGGING and button == LEFT_BUTTON and self.drag:
            result = self.drag.finish(x, y)
            self.drag = None
            self._settle_mode()
            if result.changed:
                self._commit()

    def _finish_connection(self, x: float, y: float):
        start_id = self.connect_start_id
        self.connect_start_id = None
        self._settle_mode()

        target = hit_test(self.graph, x, y, exclude=start_id)
        if target is None or start_id not in self.graph:
            return
        try:
            self.graph.create_edge(start_id, target.id)
        except GraphError as exc:
            logger.debug("Connection rejected: %s", exc)
            return
        self._commit()

    def pan_by(self, dx: float, dy: float):
        """Pan by a screen-space delta."""
        self.camera.x -= dx / self.camera.zoom
        self.camera.y -= dy / self.camera.zoom
        self._notify()

    def double_click(self, x: float, y: float):
        """Edit the node under the pointer, or add an annotation on empty canvas."""
        if self.editing:
            self._finish_editing()
        hit = hit_test(self.graph, x, y)
        if hit is not None:
            self.select(hit.id)
            self._begin_editing()
            return

        node = self.graph.create_node(kind=NodeKind.TEXT, x=x, y=y, text="")
        self._start_editing_new(node.id)
        self._commit()

    # ==================== Keyboard ====================

    def key_press(self, key: str, shift: bool = False, ctrl: bool = False):
        """Dispatch a key press. ``key`` is a key name or a single character."""
        if key == "Escape":
            self.reset()
            return

        if ctrl and key.lower() == "z":
            if shift:
                self.redo()
            else:
                self.undo()
            return
        if ctrl and key.lower() == "y":
            self.redo()
            return

        node = self.selected
        if node is None:
            return

        if key == "Tab":
            self.create_child_node()
        elif key == "Enter":
            if shift and self.editing:
                self._edit_text(node, node.text + "\n")
            else:
                self.create_sibling_node()
        elif key == "Delete":
            if ctrl:
                self.remove_image()
            else:
                self.delete_selected_node()
        elif key in ("+", "=", "-") and (ctrl or not self.editing):
            step = -1 if key == "-" else 1
            if ctrl:
                self.scale_image(step)
            else:
                self.resize_selected(step)
        elif key == "\\" and not self.editing:
            self.toggle_fold()
        elif ctrl:
            return
        elif key == "BackSpace" or key == "Backspace":
            if self.editing:
                self._edit_text(node, node.text[:-1])
        elif len(key) == 1 and key.isprintable():
            self._type(node, key)

    def _type(self, node: Node, char: str):
        if not self.editing:
            self._begin_editing()
        text = "" if self.armed else node.text
        self._edit_text(node, text + char)

    def _edit_text(self, node: Node, text: str):
        """Apply an in-place edit; later keystrokes append instead of replacing."""
        node.text = text
        self.armed = False
        self._notify()

    def _begin_editing(self):
        if self.selected is None:
            return
        if not self.editing:
            self._edit_origin = self.selected.text
        self.mode = Mode.TEXT_EDITING

    def _start_editing_new(self, node_id: int):
        self.select(node_id)
        self._begin_editing()

    def _finish_editing(self) -> bool:
        """Leave text editing, committing if the text changed."""
        node = self.selected
        origin = self._edit_origin
        self._edit_origin = None
        self._settle_mode()
        if node is None:
            return False
        if node.is_annotation and node.text == "":
            node.text = node.default_text
        if node.text != origin:
            self._commit()
            return True
        return False

    def _fill_default_text(self, node: Node) -> bool:
        """Give an empty node its default text instead of branching from it."""
        if node.text != "":
            return False
        node.text = node.default_text
        self._edit_origin = None
        self._settle_mode()
        self._commit()
        return True

    # ==================== Structure ====================

    def create_child_node(self) -> Optional[Node]:
        """Tab: add a child to the selected node and start typing into it."""
        parent = self.selected
        if parent is None or parent.is_annotation:
            return None
        if self._fill_default_text(parent):
            return None

        x, y = find_free_position(parent.x + CHILD_OFFSET_X,
                                  parent.y + CHILD_OFFSET_Y,
                                  self.graph.nodes)
        child = self.graph.create_node(kind=NodeKind.CHILD, x=x, y=y, text="",
                                       color=parent.color)
        self.graph.create_edge(parent.id, child.id)
        self._start_editing_new(child.id)
        self._commit()
        return child

    def create_sibling_node(self) -> Optional[Node]:
        """Enter: finish editing and, below a parented node, add a sibling."""
        node = self.selected
        if node is None:
            return None
        was_editing = self.editing
        origin = self._edit_origin
        if self._fill_default_text(node):
            return None
        self._edit_origin = None
        self._settle_mode()

        parent_id = self.graph.parent_of(node.id)
        if parent_id is None:
            if was_editing and node.text != origin:
                self._commit()
            return None

        x, y = find_free_position(node.x, node.y + SIBLING_SPACING, self.graph.nodes)
        sibling = self.graph.create_node(kind=NodeKind.CHILD, x=x, y=y, text="",
                                         color=node.color)
        self.graph.create_edge(parent_id, sibling.id)
        self._start_editing_new(sibling.id)
        self._commit()
        return sibling

    def delete_selected_node(self) -> bool:
        node = self.selected
        if node is None:
            return False
        try:
            self.graph.delete_subtree(node.id)
        except GraphError as exc:
            logger.warning("Delete aborted: %s", exc)
            return False
        self.select(None)
        self._commit()
        return True

    def toggle_fold(self):
        node = self.selected
        if node is None:
            return
        node.folded = not node.folded
        self._commit()

    def resize_selected(self, step: int):
        """Grow or shrink the selected node; annotations change font size."""
        node = self.selected
        if node is None:
            return
        if node.is_annotation:
            node.font_size = _clamp(node.font_size + step * FONT_SIZE_STEP,
                                    MIN_FONT_SIZE, MAX_FONT_SIZE)
        else:
            node.radius = _clamp(node.radius + step * RADIUS_STEP,
                                 MIN_NODE_RADIUS, MAX_NODE_RADIUS)
        self._commit()

    def scale_image(self, step: int):
        node = self.selected
        if node is None:
            return
        node.image_scale = _clamp(round(node.image_scale + step * IMAGE_SCALE_STEP, 6),
                                  MIN_IMAGE_SCALE, MAX_IMAGE_SCALE)
        self._commit()

    def remove_image(self):
        node = self.selected
        if node is None or not (node.image or node.image_data_url):
            return
        node.image = None
        node.image_data_url = None
        self._commit()

    def set_color(self, color: str):
        """Recolour the selected subtree, or the background if nothing is selected."""
        node = self.selected
        if node is not None:
            propagate_color(self.graph, node.id, color)
        else:
            self.background = color
        self._commit()

    # ==================== Clipboard ====================

    def paste_text(self, text: str):
        """Adopt a URL as the node link, or turn paragraphs into child nodes."""
        parent = self.selected
        if parent is None or not text:
            return
        if is_valid_url(text):
            parent.url = text.strip()
            self._commit()
            return
        if parent.is_annotation:
            return

        paragraphs = [p.strip() for p in PARAGRAPH_SPLIT.split(text) if p.strip()]
        if not paragraphs:
            return

        first = self.graph.nodes[0]
        place_right = len(self.graph) == 1 or parent.x > first.x
        x = parent.x + CHILD_OFFSET_X if place_right else parent.x - CHILD_OFFSET_X
        last: Optional[Node] = None
        for paragraph in paragraphs:
            y = parent.y if last is None else last.y + SIBLING_SPACING
            px, py = find_free_position(x, y, self.graph.nodes)
            last = self.graph.create_node(kind=NodeKind.CHILD, x=px, y=py,
                                          text=paragraph, color=parent.color)
            self.graph.create_edge(parent.id, last.id)
        self._commit()

    def paste_image(self, data: bytes, mime_type: str = "image/png"):
        """Decode pasted image bytes and attach them to the selected node."""
        node = self.selected
        if node is None:
            return
        self._decode(node.id, to_data_url(data, mime_type), self._on_image_pasted)
