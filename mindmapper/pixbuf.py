"""GdkPixbuf-backed image decoding dispatched on the GLib main loop."""

import contextlib
import logging

import gi

gi.require_version("GdkPixbuf", "2.0")
from gi.repository import GdkPixbuf, GLib

from mindmapper.imaging import (
    DecodeCallback, DecodedImage, ImageDecodeError, ImageDecoder, parse_data_url,
)


logger = logging.getLogger(__name__)


class PixbufDecoder(ImageDecoder):
    """Decode PNG/JPEG/GIF/... payloads into ``GdkPixbuf.Pixbuf`` objects."""

    def decode(self, data: bytes) -> DecodedImage:
        loader = GdkPixbuf.PixbufLoader()
        try:
            loader.write(data)
        except GLib.Error as exc:
            # The loader must be closed even when the payload is rejected
            with contextlib.suppress(GLib.Error):
                loader.close()
            raise ImageDecodeError(exc.message) from exc
        try:
            loader.close()
        except GLib.Error as exc:
            raise ImageDecodeError(exc.message) from exc

        pixbuf = loader.get_pixbuf()
        if pixbuf is None:
            raise ImageDecodeError("Loader produced no image")
        return DecodedImage(pixbuf, pixbuf.get_width(), pixbuf.get_height())

    def decode_async(self, data_url: str, on_done: DecodeCallback):
        def _run() -> bool:
            try:
                image = self.decode(parse_data_url(data_url))
            except ImageDecodeError as exc:
                logger.warning("Image decode failed: %s", exc)
                image = None
            on_done(image)
            return GLib.SOURCE_REMOVE

        GLib.idle_add(_run)
