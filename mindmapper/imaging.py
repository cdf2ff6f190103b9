"""Image payload helpers and the decoder interface."""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Callable, Optional


class ImageDecodeError(Exception):
    """Image bytes could not be decoded."""


@dataclass
class DecodedImage:
    """A decoded bitmap and its pixel size."""
    bitmap: Any
    width: int
    height: int


DecodeCallback = Callable[[Optional[DecodedImage]], None]


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def parse_data_url(data_url: str) -> bytes:
    """Return the bytes of a base64 ``data:`` URL."""
    if not data_url or not data_url.startswith("data:"):
        raise ImageDecodeError("Not a data URL")
    header, sep, payload = data_url.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ImageDecodeError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"Corrupt image payload: {exc}") from exc


def fit_scale(image: DecodedImage, radius: float) -> float:
    """Scale that fits the image's longest side into a node's diameter."""
    longest = max(image.width, image.height)
    if longest <= 0:
        return 1.0
    return (radius * 2) / longest


class ImageDecoder:
    """Turns encoded image payloads into bitmaps.

    ``decode_async`` must return immediately and call ``on_done`` later
    with the decoded image, or with None if decoding failed.
    """

    def decode(self, data: bytes) -> DecodedImage:
        raise NotImplementedError

    def decode_async(self, data_url: str, on_done: DecodeCallback):
        raise NotImplementedError
