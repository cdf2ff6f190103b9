from pathlib import Path
from typing import List, Tuple

import pytest

from mindmapper.graph import Graph
from mindmapper.imaging import (
    DecodeCallback, DecodedImage, ImageDecodeError, ImageDecoder, parse_data_url,
)
from mindmapper.model import NodeKind
from mindmapper.session import Session
from mindmapper.store import LocalStore, SessionSettings


class FakeDecoder(ImageDecoder):
    """Queues decode requests until ``flush`` is called.

    Payloads starting with ``bad`` fail; everything else decodes to a
    200x100 bitmap.
    """

    def __init__(self):
        self.pending: List[Tuple[str, DecodeCallback]] = []

    def decode(self, data: bytes) -> DecodedImage:
        if data.startswith(b"bad"):
            raise ImageDecodeError("corrupt")
        return DecodedImage(bitmap=("bitmap", data), width=200, height=100)

    def decode_async(self, data_url: str, on_done: DecodeCallback):
        self.pending.append((data_url, on_done))

    def flush(self) -> int:
        pending, self.pending = self.pending, []
        for data_url, on_done in pending:
            try:
                image = self.decode(parse_data_url(data_url))
            except ImageDecodeError:
                image = None
            on_done(image)
        return len(pending)


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def graph() -> Graph:
    return Graph()


@pytest.fixture
def chain(graph: Graph):
    """A -> B -> C laid out left to right."""
    a = graph.create_node(kind=NodeKind.FATHER, x=0.0, y=0.0, text="A")
    b = graph.create_node(x=200.0, y=0.0, text="B")
    c = graph.create_node(x=400.0, y=0.0, text="C")
    graph.create_edge(a.id, b.id)
    graph.create_edge(b.id, c.id)
    return a, b, c


@pytest.fixture
def session(decoder: FakeDecoder) -> Session:
    s = Session(decoder=decoder)
    s.init()
    return s


@pytest.fixture
def store(tmp_path: Path):
    s = LocalStore(tmp_path / "mindmapper.db")
    yield s
    s.close()


@pytest.fixture
def small_history_session(decoder: FakeDecoder) -> Session:
    s = Session(decoder=decoder, settings=SessionSettings(history_size=3))
    s.init()
    return s
