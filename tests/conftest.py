import struct
import zlib
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from image_gateway.allowlist import AllowlistStore
from image_gateway.app import create_app
from image_gateway.cache import ConversionCache
from image_gateway.config import Settings
from image_gateway.storage import MemoryBlobStore

API_KEY = "test-key"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image(fmt: str = "PNG", size: tuple[int, int] = (8, 8)) -> bytes:
    mode = "RGB" if fmt == "JPEG" else "RGBA"
    img = Image.new(mode, size, color=(200, 30, 30) if mode == "RGB" else (200, 30, 30, 255))
    out = BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def moderators_file(tmp_path):
    path = tmp_path / "moderators.txt"
    path.write_text("# moderators\n\nAdmin\n  Mod1  \n", encoding="utf-8")
    return path


@pytest.fixture
def settings(moderators_file):
    return Settings(
        api_keys=f"{API_KEY}, other-key",
        public_url="http://testserver",
        moderators_file=moderators_file,
    )


@pytest.fixture
def store():
    return MemoryBlobStore()


@pytest.fixture
def cache(clock):
    return ConversionCache(default_ttl=2700, clock=clock)


@pytest.fixture
def app(settings, store, cache, moderators_file):
    return create_app(
        settings,
        store=store,
        cache=cache,
        allowlist=AllowlistStore(moderators_file),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers():
    return {"X-API-Key": API_KEY}


@pytest.fixture
def image_factory():
    return make_image


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """PNG whose header declares more pixels than Pillow agrees to decode."""

    def chunk(cid: bytes, data: bytes) -> bytes:
        return (
            struct.pack(">I", len(data))
            + cid
            + data
            + struct.pack(">I", zlib.crc32(cid + data) & 0xFFFFFFFF)
        )

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", b"")
        + chunk(b"IEND", b"")
    )


@pytest.fixture
def oversized_png():
    return make_oversized_png()
