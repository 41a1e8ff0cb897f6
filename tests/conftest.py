from __future__ import annotations

import random
from pathlib import Path

import pytest
from PIL import Image

from imgtool.report import Reporter
from imgtool.settings import Dimensions


def make_image(path: Path, width: int, height: int, noise: bool = False, fmt: str | None = None) -> Path:
    """Write a test image. Solid red by default; seeded RGB noise with noise=True."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if noise:
        rng = random.Random(1234)
        data = bytes(rng.getrandbits(8) for _ in range(width * height * 3))
        im = Image.frombytes("RGB", (width, height), data)
    else:
        im = Image.new("RGBA", (width, height), (255, 0, 0, 255))
        if (fmt or path.suffix.lower().lstrip(".")) in ("jpg", "jpeg"):
            im = im.convert("RGB")

    im.save(path, format=fmt)
    return path


def image_size(path: Path) -> tuple[int, int]:
    with Image.open(path) as im:
        return im.size


class FakeImage:
    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height


class FakeEngine:
    """
    In-memory engine. Input bytes are "WxH" text; b"corrupt" fails to decode.
    Encoded output is `width * height // 10` bytes (at least one).
    """

    def __init__(self) -> None:
        self.encoded: list[tuple[int, int, str, int]] = []

    def decode(self, data: bytes) -> FakeImage:
        text = data.decode("ascii", errors="replace").strip()
        if text == "corrupt":
            raise ValueError("corrupt header")
        w, h = text.split("x")
        return FakeImage(int(w), int(h))

    def read_metadata(self, image: FakeImage) -> Dimensions:
        return Dimensions(image.width, image.height)

    def resize(self, image: FakeImage, box: Dimensions) -> FakeImage:
        if image.width <= box.width and image.height <= box.height:
            return image
        scale = min(box.width / image.width, box.height / image.height)
        return FakeImage(max(1, round(image.width * scale)), max(1, round(image.height * scale)))

    def encode(self, image: FakeImage, fmt: str, quality: int) -> bytes:
        self.encoded.append((image.width, image.height, fmt, quality))
        return b"\0" * max(1, image.width * image.height // 10)


def write_fake(path: Path, width: int, height: int) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(f"{width}x{height}".encode("ascii"))
    return path


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()
