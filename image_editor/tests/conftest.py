"""Shared fixtures: generated images and backends."""

import io
import logging
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from ..adapters.backends.pillow_backend import PillowBackend
from ..infrastructure.backend_registry import BackendRegistry

BACKEND_NAMES = ["pillow", "opencv"]


def make_gradient(width: int, height: int) -> Image.Image:
    """RGB image where every pixel is distinct enough to detect flips."""
    x = np.linspace(0, 255, width, dtype=np.uint8)
    y = np.linspace(0, 255, height, dtype=np.uint8)
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :, 0] = x[np.newaxis, :]
    pixels[:, :, 1] = y[:, np.newaxis]
    pixels[:, :, 2] = 128
    return Image.fromarray(pixels, "RGB")


def encode(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def decode_rgb(data: bytes) -> np.ndarray:
    """Decode encoded bytes to an RGB array for pixel comparisons."""
    with Image.open(io.BytesIO(data)) as image:
        return np.asarray(image.convert("RGB"))


def write_image(directory: Path, name: str, image: Image.Image, fmt: str) -> Path:
    path = directory / name
    path.write_bytes(encode(image, fmt))
    return path


class CountingPillowBackend(PillowBackend):
    """Pillow backend that counts released bitmaps."""

    def __init__(self):
        self.released = 0

    def release(self, native):
        self.released += 1
        super().release(native)


@pytest.fixture(params=BACKEND_NAMES)
def backend(request):
    """Each built-in backend, skipped when it cannot run here."""
    backend_class = BackendRegistry.discover_backends().get(request.param)
    if backend_class is None or not backend_class.is_available():
        pytest.skip(f"{request.param} backend not available")
    return backend_class()


@pytest.fixture
def pillow_backend():
    return BackendRegistry.create("pillow")


@pytest.fixture
def png_file(tmp_path) -> Path:
    return write_image(tmp_path, "photo.png", make_gradient(400, 300), "PNG")


@pytest.fixture
def jpeg_file(tmp_path) -> Path:
    return write_image(tmp_path, "photo.jpg", make_gradient(400, 300), "JPEG")


@pytest.fixture
def mpo_file(tmp_path) -> Path:
    """Two-picture MPO, the JPEG variant written by many cameras."""
    frames = [make_gradient(400, 300), make_gradient(400, 300).rotate(180)]
    path = tmp_path / "camera.jpg"
    frames[0].save(path, format="MPO", save_all=True, append_images=frames[1:])
    return path


@pytest.fixture
def gif_file(tmp_path) -> Path:
    image = make_gradient(120, 80).convert("P", palette=Image.Palette.ADAPTIVE)
    return write_image(tmp_path, "anim.gif", image, "GIF")


@pytest.fixture
def palette_png_file(tmp_path) -> Path:
    image = make_gradient(200, 100).convert("P", palette=Image.Palette.ADAPTIVE)
    return write_image(tmp_path, "indexed.png", image, "PNG")


@pytest.fixture
def restore_logging():
    """Undo setup_logging's changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
