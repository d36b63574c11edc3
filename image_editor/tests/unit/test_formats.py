"""Unit tests for format helpers."""

import io

import pytest
from PIL import Image

from image_editor.domain.value_objects.formats import (
    extension_for,
    is_supported_output,
    mime_from_extension,
    normalize_mime,
    png_is_palette,
    sniff_mime,
)


def _encode(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class TestNormalizeMime:
    """Tests for MIME normalization."""

    def test_aliases(self):
        assert normalize_mime("IMAGE/JPG") == "image/jpeg"
        assert normalize_mime(" image/pjpeg ") == "image/jpeg"

    def test_empty(self):
        assert normalize_mime(None) is None
        assert normalize_mime("") is None

    def test_supported_outputs(self):
        assert is_supported_output("image/png")
        assert is_supported_output("image/jpg")
        assert not is_supported_output("image/webp")
        assert not is_supported_output(None)


class TestExtensions:
    """Tests for extension mapping."""

    @pytest.mark.parametrize("mime,ext", [
        ("image/jpeg", "jpg"),
        ("image/png", "png"),
        ("image/gif", "gif"),
    ])
    def test_extension_for(self, mime, ext):
        assert extension_for(mime) == ext

    def test_unsupported_has_no_extension(self):
        assert extension_for("image/webp") is None

    def test_mime_from_extension(self):
        assert mime_from_extension(".JPEG") == "image/jpeg"
        assert mime_from_extension("webp") == "image/webp"
        assert mime_from_extension("txt") is None


class TestSniffMime:
    """Tests for signature detection."""

    @pytest.mark.parametrize("fmt,mime", [
        ("PNG", "image/png"),
        ("JPEG", "image/jpeg"),
        ("GIF", "image/gif"),
        ("BMP", "image/bmp"),
    ])
    def test_encoded_images(self, fmt, mime):
        data = _encode(Image.new("RGB", (4, 4), (255, 0, 0)), fmt)
        assert sniff_mime(data) == mime

    def test_unknown(self):
        assert sniff_mime(b"not an image") is None
        assert sniff_mime(b"") is None


class TestPngIsPalette:
    """Tests for indexed PNG detection."""

    def test_palette_png(self):
        image = Image.new("RGB", (4, 4), (0, 128, 255)).convert("P")
        assert png_is_palette(_encode(image, "PNG"))

    def test_truecolor_png(self):
        assert not png_is_palette(_encode(Image.new("RGB", (4, 4)), "PNG"))

    def test_not_png(self):
        assert not png_is_palette(_encode(Image.new("RGB", (4, 4)), "GIF"))
