"""Image format helpers: MIME normalization and signature sniffing."""

from __future__ import annotations

from ...config import (
    EXTENSION_TO_MIME,
    MIME_ALIASES,
    MIME_GIF,
    MIME_JPEG,
    MIME_PNG,
    MIME_TO_EXTENSION,
    SUPPORTED_OUTPUT_MIME_TYPES,
)

# (offset, signature, mime)
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\x89PNG\r\n\x1a\n", MIME_PNG),
    (0, b"GIF87a", MIME_GIF),
    (0, b"GIF89a", MIME_GIF),
    (0, b"\xff\xd8\xff", MIME_JPEG),
    (0, b"BM", "image/bmp"),
    (8, b"WEBP", "image/webp"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
)

# IHDR colour type lives at byte 25 of a PNG stream
_PNG_COLOR_TYPE_OFFSET = 25
_PNG_COLOR_TYPE_PALETTE = 3


def normalize_mime(mime_type: str | None) -> str | None:
    """Lower-case a MIME type and resolve known aliases."""
    if not mime_type:
        return None
    mime_type = mime_type.strip().lower()
    return MIME_ALIASES.get(mime_type, mime_type)


def is_supported_output(mime_type: str | None) -> bool:
    return normalize_mime(mime_type) in SUPPORTED_OUTPUT_MIME_TYPES


def extension_for(mime_type: str) -> str | None:
    """Canonical file extension (without dot) for an output MIME type."""
    return MIME_TO_EXTENSION.get(normalize_mime(mime_type) or "")


def mime_from_extension(extension: str) -> str | None:
    return EXTENSION_TO_MIME.get(extension.lower().lstrip("."))


def sniff_mime(data: bytes) -> str | None:
    """Detect the image type from its leading bytes.

    Returns:
        MIME type, or None if the signature is not recognized
    """
    for offset, signature, mime in _SIGNATURES:
        if data[offset:offset + len(signature)] == signature:
            return mime
    return None


def png_is_palette(data: bytes) -> bool:
    """Check whether a PNG stream uses an indexed (palette) colour type."""
    if sniff_mime(data) != MIME_PNG or len(data) <= _PNG_COLOR_TYPE_OFFSET:
        return False
    return data[_PNG_COLOR_TYPE_OFFSET] == _PNG_COLOR_TYPE_PALETTE
