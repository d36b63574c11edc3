"""Configuration and constants for the image editor."""

from dataclasses import dataclass
from enum import Enum


class BackendName(str, Enum):
    """Built-in image backends."""
    AUTO = "auto"
    OPENCV = "opencv"
    PILLOW = "pillow"


# Probe order when no backend is requested explicitly
DEFAULT_BACKEND_PREFERENCE: tuple[str, ...] = (
    BackendName.OPENCV.value,
    BackendName.PILLOW.value,
)


# Output formats
MIME_GIF = "image/gif"
MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"

SUPPORTED_OUTPUT_MIME_TYPES: tuple[str, ...] = (MIME_GIF, MIME_PNG, MIME_JPEG)

MIME_ALIASES: dict[str, str] = {
    "image/jpg": MIME_JPEG,
    "image/pjpeg": MIME_JPEG,
    "image/mpo": MIME_JPEG,
}

MIME_TO_EXTENSION: dict[str, str] = {
    MIME_GIF: "gif",
    MIME_PNG: "png",
    MIME_JPEG: "jpg",
}

# Output type implied by an explicit filename; non-output types are rejected by name
EXTENSION_TO_MIME: dict[str, str] = {
    "gif": MIME_GIF,
    "png": MIME_PNG,
    "jpg": MIME_JPEG,
    "jpeg": MIME_JPEG,
    "jpe": MIME_JPEG,
    "bmp": "image/bmp",
    "webp": "image/webp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
}


@dataclass(frozen=True)
class ImageEditorConfig:
    """Editor defaults."""
    default_quality: int = 90
    min_quality: int = 0
    max_quality: int = 100

    # Quality-hook contexts
    save_context: str = "image_resize"
    stream_context: str = "image_stream"

    # Name used for generated files when the source was raw bytes
    default_basename: str = "image"

    # Parent directory bits kept on written files (no execute bits)
    file_permission_mask: int = 0o666

    # Assumed bytes per pixel when turning a memory limit into a pixel ceiling
    bytes_per_pixel: int = 4


EDITOR_CONFIG = ImageEditorConfig()


# Environment
ENV_PREFIX = "IMAGE_EDITOR_"


# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
