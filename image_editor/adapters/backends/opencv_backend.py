"""OpenCV backend - the matrix engine.

Bitmaps are NumPy arrays in OpenCV's BGR / BGRA channel order.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np
import numpy.typing as npt

from ...application.ports.backend import ImageBackend
from ...config import MIME_GIF, MIME_JPEG, MIME_PNG
from ...domain.entities.image import DecodedImage
from ...domain.entities.rendition import OutputPlan
from ...domain.value_objects.formats import normalize_mime, png_is_palette, sniff_mime
from ...domain.value_objects.geometry import Rect8, RotationDirection, Size

logger = logging.getLogger(__name__)

# Type aliases
ImageArray = npt.NDArray[np.uint8]  # HxWx3 (BGR) or HxWx4 (BGRA)

ENCODER_EXTENSIONS: dict[str, str] = {
    MIME_JPEG: ".jpg",
    MIME_PNG: ".png",
    MIME_GIF: ".gif",
}

# Clockwise quarter turns have exact, lossless implementations
QUARTER_TURNS: dict[int, int] = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _to_8bit_color(image: np.ndarray) -> ImageArray:
    """Normalize a decoded array to 8-bit BGR or BGRA."""
    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = np.clip(image * 255.0, 0, 255).astype(np.uint8)

    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 2:
        gray, alpha = image[:, :, 0], image[:, :, 1]
        bgra = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGRA)
        bgra[:, :, 3] = alpha
        return bgra
    return image


class OpenCVBackend(ImageBackend):
    """Backend on top of OpenCV.

    In image coordinates (y pointing down) a positive angle turns the
    picture clockwise, which is the native direction of this backend.
    """

    name = "opencv"
    rotation_direction = RotationDirection.CLOCKWISE
    supports_palette_reduction = False

    @classmethod
    def probe(cls) -> bool:
        ok, encoded = cv2.imencode(".png", np.zeros((1, 1, 3), dtype=np.uint8))
        return bool(ok) and encoded.size > 0

    def can_encode(self, mime_type: str) -> bool:
        extension = ENCODER_EXTENSIONS.get(normalize_mime(mime_type) or "")
        if extension is None:
            return False
        return bool(cv2.haveImageWriter(f"probe{extension}"))

    def decode(self, data: bytes) -> DecodedImage:
        buffer = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise ValueError("OpenCV could not decode the data")
        return DecodedImage(
            native=_to_8bit_color(image),
            mime_type=sniff_mime(data),
            truecolor=not png_is_palette(data),
        )

    def dimensions(self, native: ImageArray) -> Size:
        height, width = native.shape[:2]
        return Size(int(width), int(height))

    def resample(self, native: ImageArray, rect: Rect8) -> ImageArray:
        left, top, right, bottom, mirror_x, mirror_y = rect.source_box()
        region = native[top:bottom, left:right]
        if mirror_x:
            region = region[:, ::-1]
        if mirror_y:
            region = region[::-1, :]
        region = np.ascontiguousarray(region)

        if rect.is_scaled:
            shrinking = rect.dst_w * rect.dst_h < region.shape[0] * region.shape[1]
            interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_CUBIC
            region = cv2.resize(region, (rect.dst_w, rect.dst_h), interpolation=interpolation)

        if (rect.dst_x, rect.dst_y) == (0, 0) and region.shape[:2] == (rect.dst_h, rect.dst_w):
            return region

        canvas = np.zeros((rect.dst_h, rect.dst_w) + native.shape[2:], dtype=native.dtype)
        h = min(region.shape[0], rect.dst_h - rect.dst_y)
        w = min(region.shape[1], rect.dst_w - rect.dst_x)
        canvas[rect.dst_y:rect.dst_y + h, rect.dst_x:rect.dst_x + w] = region[:h, :w]
        return canvas

    def rotate(self, native: ImageArray, angle: float) -> ImageArray:
        angle = angle % 360
        if angle == 0:
            return native.copy()
        if angle in QUARTER_TURNS:
            return cv2.rotate(native, QUARTER_TURNS[int(angle)])

        height, width = native.shape[:2]
        center = (width / 2, height / 2)
        # getRotationMatrix2D turns counter-clockwise for positive angles
        matrix = cv2.getRotationMatrix2D(center, -angle, 1.0)
        cos, sin = abs(matrix[0, 0]), abs(matrix[0, 1])
        new_width = int(round(height * sin + width * cos))
        new_height = int(round(height * cos + width * sin))
        matrix[0, 2] += new_width / 2 - center[0]
        matrix[1, 2] += new_height / 2 - center[1]

        return cv2.warpAffine(
            native,
            matrix,
            (new_width, new_height),
            flags=cv2.INTER_CUBIC,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )

    def encode(self, native: ImageArray, plan: OutputPlan) -> bytes:
        mime_type = normalize_mime(plan.mime_type)
        image = native
        params: list[int] = []

        if mime_type == MIME_JPEG:
            if image.ndim == 3 and image.shape[2] == 4:
                image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
            params = [cv2.IMWRITE_JPEG_QUALITY, int(plan.quality)]
        elif mime_type == MIME_PNG and plan.reduce_palette:
            logger.debug("OpenCV cannot write indexed PNG; writing true colour")

        ok, encoded = cv2.imencode(ENCODER_EXTENSIONS[mime_type], image, params)
        if not ok:
            raise RuntimeError(f"OpenCV could not encode {mime_type}")
        return encoded.tobytes()

    def release(self, native: ImageArray) -> None:
        # Arrays are reclaimed once the last reference is dropped
        del native
