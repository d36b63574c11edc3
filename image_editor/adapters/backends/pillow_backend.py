"""Pillow backend - the raster-copy engine."""

from __future__ import annotations

import io
import logging

from PIL import Image

from ...application.ports.backend import ImageBackend
from ...config import EDITOR_CONFIG, MIME_GIF, MIME_JPEG, MIME_PNG
from ...domain.entities.image import DecodedImage
from ...domain.entities.rendition import OutputPlan
from ...domain.value_objects.formats import normalize_mime, sniff_mime
from ...domain.value_objects.geometry import Rect8, RotationDirection, Size

logger = logging.getLogger(__name__)

PIL_FORMATS: dict[str, str] = {
    MIME_JPEG: "JPEG",
    MIME_PNG: "PNG",
    MIME_GIF: "GIF",
}

PALETTE_MODES = ("P", "PA", "1")
ALPHA_MODES = ("RGBA", "RGBa", "LA", "La", "PA")
JPEG_MODES = ("RGB", "L", "CMYK")


def _working_mode(image: Image.Image) -> str:
    """True-colour mode used for resampled copies of ``image``."""
    if image.mode in ALPHA_MODES:
        return "RGBA"
    if image.mode == "P" and "transparency" in image.info:
        return "RGBA"
    return "RGB"


def _to_palette(image: Image.Image) -> Image.Image:
    """Reduce a true-colour image to at most 256 indexed colours."""
    if image.mode == "RGBA":
        return image.quantize(colors=256, method=Image.Quantize.FASTOCTREE)
    return image.convert("RGB").quantize(colors=256)


class PillowBackend(ImageBackend):
    """Backend on top of Pillow.

    Pillow's ``Image.rotate`` turns counter-clockwise for a positive angle.
    """

    name = "pillow"
    rotation_direction = RotationDirection.COUNTER_CLOCKWISE
    supports_palette_reduction = True

    @classmethod
    def probe(cls) -> bool:
        buffer = io.BytesIO()
        Image.new("RGB", (1, 1)).save(buffer, format="PNG")
        return buffer.tell() > 0

    def apply_memory_limit(self, limit_bytes: int | None) -> None:
        """Raise Pillow's decompression-bomb ceiling to match the limit."""
        if not limit_bytes or Image.MAX_IMAGE_PIXELS is None:
            return
        max_pixels = limit_bytes // EDITOR_CONFIG.bytes_per_pixel
        if max_pixels > Image.MAX_IMAGE_PIXELS:
            logger.debug(f"Raising Pillow pixel ceiling to {max_pixels}")
            Image.MAX_IMAGE_PIXELS = max_pixels

    def decode(self, data: bytes) -> DecodedImage:
        with Image.open(io.BytesIO(data)) as opened:
            # Signature first: Pillow reports multi-picture JPEGs as MPO
            mime_type = sniff_mime(data) or Image.MIME.get(opened.format or "")
            # First frame only for animated sources
            opened.seek(0)
            frame = opened.copy()
        return DecodedImage(
            native=frame,
            mime_type=mime_type,
            truecolor=frame.mode not in PALETTE_MODES,
        )

    def dimensions(self, native: Image.Image) -> Size:
        width, height = native.size
        return Size(width, height)

    def is_truecolor(self, native: Image.Image) -> bool:
        return native.mode not in PALETTE_MODES

    def resample(self, native: Image.Image, rect: Rect8) -> Image.Image:
        left, top, right, bottom, mirror_x, mirror_y = rect.source_box()
        mode = _working_mode(native)
        source = native if native.mode == mode else native.convert(mode)

        try:
            if rect.is_scaled:
                region = source.resize(
                    (rect.dst_w, rect.dst_h),
                    Image.Resampling.LANCZOS,
                    box=(left, top, right, bottom),
                )
            else:
                region = source.crop((left, top, right, bottom))

            if mirror_x:
                region = region.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
            if mirror_y:
                region = region.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        finally:
            if source is not native:
                source.close()

        if (rect.dst_x, rect.dst_y) == (0, 0):
            return region

        canvas = Image.new(mode, (rect.dst_w, rect.dst_h))
        try:
            canvas.paste(region, (rect.dst_x, rect.dst_y))
        except Exception:
            canvas.close()
            raise
        finally:
            region.close()
        return canvas

    def rotate(self, native: Image.Image, angle: float) -> Image.Image:
        mode = _working_mode(native)
        source = native if native.mode == mode else native.convert(mode)
        fill = (0, 0, 0, 0) if mode == "RGBA" else (0, 0, 0)
        try:
            return source.rotate(
                angle % 360,
                resample=Image.Resampling.BICUBIC,
                expand=True,
                fillcolor=fill,
            )
        finally:
            if source is not native:
                source.close()

    def encode(self, native: Image.Image, plan: OutputPlan) -> bytes:
        pil_format = PIL_FORMATS[normalize_mime(plan.mime_type)]
        image = native
        params: dict[str, object] = {}

        if pil_format == "JPEG":
            if image.mode not in JPEG_MODES:
                image = image.convert("RGB")
            params["quality"] = plan.quality
        elif pil_format == "PNG" and plan.reduce_palette and image.mode not in PALETTE_MODES:
            image = _to_palette(image)

        if not plan.strip_metadata and pil_format != "GIF":
            for key in ("icc_profile", "exif"):
                if native.info.get(key):
                    params[key] = native.info[key]

        buffer = io.BytesIO()
        try:
            image.save(buffer, format=pil_format, **params)
        finally:
            if image is not native:
                image.close()
        return buffer.getvalue()

    def release(self, native: Image.Image) -> None:
        native.close()
