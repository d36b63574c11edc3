"""Backend port - primitives every image engine must provide."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache

from ...config import SUPPORTED_OUTPUT_MIME_TYPES
from ...domain.entities.image import DecodedImage
from ...domain.entities.rendition import OutputPlan
from ...domain.value_objects.formats import normalize_mime
from ...domain.value_objects.geometry import Rect8, RotationDirection, Size

logger = logging.getLogger(__name__)


class ImageBackend(ABC):
    """Abstract base class for image engines.

    A backend only supplies decode, encode, resampling copy and rotation
    primitives on its own native bitmap type. Geometry, the no-op checks,
    batching and output resolution live in the editor and are shared.

    Primitives return new bitmaps and never modify their input. When a
    primitive fails it must dispose of anything it allocated before
    raising.

    Example:
        class MyBackend(ImageBackend):
            name = "mine"
            rotation_direction = RotationDirection.CLOCKWISE

            @classmethod
            def probe(cls) -> bool:
                import mylib
                return mylib.ready()

            def decode(self, data: bytes) -> DecodedImage:
                return DecodedImage(mylib.load(data), "image/png")
            ...
    """

    name: str = ""
    rotation_direction: RotationDirection = RotationDirection.COUNTER_CLOCKWISE
    supports_palette_reduction: bool = False

    @classmethod
    @lru_cache(maxsize=None)
    def is_available(cls) -> bool:
        """Check once per process whether the native library is usable."""
        try:
            available = bool(cls.probe())
        except Exception as e:
            logger.debug(f"Backend '{cls.name}' probe failed: {e}")
            available = False
        logger.debug(f"Backend '{cls.name}' available: {available}")
        return available

    @classmethod
    @abstractmethod
    def probe(cls) -> bool:
        """Import the native library and run a minimal smoke test.

        May raise; any exception counts as unavailable.
        """
        pass

    @abstractmethod
    def decode(self, data: bytes) -> DecodedImage:
        """Decode source bytes into a native bitmap.

        Animated sources are reduced to their first frame.

        Raises:
            Exception: If the bytes are not a decodable image
        """
        pass

    @abstractmethod
    def dimensions(self, native: object) -> Size:
        """Read the bitmap's current size."""
        pass

    @abstractmethod
    def resample(self, native: object, rect: Rect8) -> object:
        """Copy ``rect``'s source region into a new ``dst_w x dst_h`` bitmap.

        Negative source extents must be honored (they mirror the region).
        """
        pass

    @abstractmethod
    def rotate(self, native: object, angle: float) -> object:
        """Rotate by ``angle`` degrees in :attr:`rotation_direction`.

        The canvas grows to fit the rotated image.
        """
        pass

    @abstractmethod
    def encode(self, native: object, plan: OutputPlan) -> bytes:
        """Encode the bitmap according to ``plan``."""
        pass

    @abstractmethod
    def release(self, native: object) -> None:
        """Free the native bitmap."""
        pass

    def can_encode(self, mime_type: str) -> bool:
        """Check whether this backend has an encoder for ``mime_type``."""
        return normalize_mime(mime_type) in SUPPORTED_OUTPUT_MIME_TYPES

    def is_truecolor(self, native: object) -> bool:
        """Check whether the bitmap is direct colour rather than palette."""
        return True

    def apply_memory_limit(self, limit_bytes: int | None) -> None:
        """Raise the decode ceiling before loading. Best effort."""
        if limit_bytes:
            logger.debug(f"Backend '{self.name}' ignores memory limit hint")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
