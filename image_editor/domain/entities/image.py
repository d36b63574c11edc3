"""Image handle entity - single owner of one decoded bitmap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..value_objects.geometry import Size

logger = logging.getLogger(__name__)


@runtime_checkable
class BitmapOwner(Protocol):
    """What a handle needs from the backend that produced its bitmap."""

    def dimensions(self, native: object) -> Size: ...

    def release(self, native: object) -> None: ...


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """Result of decoding source bytes."""
    native: object
    mime_type: str | None
    truecolor: bool = True


class ImageHandle:
    """Owns one native bitmap (a Pillow image or a NumPy array).

    The bitmap is released exactly once: either explicitly through
    :meth:`release` or when leaving a ``with`` block. Accessing
    :attr:`native` after release is an error.
    """

    __slots__ = ('_owner', '_native')

    def __init__(self, owner: BitmapOwner, native: object):
        if native is None:
            raise ValueError("Cannot wrap an empty bitmap")
        self._owner = owner
        self._native: object | None = native

    @property
    def native(self) -> object:
        if self._native is None:
            raise RuntimeError("Image handle has been released")
        return self._native

    @property
    def released(self) -> bool:
        return self._native is None

    @property
    def size(self) -> Size:
        return self._owner.dimensions(self.native)

    def release(self) -> None:
        """Free the bitmap. Safe to call more than once."""
        native, self._native = self._native, None
        if native is None:
            return
        try:
            self._owner.release(native)
        except Exception as e:
            logger.warning(f"Failed to release image resource: {e}")

    def __enter__(self) -> ImageHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else type(self._native).__name__
        return f"ImageHandle({state})"
