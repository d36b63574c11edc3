"""Geometry value objects and the resize/crop/flip/rotate math.

Everything here is pure: no I/O and no knowledge of which backend will
consume the results. Backends only declare their native rotation direction;
the sign conventions are resolved in this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator


@dataclass(frozen=True, slots=True)
class Size:
    """Image dimensions in pixels."""
    width: int
    height: int

    def __iter__(self) -> Iterator[int]:
        """Allow unpacking: w, h = size"""
        yield self.width
        yield self.height

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True, slots=True)
class Rect8:
    """Destination and source rectangles of one resampling copy.

    ``src_w``/``src_h`` may be negative; a negative extent reads the
    source backwards starting at ``src_x``/``src_y``, which mirrors it.
    """
    dst_x: int
    dst_y: int
    src_x: int
    src_y: int
    dst_w: int
    dst_h: int
    src_w: int
    src_h: int

    def __iter__(self) -> Iterator[int]:
        """Unpack in (dst_x, dst_y, src_x, src_y, dst_w, dst_h, src_w, src_h) order."""
        yield self.dst_x
        yield self.dst_y
        yield self.src_x
        yield self.src_y
        yield self.dst_w
        yield self.dst_h
        yield self.src_w
        yield self.src_h

    @property
    def dst_size(self) -> Size:
        return Size(self.dst_w, self.dst_h)

    @property
    def src_size(self) -> Size:
        """Absolute size of the source region."""
        return Size(abs(self.src_w), abs(self.src_h))

    @property
    def is_mirrored(self) -> bool:
        return self.src_w < 0 or self.src_h < 0

    @property
    def is_scaled(self) -> bool:
        return self.src_size != self.dst_size

    def source_box(self) -> tuple[int, int, int, int, bool, bool]:
        """Source region as a half-open box plus mirror flags.

        Returns:
            Tuple of (left, top, right, bottom, mirror_x, mirror_y)
        """
        left, right, mirror_x = resolve_span(self.src_x, self.src_w)
        top, bottom, mirror_y = resolve_span(self.src_y, self.src_h)
        return left, top, right, bottom, mirror_x, mirror_y

    def source_within(self, size: Size) -> bool:
        """Check that the source region is non-empty and inside ``size``."""
        left, top, right, bottom, _, _ = self.source_box()
        return (
            0 <= left < right <= size.width and
            0 <= top < bottom <= size.height
        )


class RotationDirection(str, Enum):
    """Direction a backend turns the image for a positive angle."""
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter_clockwise"


def resolve_span(origin: int, extent: int) -> tuple[int, int, bool]:
    """Turn a signed extent into a half-open pixel range.

    A negative extent starts at ``origin`` and walks backwards, so
    ``(w - 1, -w)`` covers ``[0, w)`` in reverse.

    Returns:
        Tuple of (start, stop, mirrored)
    """
    if extent >= 0:
        return origin, origin + extent, False
    return origin + extent + 1, origin + 1, True


def constrain_dimensions(
    current_w: int,
    current_h: int,
    max_w: int = 0,
    max_h: int = 0
) -> tuple[int, int]:
    """Scale dimensions down proportionally to fit within bounds.

    A bound of 0 leaves that axis unconstrained. Never scales up.

    Args:
        current_w: Current width
        current_h: Current height
        max_w: Maximum width (0 for no limit)
        max_h: Maximum height (0 for no limit)

    Returns:
        Tuple of (width, height)
    """
    if not max_w and not max_h:
        return current_w, current_h

    width_ratio = height_ratio = 1.0
    did_width = did_height = False

    if max_w > 0 and current_w > 0 and current_w > max_w:
        width_ratio = max_w / current_w
        did_width = True

    if max_h > 0 and current_h > 0 and current_h > max_h:
        height_ratio = max_h / current_h
        did_height = True

    smaller_ratio = min(width_ratio, height_ratio)
    larger_ratio = max(width_ratio, height_ratio)

    if int(current_w * larger_ratio) > max_w or int(current_h * larger_ratio) > max_h:
        # The larger ratio is too big; it would overflow one of the bounds
        ratio = smaller_ratio
    else:
        ratio = larger_ratio

    w = int(current_w * ratio)
    h = int(current_h * ratio)

    # Float truncation can leave the constrained side one pixel short
    if did_width and w == max_w - 1:
        w = max_w
    if did_height and h == max_h - 1:
        h = max_h

    return w, h


def compute_resize_geometry(
    orig_w: int,
    orig_h: int,
    max_w: int,
    max_h: int,
    crop: bool = False
) -> Rect8 | None:
    """Compute the copy rectangles for a resize.

    Without ``crop`` the image is fit inside ``max_w x max_h``. With
    ``crop`` it fills the box exactly and the centered part of the source
    that maps onto it is selected. Sizes are truncated and the centering
    offset is floored, so the right and bottom edges absorb any odd pixel.

    A bound of 0 leaves that axis free. Images are never enlarged.

    Args:
        orig_w: Original width
        orig_h: Original height
        max_w: Target width bound
        max_h: Target height bound
        crop: Fill the box and crop the overflow instead of fitting

    Returns:
        Rect8, or None when no valid smaller rectangle exists
    """
    if orig_w <= 0 or orig_h <= 0:
        return None
    if max_w < 0 or max_h < 0:
        return None
    if max_w == 0 and max_h == 0:
        return None

    if crop:
        new_w = min(max_w, orig_w)
        new_h = min(max_h, orig_h)

        if not new_w:
            new_w = new_h * orig_w // orig_h
        if not new_h:
            new_h = new_w * orig_h // orig_w
        if new_w <= 0 or new_h <= 0:
            return None

        # The larger scale factor wins; compare new_w/orig_w with new_h/orig_h
        if new_w * orig_h >= new_h * orig_w:
            crop_w = orig_w
            crop_h = new_h * orig_w // new_w
        else:
            crop_h = orig_h
            crop_w = new_w * orig_h // new_h

        src_x = (orig_w - crop_w) // 2
        src_y = (orig_h - crop_h) // 2
    else:
        crop_w, crop_h = orig_w, orig_h
        src_x = src_y = 0
        new_w, new_h = constrain_dimensions(orig_w, orig_h, max_w, max_h)
        if new_w <= 0 or new_h <= 0:
            return None

    # Same size or larger is not a resize
    if new_w >= orig_w and new_h >= orig_h:
        return None

    return Rect8(0, 0, src_x, src_y, new_w, new_h, crop_w, crop_h)


def compute_crop_rect(
    src_x: int,
    src_y: int,
    src_w: int,
    src_h: int,
    dst_w: int | None = None,
    dst_h: int | None = None,
    absolute: bool = False
) -> Rect8:
    """Compute the copy rectangles for a crop.

    Args:
        src_x: Left edge of the region
        src_y: Top edge of the region
        src_w: Region width, or right edge when ``absolute``
        src_h: Region height, or bottom edge when ``absolute``
        dst_w: Output width (defaults to the region width)
        dst_h: Output height (defaults to the region height)
        absolute: Interpret ``src_w``/``src_h`` as coordinates

    Returns:
        Rect8 with the destination anchored at (0, 0)
    """
    if absolute:
        src_w -= src_x
        src_h -= src_y

    dst_w = dst_w or src_w
    dst_h = dst_h or src_h

    return Rect8(0, 0, int(src_x), int(src_y), int(dst_w), int(dst_h), int(src_w), int(src_h))


def flip_transform(horizontal: bool, vertical: bool, w: int, h: int) -> Rect8:
    """Express a flip as a copy with negative source extents.

    ``horizontal`` mirrors across the horizontal axis (top and bottom swap);
    ``vertical`` mirrors across the vertical axis (left and right swap).
    """
    src_x = w - 1 if vertical else 0
    src_y = h - 1 if horizontal else 0
    src_w = -w if vertical else w
    src_h = -h if horizontal else h
    return Rect8(0, 0, src_x, src_y, w, h, src_w, src_h)


def rotate_angle_normalize(angle: float, direction: RotationDirection) -> float:
    """Translate a counter-clockwise-positive angle for a backend.

    Args:
        angle: Requested angle in degrees, counter-clockwise positive
        direction: The backend's native rotation direction

    Returns:
        Angle to hand to the backend's native rotation
    """
    if direction == RotationDirection.CLOCKWISE:
        return 360 - angle
    return angle
