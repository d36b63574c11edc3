"""Value objects - immutable data with validation."""

from .geometry import (
    Rect8,
    RotationDirection,
    Size,
    compute_crop_rect,
    compute_resize_geometry,
    constrain_dimensions,
    flip_transform,
    rotate_angle_normalize,
)
from .config import EditorSettings, parse_memory_limit

__all__ = [
    'Rect8',
    'RotationDirection',
    'Size',
    'compute_crop_rect',
    'compute_resize_geometry',
    'constrain_dimensions',
    'flip_transform',
    'rotate_angle_normalize',
    'EditorSettings',
    'parse_memory_limit',
]
