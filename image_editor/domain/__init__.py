"""Domain layer - geometry, formats and session entities."""

from .entities.image import DecodedImage, ImageHandle
from .entities.rendition import OutputPlan, RenditionResult, SavedImage, SizeSpec, StreamedImage
from .value_objects.config import EditorSettings
from .value_objects.geometry import (
    Rect8,
    RotationDirection,
    Size,
    compute_crop_rect,
    compute_resize_geometry,
    flip_transform,
    rotate_angle_normalize,
)

__all__ = [
    # Entities
    'DecodedImage',
    'ImageHandle',
    'OutputPlan',
    'RenditionResult',
    'SavedImage',
    'SizeSpec',
    'StreamedImage',
    # Value Objects
    'EditorSettings',
    'Rect8',
    'RotationDirection',
    'Size',
    'compute_crop_rect',
    'compute_resize_geometry',
    'flip_transform',
    'rotate_angle_normalize',
]
