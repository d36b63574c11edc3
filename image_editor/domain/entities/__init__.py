"""Domain entities."""

from .image import DecodedImage, ImageHandle
from .rendition import OutputPlan, RenditionResult, SavedImage, SizeSpec, StreamedImage

__all__ = [
    'DecodedImage',
    'ImageHandle',
    'OutputPlan',
    'RenditionResult',
    'SavedImage',
    'SizeSpec',
    'StreamedImage',
]
