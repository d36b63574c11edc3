"""Application services - orchestrate use cases."""

from .batch import MultiSizeGenerator
from .editor import ImageEditor
from .output import OutputResolver

__all__ = ['ImageEditor', 'MultiSizeGenerator', 'OutputResolver']
