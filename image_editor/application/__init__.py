"""Application layer - use cases and orchestration."""

from .services.batch import MultiSizeGenerator
from .services.editor import ImageEditor

__all__ = ['ImageEditor', 'MultiSizeGenerator']
