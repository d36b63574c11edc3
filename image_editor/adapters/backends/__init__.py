"""Backend adapters - implementations of the ImageBackend port."""

from .pillow_backend import PillowBackend

try:
    from .opencv_backend import OpenCVBackend
    __all__ = ['PillowBackend', 'OpenCVBackend']
except ImportError:
    __all__ = ['PillowBackend']
