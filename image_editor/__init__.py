"""Image Editor - resize, crop, rotate and flip images over interchangeable backends."""

__version__ = "1.0.0"

from .application.services.editor import ImageEditor
from .config import BackendName, EDITOR_CONFIG
from .domain.entities.rendition import RenditionResult, SavedImage, SizeSpec, StreamedImage
from .domain.value_objects.config import EditorSettings
from .exceptions import (
    ImageEditorError,
    ConfigurationError,
    ValidationError,
    BackendUnavailable,
    SourceNotFound,
    InvalidImage,
    DimensionError,
    ResizeFailed,
    CropFailed,
    RotateFailed,
    FlipFailed,
    UnsupportedOutputFormat,
    EncodeFailed,
)
from .infrastructure.backend_registry import BackendRegistry, get_image_editor
from .utils.env import load_settings_from_env, setup_logging

__all__ = [
    '__version__',
    'ImageEditor',
    'BackendName',
    'BackendRegistry',
    'EDITOR_CONFIG',
    'EditorSettings',
    'SizeSpec',
    'RenditionResult',
    'SavedImage',
    'StreamedImage',
    'get_image_editor',
    'load_settings_from_env',
    'setup_logging',
    # Exceptions
    'ImageEditorError',
    'ConfigurationError',
    'ValidationError',
    'BackendUnavailable',
    'SourceNotFound',
    'InvalidImage',
    'DimensionError',
    'ResizeFailed',
    'CropFailed',
    'RotateFailed',
    'FlipFailed',
    'UnsupportedOutputFormat',
    'EncodeFailed',
]
