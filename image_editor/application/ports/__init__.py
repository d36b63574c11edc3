"""Ports - interfaces for external dependencies (Dependency Inversion)."""

from .backend import ImageBackend
from .filesystem import FileSystem, LocalFileSystem
from .policy import EditorPolicy, SettingsPolicy

__all__ = [
    'ImageBackend',
    'FileSystem',
    'LocalFileSystem',
    'EditorPolicy',
    'SettingsPolicy',
]
