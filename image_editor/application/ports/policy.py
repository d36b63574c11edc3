"""Policy port - external overrides for quality, limits and naming."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from ...domain.value_objects.config import EditorSettings


@runtime_checkable
class EditorPolicy(Protocol):
    """Port for configuration hooks consulted by the editor."""

    def memory_limit(self) -> str | int | None:
        """Memory ceiling to allow before decoding, e.g. ``"256M"``."""
        ...

    def jpeg_quality(self, quality: int, context: str) -> int:
        """Final JPEG quality for an operation tagged ``context``."""
        ...

    def intermediate_filename(self, path: Path) -> Path:
        """Path reported for a written rendition."""
        ...

    def strip_metadata(self) -> bool:
        """Whether metadata is dropped before saving."""
        ...


class SettingsPolicy:
    """Policy backed by :class:`EditorSettings`."""

    def __init__(self, settings: EditorSettings | None = None):
        self.settings = settings or EditorSettings()

    def memory_limit(self) -> str | int | None:
        return self.settings.memory_limit

    def jpeg_quality(self, quality: int, context: str) -> int:
        if self.settings.jpeg_quality is not None:
            return self.settings.jpeg_quality
        return quality

    def intermediate_filename(self, path: Path) -> Path:
        return path

    def strip_metadata(self) -> bool:
        return self.settings.strip_metadata
