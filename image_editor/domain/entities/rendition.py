"""Rendition entities - batch inputs and save/stream results."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SizeSpec:
    """One requested size in a batch."""
    key: str
    width: int
    height: int
    crop: bool = False

    @classmethod
    def from_mapping(cls, key: str, data: dict) -> SizeSpec:
        """Build from ``{"width": .., "height": .., "crop": ..}``."""
        return cls(
            key=key,
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            crop=bool(data.get("crop", False)),
        )


@dataclass(frozen=True, slots=True)
class RenditionResult:
    """One generated size in a batch."""
    width: int
    height: int
    mime_type: str
    file_name: str


@dataclass(frozen=True, slots=True)
class SavedImage:
    """Result of saving the current image."""
    path: Path
    file: str
    width: int
    height: int
    mime_type: str

    def to_rendition(self) -> RenditionResult:
        """Drop the path; batch results only report the file name."""
        return RenditionResult(
            width=self.width,
            height=self.height,
            mime_type=self.mime_type,
            file_name=self.file,
        )


@dataclass(frozen=True, slots=True)
class StreamedImage:
    """Encoded bytes with their content type."""
    content_type: str
    data: bytes

    @property
    def header(self) -> tuple[str, str]:
        return ("Content-Type", self.content_type)


@dataclass(frozen=True, slots=True)
class OutputPlan:
    """How an image will be encoded."""
    mime_type: str
    extension: str
    quality: int
    filename: Path | None = None
    reduce_palette: bool = False
    strip_metadata: bool = True
