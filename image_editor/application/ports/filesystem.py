"""Filesystem port - file access used by load and save."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Protocol, runtime_checkable

from ...config import EDITOR_CONFIG
from ...domain.value_objects.geometry import Size

logger = logging.getLogger(__name__)


@runtime_checkable
class FileSystem(Protocol):
    """Port for filesystem operations."""

    def exists(self, path: Path) -> bool:
        """Check that ``path`` is an existing file."""
        ...

    def read_bytes(self, path: Path) -> bytes:
        """Read a whole file."""
        ...

    def write_bytes(self, path: Path, data: bytes) -> None:
        """Write a whole file, creating parent directories."""
        ...

    def normalize_permissions(self, path: Path) -> None:
        """Give ``path`` its parent directory's read/write bits."""
        ...

    def generate_filename(
        self,
        source: Path | None,
        size: Size,
        extension: str,
        suffix: str | None = None,
        dest_dir: Path | None = None
    ) -> Path:
        """Derive an output path from the source path."""
        ...


class LocalFileSystem:
    """Reads and writes files on the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def read_bytes(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: Path, data: bytes) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)

    def normalize_permissions(self, path: Path) -> None:
        """Copy the parent directory's read/write bits onto ``path``.

        Execute bits are always stripped. Failures are logged and ignored:
        the file is already complete on disk.
        """
        path = Path(path)
        try:
            parent_mode = stat.S_IMODE(path.parent.stat().st_mode)
            os.chmod(path, parent_mode & EDITOR_CONFIG.file_permission_mask)
        except OSError as e:
            logger.warning(f"Could not set permissions on {path}: {e}")

    def generate_filename(
        self,
        source: Path | None,
        size: Size,
        extension: str,
        suffix: str | None = None,
        dest_dir: Path | None = None
    ) -> Path:
        """Build ``{dir}/{stem}-{suffix}.{ext}``.

        Args:
            source: Source image path (None for in-memory sources)
            size: Current image size, used for the default ``{w}x{h}`` suffix
            extension: Output extension, with or without the dot
            suffix: Custom suffix
            dest_dir: Directory to write into instead of the source's

        Returns:
            Output path
        """
        if not suffix:
            suffix = f"{size.width}x{size.height}"

        if source is not None:
            directory = Path(source).parent
            stem = Path(source).stem
        else:
            directory = Path.cwd()
            stem = EDITOR_CONFIG.default_basename

        if dest_dir is not None:
            directory = Path(dest_dir)

        extension = extension.lower().lstrip(".")
        return directory / f"{stem}-{suffix}.{extension}"
