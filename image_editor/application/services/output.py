"""Output resolution shared by save and stream."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from ...config import EDITOR_CONFIG, MIME_JPEG, MIME_PNG
from ...domain.entities.rendition import OutputPlan
from ...domain.value_objects.formats import (
    extension_for,
    is_supported_output,
    mime_from_extension,
    normalize_mime,
)
from ...exceptions import ConfigurationError, UnsupportedOutputFormat
from ..ports.backend import ImageBackend
from ..ports.policy import EditorPolicy

logger = logging.getLogger(__name__)


class OutputResolver:
    """Decide MIME type, extension, quality and palette handling for an encode.

    Only GIF, PNG and JPEG are produced. Anything else fails
    deterministically instead of guessing an encoder.

    The output type is the requested one, else the type implied by the
    extension of an explicit filename, else the type the image was loaded as.

    Palette reduction is only planned for PNG output of a palette-based
    original. A true-colour original stays true-colour, so
    ``resolve(None, ...)`` for PNG on a true-colour source returns a plan
    with ``reduce_palette=False``.
    """

    def __init__(self, backend: ImageBackend, policy: EditorPolicy):
        self._backend = backend
        self._policy = policy

    def resolve(
        self,
        original_mime: str | None,
        quality: int,
        requested_filename: Path | str | None = None,
        requested_mime: str | None = None,
        *,
        original_truecolor: bool = True,
        buffer_truecolor: bool = True,
        context: str = EDITOR_CONFIG.save_context,
        filename_factory: Callable[[str], Path] | None = None,
        file: str | None = None
    ) -> OutputPlan:
        """Build the encode plan.

        Args:
            original_mime: Format detected when the image was loaded
            quality: Session (or per-call) quality
            requested_filename: Explicit output path
            requested_mime: Explicit output type, wins over the filename
                extension and ``original_mime``
            original_truecolor: Whether the loaded image was direct colour
            buffer_truecolor: Whether the bitmap about to be encoded is
            context: Tag passed to the JPEG quality hook
            filename_factory: Called with the extension when no filename is given
            file: Source file, for error messages

        Returns:
            OutputPlan

        Raises:
            UnsupportedOutputFormat: If the type is not GIF, PNG or JPEG,
                or the backend has no encoder for it
        """
        mime_type = (
            normalize_mime(requested_mime)
            or self._mime_from_filename(requested_filename)
            or normalize_mime(original_mime)
        )

        if not is_supported_output(mime_type):
            raise UnsupportedOutputFormat(
                f"Unsupported output format: {mime_type or 'unknown'}",
                file=file,
                mime_type=mime_type,
            )
        if not self._backend.can_encode(mime_type):
            raise UnsupportedOutputFormat(
                f"Backend '{self._backend.name}' cannot encode {mime_type}",
                file=file,
                mime_type=mime_type,
            )

        if mime_type == MIME_JPEG:
            quality = self._policy.jpeg_quality(quality, context)
            if not EDITOR_CONFIG.min_quality <= quality <= EDITOR_CONFIG.max_quality:
                raise ConfigurationError(
                    f"JPEG quality override out of range: {quality}",
                    config_key="jpeg_quality",
                )

        # Keep a palette original palette-based after true-colour resampling
        reduce_palette = mime_type == MIME_PNG and not original_truecolor and buffer_truecolor

        extension = extension_for(mime_type)
        if requested_filename is not None:
            filename = Path(requested_filename)
        elif filename_factory is not None:
            filename = filename_factory(extension)
        else:
            filename = None

        plan = OutputPlan(
            mime_type=mime_type,
            extension=extension,
            quality=quality,
            filename=filename,
            reduce_palette=reduce_palette,
            strip_metadata=self._policy.strip_metadata(),
        )
        logger.debug(f"Output plan: {plan}")
        return plan

    @staticmethod
    def _mime_from_filename(filename: Path | str | None) -> str | None:
        if filename is None:
            return None
        suffix = Path(filename).suffix
        return mime_from_extension(suffix) if suffix else None
