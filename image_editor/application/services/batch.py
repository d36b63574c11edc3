"""Multi-size batch generator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Sequence

from ...domain.entities.rendition import RenditionResult, SizeSpec
from ...exceptions import ImageEditorError, ValidationError

if TYPE_CHECKING:
    from .editor import ImageEditor

logger = logging.getLogger(__name__)


def normalize_sizes(sizes: Sequence[SizeSpec] | Mapping[str, Mapping]) -> list[SizeSpec]:
    """Turn batch input into an ordered list of unique SizeSpecs.

    Args:
        sizes: SizeSpecs, or a mapping of key to ``{"width", "height", "crop"}``

    Raises:
        ValidationError: If a key appears twice
    """
    if isinstance(sizes, Mapping):
        specs = [
            spec if isinstance(spec, SizeSpec) else SizeSpec.from_mapping(key, spec)
            for key, spec in sizes.items()
        ]
    else:
        specs = list(sizes)

    seen: set[str] = set()
    for spec in specs:
        if spec.key in seen:
            raise ValidationError(f"Duplicate size key: {spec.key}", field="sizes")
        seen.add(spec.key)
    return specs


class MultiSizeGenerator:
    """Render and save several sizes from one loaded editor.

    Every size is computed from the editor's current image, never from the
    previous size's output, and the editor is left exactly as it was.

    A size that cannot be produced (no valid geometry, backend failure,
    encode or write failure) is logged and left out of the result. This is
    the only place editor errors are absorbed rather than raised.
    """

    def __init__(self, editor: ImageEditor):
        self._editor = editor

    def generate(
        self,
        sizes: Sequence[SizeSpec] | Mapping[str, Mapping],
        mime_type: str | None = None,
        dest_dir: Path | None = None
    ) -> dict[str, RenditionResult]:
        """Produce one rendition per size.

        Args:
            sizes: Requested sizes, in order
            mime_type: Output type for every rendition (defaults to the loaded format)
            dest_dir: Directory for the files (defaults to the source's)

        Returns:
            Mapping of size key to RenditionResult, for the sizes that succeeded
        """
        specs = normalize_sizes(sizes)
        editor = self._editor
        editor.load()

        metadata: dict[str, RenditionResult] = {}
        with editor.preserved_state():
            for spec in specs:
                try:
                    with editor.render(spec.width, spec.height, spec.crop) as rendition:
                        saved = editor.save_rendition(
                            rendition, mime_type=mime_type, dest_dir=dest_dir
                        )
                except ImageEditorError as e:
                    logger.debug(f"Skipping size '{spec.key}': {e}")
                    continue
                metadata[spec.key] = saved.to_rendition()

        logger.info(f"Generated {len(metadata)}/{len(specs)} sizes")
        return metadata
