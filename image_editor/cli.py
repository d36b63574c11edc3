"""Command-line interface for the image editor."""

import argparse
import logging
import re
import sys
from pathlib import Path

from .config import EDITOR_CONFIG, BackendName
from .domain.entities.rendition import SizeSpec
from .exceptions import ImageEditorError
from .infrastructure.backend_registry import BackendRegistry, get_image_editor
from .utils.env import load_settings_from_env, setup_logging

_SIZE_RE = re.compile(r"^(?P<key>[^=]+)=(?P<width>\d+)x(?P<height>\d+)(?P<crop>:crop)?$")


def parse_size(value: str) -> SizeSpec:
    """Parse ``KEY=WxH`` or ``KEY=WxH:crop``."""
    match = _SIZE_RE.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(
            f"Invalid size '{value}', expected KEY=WIDTHxHEIGHT[:crop]"
        )
    return SizeSpec(
        key=match.group("key"),
        width=int(match.group("width")),
        height=int(match.group("height")),
        crop=match.group("crop") is not None,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="image-editor",
        description="Generate resized renditions of an image"
    )

    parser.add_argument("input", help="Source image")
    parser.add_argument("-o", "--output", required=True, help="Output folder")

    parser.add_argument(
        "-s", "--size",
        dest="sizes",
        action="append",
        type=parse_size,
        required=True,
        metavar="KEY=WxH[:crop]",
        help="Rendition to generate (repeatable), e.g. thumbnail=150x150:crop"
    )

    parser.add_argument(
        "-b", "--backend",
        choices=[b.value for b in BackendName],
        default=None,
        help="Image backend (default: first available)"
    )

    parser.add_argument(
        "-q", "--quality",
        type=int,
        default=None,
        help=f"Compression quality 0-100 (default: {EDITOR_CONFIG.default_quality})"
    )

    parser.add_argument(
        "-f", "--format",
        dest="mime_type",
        default=None,
        metavar="MIME",
        help="Output type: image/jpeg, image/png or image/gif (default: same as input)"
    )

    parser.add_argument(
        "--list-backends",
        action="store_true",
        help="Print usable backends and exit"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    return parser


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point."""
    argv = sys.argv[1:] if args is None else args
    if "--list-backends" in argv:
        for name in BackendRegistry.list_available():
            print(name)
        return 0

    parser = create_parser()
    parsed = parser.parse_args(argv)

    # Setup logging
    setup_logging(logging.DEBUG if parsed.verbose else logging.INFO)
    logger = logging.getLogger(__name__)

    # Validate paths
    input_path = Path(parsed.input)
    output_path = Path(parsed.output)

    if not input_path.is_file():
        logger.error(f"Input not found: {input_path}")
        return 1

    output_path.mkdir(parents=True, exist_ok=True)

    try:
        settings = load_settings_from_env(default_quality=parsed.quality)
        editor = get_image_editor(input_path, backend=parsed.backend, settings=settings)
        with editor:
            logger.info(
                f"Loaded {input_path.name} ({editor.size.width}x{editor.size.height}, "
                f"{editor.original_mime}) with {editor.backend.name}"
            )
            results = editor.multi_resize(
                parsed.sizes, mime_type=parsed.mime_type, dest_dir=output_path
            )
    except ImageEditorError as e:
        logger.error(f"Failed: {e}")
        return 1

    for key, rendition in results.items():
        print(
            f"{key}: {rendition.file_name} "
            f"({rendition.width}x{rendition.height}, {rendition.mime_type})"
        )

    missing = [spec.key for spec in parsed.sizes if spec.key not in results]
    if missing:
        logger.warning(f"Completed: {len(results)}/{len(parsed.sizes)} sizes generated")
        for key in missing:
            logger.error(f"  - {key}: not generated")
        return 1

    logger.info(f"Completed: All {len(results)} sizes generated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
