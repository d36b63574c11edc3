"""Image editor service - one editing session over one backend."""

from __future__ import annotations

import logging
import weakref
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Mapping, Sequence

from ...config import EDITOR_CONFIG
from ...domain.entities.image import ImageHandle
from ...domain.entities.rendition import (
    OutputPlan,
    RenditionResult,
    SavedImage,
    SizeSpec,
    StreamedImage,
)
from ...domain.value_objects.config import EditorSettings, parse_memory_limit
from ...domain.value_objects.formats import normalize_mime
from ...domain.value_objects.geometry import (
    Size,
    compute_crop_rect,
    compute_resize_geometry,
    flip_transform,
    rotate_angle_normalize,
)
from ...exceptions import (
    BackendUnavailable,
    ConfigurationError,
    CropFailed,
    DimensionError,
    EncodeFailed,
    FlipFailed,
    ImageEditorError,
    InvalidImage,
    ResizeFailed,
    RotateFailed,
    SourceNotFound,
    ValidationError,
)
from ..ports.backend import ImageBackend
from ..ports.filesystem import FileSystem, LocalFileSystem
from ..ports.policy import EditorPolicy, SettingsPolicy
from .batch import MultiSizeGenerator
from .output import OutputResolver

logger = logging.getLogger(__name__)


class ImageEditor:
    """Edit one image through an :class:`ImageBackend`.

    The editor owns exactly one decoded bitmap. Every successful transform
    replaces it and releases the old one; a failed transform leaves it
    untouched. The bitmap is freed by :meth:`close`, on leaving a ``with``
    block, or when the editor itself is garbage collected. Geometry, the
    no-op checks, batching and output resolution are shared by all backends.

    Example:
        >>> with ImageEditor("photo.jpg", backend=PillowBackend()) as editor:
        ...     editor.resize(1024, 768)
        ...     editor.rotate(90)
        ...     saved = editor.save()
    """

    def __init__(
        self,
        source: Path | str | bytes,
        backend: ImageBackend | None = None,
        settings: EditorSettings | None = None,
        policy: EditorPolicy | None = None,
        filesystem: FileSystem | None = None
    ):
        """Create a session. Nothing is decoded until :meth:`load`.

        Args:
            source: Image path, or the encoded bytes themselves
            backend: Engine to use; None fails with BackendUnavailable on load
            settings: Editor settings (defaults apply when omitted)
            policy: Override hooks (defaults to the settings)
            filesystem: File access (defaults to the local disk)
        """
        self.settings = settings or EditorSettings()
        self._backend = backend
        self._policy = policy or SettingsPolicy(self.settings)
        self._fs = filesystem or LocalFileSystem()

        if isinstance(source, (bytes, bytearray, memoryview)):
            self.file: Path | None = None
            self._data: bytes | None = bytes(source)
        else:
            self.file = Path(source)
            self._data = None

        self._handle: ImageHandle | None = None
        self._finalizer: weakref.finalize | None = None
        self._size: Size | None = None
        self.quality: int = self.settings.default_quality
        self.original_mime: str | None = None
        self.original_truecolor: bool = True

    # -- session state -------------------------------------------------

    @property
    def backend(self) -> ImageBackend:
        if self._backend is None:
            raise BackendUnavailable("No image backend is available")
        return self._backend

    @property
    def size(self) -> Size | None:
        """Current size, None before :meth:`load`."""
        return self._size

    @property
    def is_loaded(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> ImageHandle | None:
        return self._handle

    @property
    def _file_label(self) -> str | None:
        return str(self.file) if self.file is not None else None

    def _require_handle(self) -> ImageHandle:
        if self._handle is None:
            self.load()
        return self._handle

    # -- lifecycle -------------------------------------------------------

    def load(self) -> None:
        """Decode the source into a bitmap.

        Does nothing if already loaded.

        Raises:
            BackendUnavailable: If no backend was provided
            SourceNotFound: If the source file does not exist
            InvalidImage: If the data is empty, undecodable, or has no size
        """
        if self._handle is not None:
            return

        backend = self.backend
        data = self._read_source()
        if not data:
            raise InvalidImage("File is empty.", self._file_label)

        backend.apply_memory_limit(self._memory_limit())

        try:
            decoded = backend.decode(data)
        except Exception as e:
            raise InvalidImage(f"File is not an image: {e}", self._file_label) from e
        if decoded.native is None:
            raise InvalidImage("File is not an image.", self._file_label)

        handle = ImageHandle(backend, decoded.native)
        try:
            size = handle.size
        except Exception as e:
            handle.release()
            raise InvalidImage(
                f"Could not read image size: {e}", self._file_label, reason="size"
            ) from e
        if not size.is_valid:
            handle.release()
            raise InvalidImage(
                f"Could not read image size: {size.width}x{size.height}",
                self._file_label,
                reason="size",
            )

        self._set_handle(handle)
        self._size = size
        self.original_mime = normalize_mime(decoded.mime_type)
        self.original_truecolor = decoded.truecolor
        self.set_quality()

        logger.debug(
            f"Loaded {self._file_label or '<bytes>'} with {backend.name}: "
            f"{size.width}x{size.height} {self.original_mime}"
        )

    def _read_source(self) -> bytes:
        if self._data is not None:
            return self._data
        if not self._fs.exists(self.file):
            raise SourceNotFound("File doesn't exist.", self._file_label)
        try:
            return self._fs.read_bytes(self.file)
        except OSError as e:
            raise InvalidImage(f"Could not read file: {e}", self._file_label) from e

    def _memory_limit(self) -> int | None:
        value = self._policy.memory_limit()
        try:
            return parse_memory_limit(value)
        except ValueError as e:
            raise ConfigurationError(str(e), config_key="memory_limit") from e

    def close(self) -> None:
        """Release the bitmap. Safe to call more than once."""
        if self._handle is not None:
            self._handle.release()
            self._set_handle(None)

    def _set_handle(self, handle: ImageHandle | None) -> None:
        """Make ``handle`` the session bitmap, released when the editor is collected."""
        if self._finalizer is not None:
            self._finalizer.detach()
        self._handle = handle
        self._finalizer = weakref.finalize(self, handle.release) if handle is not None else None

    def __enter__(self) -> ImageEditor:
        """Context manager entry."""
        self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    def set_quality(self, quality: int | None = None) -> None:
        """Set the compression quality used by save and stream.

        Args:
            quality: Integer 0-100; None re-applies the current value

        Raises:
            ValidationError: If quality is out of range
        """
        quality = self.quality if quality is None else quality
        self.quality = self._validate_quality(quality)

    @staticmethod
    def _validate_quality(quality: int) -> int:
        if isinstance(quality, bool) or not isinstance(quality, int):
            raise ValidationError(f"Quality must be an integer, got {quality!r}", field="quality")
        if not EDITOR_CONFIG.min_quality <= quality <= EDITOR_CONFIG.max_quality:
            raise ValidationError(
                f"Quality must be between {EDITOR_CONFIG.min_quality} and "
                f"{EDITOR_CONFIG.max_quality}, got {quality}",
                field="quality",
            )
        return quality

    # -- handle replacement ------------------------------------------------

    def _run(self, error: type[ImageEditorError], action: str, func: Callable, *args) -> object:
        """Call a backend primitive, wrapping its failures in ``error``."""
        try:
            return func(*args)
        except ImageEditorError:
            raise
        except Exception as e:
            raise error(f"Image {action} failed: {e}", self._file_label) from e

    def _wrap(self, native: object, error: type[ImageEditorError], action: str) -> ImageHandle:
        """Take ownership of a new bitmap, checking its size."""
        handle = ImageHandle(self.backend, native)
        try:
            size = handle.size
        except Exception as e:
            handle.release()
            raise error(f"Could not read size after {action}: {e}", self._file_label) from e
        if not size.is_valid:
            handle.release()
            raise error(
                f"Image {action} produced an empty image ({size.width}x{size.height})",
                self._file_label,
            )
        return handle

    def _install(self, native: object, error: type[ImageEditorError], action: str) -> None:
        """Swap in a new bitmap and release the previous one."""
        handle = self._wrap(native, error, action)
        old = self._handle
        self._set_handle(handle)
        self._size = handle.size
        if old is not None:
            old.release()

    @contextmanager
    def preserved_state(self) -> Iterator[None]:
        """Restore the bitmap and size on exit if anything replaced them."""
        handle, size = self._handle, self._size
        try:
            yield
        finally:
            if self._handle is not handle:
                if self._handle is not None:
                    self._handle.release()
                self._set_handle(handle)
            self._size = size

    # -- transforms ------------------------------------------------------

    def resize(self, max_w: int, max_h: int, crop: bool = False) -> None:
        """Resize to fit (or, with ``crop``, fill) ``max_w x max_h``.

        Does nothing if the image already has exactly that size.

        Raises:
            DimensionError: If no valid smaller size exists
            ResizeFailed: If the backend copy fails
        """
        handle = self._require_handle()
        if self._size.width == max_w and self._size.height == max_h:
            return

        native = self._resized_native(handle, max_w, max_h, crop)
        self._install(native, ResizeFailed, "resize")

    def render(self, max_w: int, max_h: int, crop: bool = False) -> ImageHandle:
        """Return a resized copy without touching the session.

        The caller owns the returned handle and must release it.

        Raises:
            DimensionError: If no valid smaller size exists
            ResizeFailed: If the backend copy fails
        """
        handle = self._require_handle()
        native = self._resized_native(handle, max_w, max_h, crop)
        return self._wrap(native, ResizeFailed, "resize")

    def _resized_native(self, handle: ImageHandle, max_w: int, max_h: int, crop: bool) -> object:
        rect = compute_resize_geometry(self._size.width, self._size.height, max_w, max_h, crop)
        if rect is None:
            raise DimensionError(
                f"Could not calculate resized image dimensions for {max_w}x{max_h}",
                self._file_label,
            )
        return self._run(ResizeFailed, "resize", self.backend.resample, handle.native, rect)

    def crop(
        self,
        src_x: int,
        src_y: int,
        src_w: int,
        src_h: int,
        dst_w: int | None = None,
        dst_h: int | None = None,
        absolute: bool = False
    ) -> None:
        """Crop a region, optionally scaling it to ``dst_w x dst_h``.

        Args:
            src_x: Left edge of the region
            src_y: Top edge of the region
            src_w: Region width, or right edge when ``absolute``
            src_h: Region height, or bottom edge when ``absolute``
            dst_w: Output width (defaults to the region width)
            dst_h: Output height (defaults to the region height)
            absolute: Interpret ``src_w``/``src_h`` as coordinates

        Raises:
            CropFailed: If the region is empty or outside the image, or the
                backend copy fails
        """
        handle = self._require_handle()
        rect = compute_crop_rect(src_x, src_y, src_w, src_h, dst_w, dst_h, absolute)

        if rect.src_w <= 0 or rect.src_h <= 0 or rect.dst_w <= 0 or rect.dst_h <= 0:
            raise CropFailed(
                f"Invalid crop dimensions: {rect.src_w}x{rect.src_h} -> {rect.dst_w}x{rect.dst_h}",
                self._file_label,
            )
        if not rect.source_within(self._size):
            raise CropFailed(
                f"Crop region ({rect.src_x}, {rect.src_y}, {rect.src_w}x{rect.src_h}) "
                f"is outside the {self._size.width}x{self._size.height} image",
                self._file_label,
            )

        native = self._run(CropFailed, "crop", self.backend.resample, handle.native, rect)
        self._install(native, CropFailed, "crop")

    def rotate(self, angle: float) -> None:
        """Rotate counter-clockwise by ``angle`` degrees.

        The canvas grows to hold the rotated image.

        Raises:
            RotateFailed: If the backend cannot rotate
        """
        handle = self._require_handle()
        effective = rotate_angle_normalize(angle, self.backend.rotation_direction)
        native = self._run(RotateFailed, "rotate", self.backend.rotate, handle.native, effective)
        self._install(native, RotateFailed, "rotate")

    def flip(self, horizontal: bool, vertical: bool) -> None:
        """Mirror the image.

        Args:
            horizontal: Flip across the horizontal axis (top and bottom swap)
            vertical: Flip across the vertical axis (left and right swap)

        Raises:
            FlipFailed: If the backend copy fails
        """
        handle = self._require_handle()
        if not horizontal and not vertical:
            return

        rect = flip_transform(horizontal, vertical, self._size.width, self._size.height)
        native = self._run(FlipFailed, "flip", self.backend.resample, handle.native, rect)
        self._install(native, FlipFailed, "flip")

    # -- output ------------------------------------------------------------

    def resolve_output(
        self,
        requested_filename: Path | str | None = None,
        requested_mime: str | None = None,
        quality: int | None = None,
        context: str = EDITOR_CONFIG.save_context,
        handle: ImageHandle | None = None,
        dest_dir: Path | None = None,
        generate_filename: bool = True
    ) -> OutputPlan:
        """Decide how the current (or given) bitmap would be encoded.

        Raises:
            UnsupportedOutputFormat: If the output type is not GIF, PNG or JPEG
        """
        handle = handle or self._require_handle()
        size = handle.size
        quality = self.quality if quality is None else self._validate_quality(quality)

        def filename_factory(extension: str) -> Path:
            return self._fs.generate_filename(self.file, size, extension, dest_dir=dest_dir)

        resolver = OutputResolver(self.backend, self._policy)
        return resolver.resolve(
            self.original_mime,
            quality,
            requested_filename,
            requested_mime,
            original_truecolor=self.original_truecolor,
            buffer_truecolor=self.backend.is_truecolor(handle.native),
            context=context,
            filename_factory=filename_factory if generate_filename else None,
            file=self._file_label,
        )

    def _encode(self, handle: ImageHandle, plan: OutputPlan) -> bytes:
        return self._run(EncodeFailed, "encode", self.backend.encode, handle.native, plan)

    def save(
        self,
        filename: Path | str | None = None,
        mime_type: str | None = None,
        quality: int | None = None
    ) -> SavedImage:
        """Encode the current image and write it to disk.

        Args:
            filename: Output path; generated from the source name when omitted
            mime_type: Output type; defaults to the type implied by the
                filename extension, then to the loaded format
            quality: Quality for this save only

        Returns:
            SavedImage

        Raises:
            UnsupportedOutputFormat: If the output type has no encoder
            EncodeFailed: If encoding or writing fails
        """
        handle = self._require_handle()
        saved = self.save_rendition(handle, filename, mime_type, quality)
        if filename is not None:
            self.file = Path(filename)
        return saved

    def save_rendition(
        self,
        handle: ImageHandle,
        filename: Path | str | None = None,
        mime_type: str | None = None,
        quality: int | None = None,
        dest_dir: Path | None = None
    ) -> SavedImage:
        """Encode and write any bitmap owned by this session."""
        plan = self.resolve_output(
            filename, mime_type, quality,
            context=EDITOR_CONFIG.save_context,
            handle=handle,
            dest_dir=dest_dir,
        )
        data = self._encode(handle, plan)

        try:
            self._fs.write_bytes(plan.filename, data)
        except OSError as e:
            raise EncodeFailed(f"Image Editor Save Failed: {e}", self._file_label) from e

        # Non-fatal: logged inside the filesystem implementation
        self._fs.normalize_permissions(plan.filename)

        size = handle.size
        reported = Path(self._policy.intermediate_filename(plan.filename))
        logger.debug(f"Saved {plan.filename} ({size.width}x{size.height}, {plan.mime_type})")
        return SavedImage(
            path=plan.filename,
            file=reported.name,
            width=size.width,
            height=size.height,
            mime_type=plan.mime_type,
        )

    def stream(
        self,
        mime_type: str | None = None,
        quality: int | None = None,
        output: BinaryIO | None = None
    ) -> StreamedImage:
        """Encode the current image for sending.

        Args:
            mime_type: Output type; defaults to the loaded format
            quality: Quality for this call only
            output: Binary stream to write the bytes to

        Returns:
            StreamedImage with the content type and encoded bytes

        Raises:
            UnsupportedOutputFormat: If the output type has no encoder
            EncodeFailed: If encoding or writing fails
        """
        handle = self._require_handle()
        plan = self.resolve_output(
            None, mime_type, quality,
            context=EDITOR_CONFIG.stream_context,
            generate_filename=False,
        )
        streamed = StreamedImage(content_type=plan.mime_type, data=self._encode(handle, plan))

        if output is not None:
            try:
                output.write(streamed.data)
            except OSError as e:
                raise EncodeFailed(f"Image stream failed: {e}", self._file_label) from e
        return streamed

    def multi_resize(
        self,
        sizes: Sequence[SizeSpec] | Mapping[str, Mapping],
        mime_type: str | None = None,
        dest_dir: Path | None = None
    ) -> dict[str, RenditionResult]:
        """Save one rendition per requested size.

        See :class:`~image_editor.application.services.batch.MultiSizeGenerator`.
        """
        return MultiSizeGenerator(self).generate(sizes, mime_type=mime_type, dest_dir=dest_dir)

    def __repr__(self) -> str:
        backend = self._backend.name if self._backend is not None else None
        return f"ImageEditor(file={self._file_label!r}, backend={backend!r}, size={self._size})"
