"""Tests for the image editor session."""

import gc
import io
import stat

import numpy as np
import pytest
from PIL import Image

from ..adapters.backends.pillow_backend import PillowBackend
from ..application.ports.policy import SettingsPolicy
from ..application.services.editor import ImageEditor
from ..domain.value_objects.config import EditorSettings
from ..domain.value_objects.geometry import Size
from ..exceptions import (
    BackendUnavailable,
    CropFailed,
    DimensionError,
    EncodeFailed,
    InvalidImage,
    ResizeFailed,
    RotateFailed,
    SourceNotFound,
    UnsupportedOutputFormat,
    ValidationError,
)
from .conftest import CountingPillowBackend, decode_rgb, encode, make_gradient


def _pixels(editor: ImageEditor) -> np.ndarray:
    return decode_rgb(editor.stream("image/png").data)


def _fail(*args, **kwargs):
    raise AssertionError("backend copy should not be called")


class TestLoad:
    """Tests for decoding the source."""

    def test_load_file(self, backend, png_file):
        editor = ImageEditor(png_file, backend=backend)
        editor.load()
        assert editor.is_loaded
        assert editor.size == Size(400, 300)
        assert editor.original_mime == "image/png"
        assert editor.quality == 90

    def test_load_jpeg(self, backend, jpeg_file):
        with ImageEditor(jpeg_file, backend=backend) as editor:
            assert editor.original_mime == "image/jpeg"

    def test_multi_picture_jpeg(self, backend, mpo_file, tmp_path):
        with ImageEditor(mpo_file, backend=backend) as editor:
            assert editor.original_mime == "image/jpeg"
            results = editor.multi_resize({"thumbnail": {"width": 50, "height": 50}})
            streamed = editor.stream()
            saved = editor.save(tmp_path / "copy")
        assert streamed.content_type == "image/jpeg"
        assert saved.mime_type == "image/jpeg"
        assert saved.path.read_bytes()[:3] == b"\xff\xd8\xff"
        assert results["thumbnail"].file_name == "camera-50x37.jpg"

    def test_load_bytes(self, backend):
        data = encode(make_gradient(64, 32), "PNG")
        with ImageEditor(data, backend=backend) as editor:
            assert editor.size == Size(64, 32)
            assert editor.file is None

    def test_load_is_idempotent(self, backend, png_file):
        editor = ImageEditor(png_file, backend=backend)
        editor.load()
        handle = editor.handle
        editor.load()
        assert editor.handle is handle

    def test_missing_file(self, backend, tmp_path):
        editor = ImageEditor(tmp_path / "missing.png", backend=backend)
        with pytest.raises(SourceNotFound) as exc_info:
            editor.load()
        assert exc_info.value.error_code == "SOURCE_NOT_FOUND"
        assert "missing.png" in exc_info.value.file

    def test_empty_file(self, backend, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(InvalidImage):
            ImageEditor(path, backend=backend).load()

    def test_not_an_image(self, backend, tmp_path):
        path = tmp_path / "notes.png"
        path.write_bytes(b"this is not an image at all")
        with pytest.raises(InvalidImage) as exc_info:
            ImageEditor(path, backend=backend).load()
        assert exc_info.value.reason == "decode"

    def test_no_backend(self, png_file):
        with pytest.raises(BackendUnavailable):
            ImageEditor(png_file, backend=None).load()

    def test_memory_limit_raises_pixel_ceiling(self, png_file, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        settings = EditorSettings(memory_limit="1M")
        with ImageEditor(png_file, backend=PillowBackend(), settings=settings):
            assert Image.MAX_IMAGE_PIXELS == 1024 * 1024 // 4


class TestLifecycle:
    """Tests for bitmap ownership."""

    def test_close_is_idempotent(self, png_file):
        backend = CountingPillowBackend()
        editor = ImageEditor(png_file, backend=backend)
        editor.load()
        editor.close()
        editor.close()
        assert not editor.is_loaded
        assert backend.released == 1

    def test_replaced_bitmaps_are_released(self, png_file):
        backend = CountingPillowBackend()
        with ImageEditor(png_file, backend=backend) as editor:
            editor.resize(200, 200)
            editor.flip(True, False)
            assert backend.released == 2
        assert backend.released == 3

    def test_released_when_collected(self, png_file):
        backend = CountingPillowBackend()
        editor = ImageEditor(png_file, backend=backend)
        editor.load()
        editor.resize(200, 200)
        del editor
        gc.collect()
        assert backend.released == 2

    def test_closed_editor_not_released_again(self, png_file):
        backend = CountingPillowBackend()
        editor = ImageEditor(png_file, backend=backend)
        editor.load()
        editor.close()
        del editor
        gc.collect()
        assert backend.released == 1

    def test_context_manager_closes(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            handle = editor.handle
        assert handle.released
        assert not editor.is_loaded

    def test_failed_transform_keeps_bitmap(self, backend, png_file, monkeypatch):
        def broken(native, rect):
            raise RuntimeError("out of memory")

        with ImageEditor(png_file, backend=backend) as editor:
            handle = editor.handle
            monkeypatch.setattr(backend, "resample", broken)
            with pytest.raises(ResizeFailed):
                editor.resize(100, 100)
            assert editor.handle is handle
            assert not handle.released
            assert editor.size == Size(400, 300)

    def test_failed_rotate(self, backend, png_file, monkeypatch):
        def broken(native, angle):
            raise RuntimeError("no rotation today")

        with ImageEditor(png_file, backend=backend) as editor:
            monkeypatch.setattr(backend, "rotate", broken)
            with pytest.raises(RotateFailed):
                editor.rotate(90)
            assert editor.size == Size(400, 300)

    def test_quality(self, png_file, pillow_backend):
        editor = ImageEditor(png_file, backend=pillow_backend)
        editor.set_quality(50)
        assert editor.quality == 50
        with pytest.raises(ValidationError):
            editor.set_quality(101)
        with pytest.raises(ValidationError):
            editor.set_quality(True)
        assert editor.quality == 50


class TestResize:
    """Tests for resize."""

    def test_fit(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.resize(200, 200)
            assert editor.size == Size(200, 150)

    def test_fill(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.resize(100, 100, crop=True)
            assert editor.size == Size(100, 100)
            assert _pixels(editor).shape == (100, 100, 3)

    def test_same_size_is_noop(self, backend, png_file, monkeypatch):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.resize(200, 150)
            handle = editor.handle
            monkeypatch.setattr(backend, "resample", _fail)
            editor.resize(200, 150)
            editor.resize(200, 150, crop=True)
            assert editor.handle is handle

    def test_upscale_is_dimension_error(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            with pytest.raises(DimensionError):
                editor.resize(800, 600)
            assert editor.size == Size(400, 300)


class TestCrop:
    """Tests for crop."""

    def test_crop(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.crop(10, 20, 100, 50)
            assert editor.size == Size(100, 50)
            np.testing.assert_array_equal(_pixels(editor), before[20:70, 10:110])

    def test_crop_absolute(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.crop(10, 20, 110, 70, absolute=True)
            assert editor.size == Size(100, 50)

    def test_crop_and_scale(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.crop(0, 0, 200, 100, 50, 25)
            assert editor.size == Size(50, 25)

    @pytest.mark.parametrize("region", [
        (0, 0, 0, 50),
        (350, 0, 100, 50),
        (-10, 0, 50, 50),
    ])
    def test_invalid_region(self, backend, png_file, region):
        with ImageEditor(png_file, backend=backend) as editor:
            with pytest.raises(CropFailed):
                editor.crop(*region)
            assert editor.size == Size(400, 300)


class TestRotate:
    """Tests for rotate."""

    def test_quarter_turn_is_counter_clockwise(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.rotate(90)
            assert editor.size == Size(300, 400)
            np.testing.assert_array_equal(_pixels(editor), np.rot90(before, 1))

    def test_backends_agree(self, png_file):
        from ..infrastructure.backend_registry import BackendRegistry

        backends = BackendRegistry.discover_backends()
        if not all(backends[name].is_available() for name in ("pillow", "opencv")):
            pytest.skip("both backends are needed")

        results = []
        for name in ("pillow", "opencv"):
            with ImageEditor(png_file, backend=backends[name]()) as editor:
                editor.rotate(90)
                editor.rotate(180)
                results.append(_pixels(editor))
        np.testing.assert_array_equal(results[0], results[1])

    def test_free_angle_expands_canvas(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.rotate(30)
            # 300 * sin(30) + 400 * cos(30), 300 * cos(30) + 400 * sin(30)
            assert abs(editor.size.width - 496) <= 2
            assert abs(editor.size.height - 460) <= 2

    def test_full_turn(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.rotate(360)
            np.testing.assert_array_equal(_pixels(editor), before)


class TestFlip:
    """Tests for flip."""

    def test_horizontal_swaps_rows(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.flip(True, False)
            np.testing.assert_array_equal(_pixels(editor), before[::-1, :])

    def test_vertical_swaps_columns(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.flip(False, True)
            np.testing.assert_array_equal(_pixels(editor), before[:, ::-1])

    def test_double_flip_round_trips(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            before = _pixels(editor)
            editor.flip(True, False)
            editor.flip(True, False)
            np.testing.assert_array_equal(_pixels(editor), before)

    def test_no_axes_is_noop(self, backend, png_file, monkeypatch):
        with ImageEditor(png_file, backend=backend) as editor:
            monkeypatch.setattr(backend, "resample", _fail)
            editor.flip(False, False)


class TestSave:
    """Tests for save."""

    def test_generated_filename(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            editor.resize(200, 200)
            saved = editor.save()
        assert saved.path == png_file.parent / "photo-200x150.png"
        assert saved.file == "photo-200x150.png"
        assert (saved.width, saved.height) == (200, 150)
        assert saved.mime_type == "image/png"
        assert saved.path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_no_execute_bits(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            saved = editor.save()
        mode = stat.S_IMODE(saved.path.stat().st_mode)
        assert mode & 0o111 == 0

    def test_explicit_filename(self, backend, png_file, tmp_path):
        target = tmp_path / "nested" / "copy.png"
        with ImageEditor(png_file, backend=backend) as editor:
            saved = editor.save(target)
            assert editor.file == target
        assert saved.path == target
        assert target.is_file()

    def test_convert_to_jpeg(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            saved = editor.save(mime_type="image/jpeg")
        assert saved.path.suffix == ".jpg"
        assert saved.mime_type == "image/jpeg"
        assert saved.path.read_bytes()[:3] == b"\xff\xd8\xff"

    def test_type_from_filename(self, backend, png_file, tmp_path):
        target = tmp_path / "copy.jpeg"
        with ImageEditor(png_file, backend=backend) as editor:
            saved = editor.save(target)
        assert saved.mime_type == "image/jpeg"
        assert target.read_bytes()[:3] == b"\xff\xd8\xff"

    def test_unsupported_filename_extension(self, backend, png_file, tmp_path):
        with ImageEditor(png_file, backend=backend) as editor:
            with pytest.raises(UnsupportedOutputFormat) as exc_info:
                editor.save(tmp_path / "copy.webp")
        assert exc_info.value.mime_type == "image/webp"
        assert not (tmp_path / "copy.webp").exists()

    def test_webp_is_unsupported(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            with pytest.raises(UnsupportedOutputFormat) as exc_info:
                editor.save(mime_type="image/webp")
        assert exc_info.value.mime_type == "image/webp"

    def test_write_failure(self, backend, png_file, tmp_path):
        with ImageEditor(png_file, backend=backend) as editor:
            with pytest.raises(EncodeFailed):
                editor.save(tmp_path)

    def test_intermediate_filename(self, backend, png_file):
        class RenamingPolicy(SettingsPolicy):
            def intermediate_filename(self, path):
                return path.with_name("renamed.png")

        with ImageEditor(png_file, backend=backend, policy=RenamingPolicy()) as editor:
            saved = editor.save()
        assert saved.file == "renamed.png"
        assert saved.path.name == "photo-400x300.png"


class TestStream:
    """Tests for stream."""

    def test_stream_png(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            streamed = editor.stream()
        assert streamed.content_type == "image/png"
        assert streamed.header == ("Content-Type", "image/png")
        assert decode_rgb(streamed.data).shape == (300, 400, 3)

    def test_stream_gif_source(self, gif_file, pillow_backend):
        with ImageEditor(gif_file, backend=pillow_backend) as editor:
            streamed = editor.stream()
        assert streamed.content_type == "image/gif"
        assert streamed.data[:6] in (b"GIF87a", b"GIF89a")

    def test_stream_to_output(self, backend, png_file):
        output = io.BytesIO()
        with ImageEditor(png_file, backend=backend) as editor:
            streamed = editor.stream("image/jpeg", output=output)
        assert output.getvalue() == streamed.data
        assert streamed.content_type == "image/jpeg"

    def test_quality_changes_jpeg_size(self, backend, png_file):
        with ImageEditor(png_file, backend=backend) as editor:
            low = editor.stream("image/jpeg", quality=10)
            high = editor.stream("image/jpeg", quality=95)
        assert len(low.data) < len(high.data)

    def test_quality_contexts(self, backend, png_file):
        contexts = []

        class RecordingPolicy(SettingsPolicy):
            def jpeg_quality(self, quality, context):
                contexts.append(context)
                return quality

        with ImageEditor(png_file, backend=backend, policy=RecordingPolicy()) as editor:
            editor.save(mime_type="image/jpeg")
            editor.stream("image/jpeg")
            editor.stream("image/png")
        assert contexts == ["image_resize", "image_stream"]


class TestMultiResize:
    """Tests for batch rendition through the editor."""

    def test_invalid_size_is_omitted(self, backend, png_file, tmp_path):
        with ImageEditor(png_file, backend=backend) as editor:
            before = editor.size
            results = editor.multi_resize({
                "k1": {"width": 100, "height": 100, "crop": False},
                "k2": {"width": -1, "height": -1, "crop": False},
            }, dest_dir=tmp_path / "out")
            assert editor.size == before
        assert list(results) == ["k1"]
        assert results["k1"].file_name == "photo-100x75.png"
        assert (tmp_path / "out" / "photo-100x75.png").is_file()
