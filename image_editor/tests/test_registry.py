"""Tests for backend discovery and selection."""

import pytest

from ..adapters.backends.pillow_backend import PillowBackend
from ..application.services.editor import ImageEditor
from ..domain.value_objects.config import EditorSettings
from ..exceptions import BackendUnavailable, ConfigurationError
from ..infrastructure.backend_registry import BackendRegistry, get_image_editor


class UnusableBackend(PillowBackend):
    """Backend whose native library never works."""

    name = "unusable"

    @classmethod
    def probe(cls):
        raise ImportError("libunusable.so not found")


@pytest.fixture
def with_unusable(monkeypatch):
    backends = dict(BackendRegistry.discover_backends())
    backends["unusable"] = UnusableBackend
    monkeypatch.setattr(BackendRegistry, "discover_backends", lambda: backends)


class TestBackendRegistry:
    """Tests for BackendRegistry."""

    def test_builtins_discovered(self):
        backends = BackendRegistry.discover_backends()
        assert backends["pillow"] is PillowBackend
        assert "opencv" in backends

    def test_select_in_order(self):
        assert BackendRegistry.select(("pillow", "opencv")) is PillowBackend

    def test_select_skips_unknown(self):
        assert BackendRegistry.select(("vips", "pillow")) is PillowBackend

    def test_select_nothing(self):
        assert BackendRegistry.select(("vips",)) is None

    def test_select_skips_unavailable(self, with_unusable):
        assert BackendRegistry.select(("unusable", "pillow")) is PillowBackend

    def test_create(self):
        backend = BackendRegistry.create("pillow")
        assert isinstance(backend, PillowBackend)

    def test_create_auto(self):
        assert BackendRegistry.create("auto").is_available()

    def test_create_unknown(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BackendRegistry.create("vips")
        assert exc_info.value.config_key == "backend"

    def test_create_unavailable(self, with_unusable):
        with pytest.raises(BackendUnavailable) as exc_info:
            BackendRegistry.create("unusable")
        assert exc_info.value.backend == "unusable"

    def test_create_none_available(self):
        with pytest.raises(BackendUnavailable):
            BackendRegistry.create(preference=("vips",))

    def test_probe_failure_is_unavailable(self):
        assert not UnusableBackend.is_available()

    def test_list_available(self, with_unusable):
        available = BackendRegistry.list_available()
        assert "pillow" in available
        assert "unusable" not in available


class TestGetImageEditor:
    """Tests for the get_image_editor convenience function."""

    def test_auto(self, png_file):
        editor = get_image_editor(png_file)
        assert isinstance(editor, ImageEditor)
        assert not editor.is_loaded
        assert editor.backend.is_available()

    def test_by_name(self, png_file):
        assert get_image_editor(png_file, backend="pillow").backend.name == "pillow"

    def test_instance(self, png_file):
        backend = PillowBackend()
        assert get_image_editor(png_file, backend=backend).backend is backend

    def test_settings_preference(self, png_file):
        settings = EditorSettings(backend_preference="pillow")
        editor = get_image_editor(png_file, settings=settings)
        assert editor.backend.name == "pillow"
        assert editor.settings is settings

    def test_no_backend_fails_on_load(self, png_file):
        editor = get_image_editor(png_file, settings=EditorSettings(backend_preference="vips"))
        with pytest.raises(BackendUnavailable):
            editor.load()
