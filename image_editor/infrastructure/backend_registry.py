"""Backend registry - discovers image backends and picks a usable one."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib.metadata import entry_points
from pathlib import Path

from ..application.ports.backend import ImageBackend
from ..application.ports.filesystem import FileSystem
from ..application.ports.policy import EditorPolicy
from ..application.services.editor import ImageEditor
from ..config import DEFAULT_BACKEND_PREFERENCE, BackendName
from ..domain.value_objects.config import EditorSettings
from ..exceptions import BackendUnavailable, ConfigurationError

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Registry for discovering and selecting image backends.

    Uses entry points for plugin discovery in the
    ``image_editor.backends`` group. Third-party packages can register
    their own engines:

    [project.entry-points."image_editor.backends"]
    vips = "my_package:VipsBackend"

    Availability is probed once per process and the selection for a given
    preference order is cached.
    """

    GROUP = "image_editor.backends"

    @classmethod
    @lru_cache(maxsize=1)
    def discover_backends(cls) -> dict[str, type[ImageBackend]]:
        """Discover all installed backends.

        Returns:
            Dict mapping backend names to classes
        """
        backends: dict[str, type[ImageBackend]] = {}

        for ep in entry_points(group=cls.GROUP):
            try:
                backends[ep.name] = ep.load()
                logger.debug(f"Discovered image backend: {ep.name}")
            except Exception as e:
                logger.warning(f"Failed to load image backend {ep.name}: {e}")

        # Always include built-in backends
        from ..adapters.backends.pillow_backend import PillowBackend
        backends.setdefault(BackendName.PILLOW.value, PillowBackend)

        try:
            from ..adapters.backends.opencv_backend import OpenCVBackend
            backends.setdefault(BackendName.OPENCV.value, OpenCVBackend)
        except ImportError:
            logger.debug("OpenCV not installed")

        return backends

    @classmethod
    @lru_cache(maxsize=None)
    def select(
        cls,
        preference: tuple[str, ...] = DEFAULT_BACKEND_PREFERENCE
    ) -> type[ImageBackend] | None:
        """Pick the first available backend in ``preference`` order.

        Returns:
            Backend class, or None if none of them is usable
        """
        backends = cls.discover_backends()
        for name in preference:
            backend_class = backends.get(name)
            if backend_class is None:
                logger.debug(f"Unknown image backend in preference list: {name}")
                continue
            if backend_class.is_available():
                logger.debug(f"Selected image backend: {name}")
                return backend_class

        logger.warning(f"No image backend available (tried: {', '.join(preference)})")
        return None

    @classmethod
    def create(
        cls,
        name: str | None = None,
        preference: tuple[str, ...] = DEFAULT_BACKEND_PREFERENCE
    ) -> ImageBackend:
        """Create a backend instance.

        Args:
            name: Backend name; None or 'auto' selects by preference
            preference: Probe order for automatic selection

        Returns:
            ImageBackend instance

        Raises:
            ConfigurationError: If the backend name is unknown
            BackendUnavailable: If the backend (or every candidate) is unusable
        """
        if name is None or name == BackendName.AUTO.value:
            backend_class = cls.select(tuple(preference))
            if backend_class is None:
                raise BackendUnavailable("No image backend is available")
            return backend_class()

        backends = cls.discover_backends()
        if name not in backends:
            available = ", ".join(backends.keys())
            raise ConfigurationError(
                f"Unknown image backend: '{name}'. Available: {available}",
                config_key="backend",
            )

        backend_class = backends[name]
        if not backend_class.is_available():
            raise BackendUnavailable(f"Image backend '{name}' is not usable", backend=name)
        return backend_class()

    @classmethod
    def list_available(cls) -> list[str]:
        """List names of installed backends that pass their probe."""
        return [
            name for name, backend_class in cls.discover_backends().items()
            if backend_class.is_available()
        ]


def get_image_editor(
    source: Path | str | bytes,
    backend: str | ImageBackend | None = None,
    settings: EditorSettings | None = None,
    policy: EditorPolicy | None = None,
    filesystem: FileSystem | None = None
) -> ImageEditor:
    """Convenience function to create an editor on a selected backend.

    When automatic selection finds no usable backend the editor is still
    returned; it raises BackendUnavailable on its first load.

    Args:
        source: Image path or encoded bytes
        backend: Backend name, instance, or None to use the settings' preference
        settings: Editor settings
        policy: Override hooks
        filesystem: File access

    Returns:
        ImageEditor (not yet loaded)
    """
    settings = settings or EditorSettings()

    if isinstance(backend, ImageBackend):
        instance: ImageBackend | None = backend
    elif backend is None or backend == BackendName.AUTO.value:
        backend_class = BackendRegistry.select(tuple(settings.backend_preference))
        instance = backend_class() if backend_class is not None else None
    else:
        instance = BackendRegistry.create(backend)

    return ImageEditor(
        source,
        backend=instance,
        settings=settings,
        policy=policy,
        filesystem=filesystem,
    )
