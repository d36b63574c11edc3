"""Environment and utility functions."""

import logging
import os
import sys
from typing import Mapping

from ..config import ENV_PREFIX, LOG_DATE_FORMAT, LOG_FORMAT
from ..domain.value_objects.config import EditorSettings
from ..exceptions import ConfigurationError

# Settings fields that may be set from the environment
_ENV_FIELDS = (
    "backend_preference",
    "default_quality",
    "jpeg_quality",
    "strip_metadata",
    "memory_limit",
)

_FALSE_VALUES = {"0", "false", "no", "off"}


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """Set up logging configuration.

    Logs are written to the console (stderr) and optionally a file.

    Args:
        level: Logging level
        log_file: Path to log file (None to disable file logging)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as e:
            # Fall back to console-only if file logging fails
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True  # Replace any existing handlers
    )


def load_settings_from_env(
    environ: Mapping[str, str] | None = None,
    **overrides
) -> EditorSettings:
    """Build EditorSettings from ``IMAGE_EDITOR_*`` environment variables.

    ``IMAGE_EDITOR_BACKEND_PREFERENCE=pillow,opencv`` or
    ``IMAGE_EDITOR_JPEG_QUALITY=75`` for example. Empty variables are
    ignored; keyword overrides win over the environment.

    Args:
        environ: Variables to read (defaults to ``os.environ``)
        **overrides: Explicit field values

    Returns:
        EditorSettings

    Raises:
        ConfigurationError: If a value does not validate
    """
    environ = os.environ if environ is None else environ
    values: dict[str, object] = {}

    for field in _ENV_FIELDS:
        raw = environ.get(f"{ENV_PREFIX}{field.upper()}")
        if raw is None or not raw.strip():
            continue
        raw = raw.strip()
        if field == "strip_metadata":
            values[field] = raw.lower() not in _FALSE_VALUES
        else:
            values[field] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return EditorSettings(**values)
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise ConfigurationError(f"Invalid editor settings: {e}") from e
