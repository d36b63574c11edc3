"""Configuration value objects with validation."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from ...config import DEFAULT_BACKEND_PREFERENCE, EDITOR_CONFIG, BackendName

_MEMORY_LIMIT_RE = re.compile(r"^\s*(\d+)\s*([KMG]?)B?\s*$", re.IGNORECASE)
_MEMORY_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def parse_memory_limit(value: str | int | None) -> int | None:
    """Convert a memory limit such as ``"256M"`` or ``1073741824`` to bytes.

    Returns None for an empty value or ``-1`` (unlimited).

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, int):
        return None if value < 0 else value
    if value.strip() in ("", "-1"):
        return None

    match = _MEMORY_LIMIT_RE.match(value)
    if not match:
        raise ValueError(f"Invalid memory limit: {value!r}")
    number, unit = match.groups()
    return int(number) * _MEMORY_UNITS[unit.upper()]


class EditorSettings(BaseModel):
    """Editor configuration with validation."""

    model_config = {"validate_assignment": True}

    # Backend selection, first available wins
    backend_preference: tuple[str, ...] = DEFAULT_BACKEND_PREFERENCE

    # Encoding
    default_quality: int = Field(
        default=EDITOR_CONFIG.default_quality,
        ge=EDITOR_CONFIG.min_quality,
        le=EDITOR_CONFIG.max_quality,
    )
    jpeg_quality: int | None = Field(
        default=None,
        ge=EDITOR_CONFIG.min_quality,
        le=EDITOR_CONFIG.max_quality,
    )
    strip_metadata: bool = True

    # Best-effort decode ceiling, e.g. "256M"
    memory_limit: str | int | None = None

    @field_validator('backend_preference', mode='before')
    @classmethod
    def split_preference(cls, v: object) -> object:
        """Accept a comma-separated string as well as a sequence."""
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator('backend_preference')
    @classmethod
    def validate_preference(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        names = tuple(name.lower() for name in v)
        if BackendName.AUTO.value in names:
            return DEFAULT_BACKEND_PREFERENCE
        if not names:
            raise ValueError("backend_preference must name at least one backend")
        return names

    @field_validator('memory_limit')
    @classmethod
    def validate_memory_limit(cls, v: str | int | None) -> str | int | None:
        parse_memory_limit(v)
        return v

    @property
    def memory_limit_bytes(self) -> int | None:
        return parse_memory_limit(self.memory_limit)


__all__ = [
    'EditorSettings',
    'parse_memory_limit',
]
