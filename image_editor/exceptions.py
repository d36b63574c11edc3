"""Custom exceptions for the image editor."""

from typing import Optional


class ImageEditorError(Exception):
    """Base exception for all editor errors.

    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class _FileError(ImageEditorError):
    """Error tied to the file the session was opened on.

    Attributes:
        file: Path of the image being edited when the error occurred
    """

    code = "IMAGE_ERROR"

    def __init__(self, message: str, file: Optional[str] = None):
        super().__init__(message, error_code=self.code)
        self.file = str(file) if file is not None else None

    def __str__(self) -> str:
        if self.file:
            return f"{super().__str__()} (file: {self.file})"
        return super().__str__()


class ConfigurationError(ImageEditorError):
    """Error in configuration or settings.

    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class ValidationError(ImageEditorError):
    """Error validating inputs or parameters.

    Attributes:
        field: The field that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field = field


class BackendUnavailable(ImageEditorError):
    """No usable image backend could be found.

    Attributes:
        backend: The backend that was requested (None when auto-selecting)
    """

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message, error_code="BACKEND_UNAVAILABLE")
        self.backend = backend


class SourceNotFound(_FileError):
    """The source image could not be located."""
    code = "SOURCE_NOT_FOUND"


class InvalidImage(_FileError):
    """The source could not be decoded, or its size could not be read.

    Attributes:
        reason: ``"decode"`` when no usable bitmap was produced,
            ``"size"`` when dimensions could not be determined
    """

    code = "INVALID_IMAGE"

    def __init__(self, message: str, file: Optional[str] = None, reason: str = "decode"):
        super().__init__(message, file=file)
        self.reason = reason


class DimensionError(_FileError):
    """Resize geometry could not be computed for the requested bounds."""
    code = "DIMENSION_ERROR"


class ResizeFailed(_FileError):
    code = "RESIZE_FAILED"


class CropFailed(_FileError):
    code = "CROP_FAILED"


class RotateFailed(_FileError):
    code = "ROTATE_FAILED"


class FlipFailed(_FileError):
    code = "FLIP_FAILED"


class UnsupportedOutputFormat(_FileError):
    """The resolved output type has no encoder.

    Attributes:
        mime_type: The MIME type that was rejected
    """

    code = "UNSUPPORTED_OUTPUT_FORMAT"

    def __init__(self, message: str, file: Optional[str] = None, mime_type: Optional[str] = None):
        super().__init__(message, file=file)
        self.mime_type = mime_type


class EncodeFailed(_FileError):
    """Encoding or writing the output failed."""
    code = "ENCODE_FAILED"
