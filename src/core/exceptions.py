"""Domain exceptions raised by the store, the pipeline and the services."""

from typing import Iterable, Optional
from fastapi import status


class AppError(Exception):
    """Base application error carrying an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateFilename(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f'A video with filename "{filename}" already exists')


class VideoNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Video not found"


class UnsupportedFormat(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, requested: str, supported: Iterable[str]):
        self.requested = requested
        super().__init__(f"Invalid format. Supported formats: {', '.join(supported)}")


class FileMissing(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Video file not found"


class VideoNotReady(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Video is not ready for download"


class ProbeFailure(AppError):
    """Metadata probe of a raw upload failed; fatal to the job."""

    default_message = "Failed to read video metadata"


class ConversionFailure(AppError):
    """A single format conversion failed; isolated to that format."""

    def __init__(self, output_format: str, message: Optional[str] = None):
        self.output_format = output_format
        super().__init__(message or f"Conversion to {output_format} failed")


class FileTooLarge(AppError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    def __init__(self, filename: str, max_bytes: int):
        self.filename = filename
        super().__init__(
            f"File {filename} is too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )
