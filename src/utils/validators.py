"""Validators for format identifiers and upload filenames."""

from pathlib import Path
from ..config import settings
from ..core.exceptions import UnsupportedFormat
from .constants import OutputFormat, supported_format_values


def validate_output_format(value: str) -> OutputFormat:
    """
    Normalise a requested output format.
    Raises UnsupportedFormat when the value is outside the fixed set.
    """
    normalized = (value or "").strip().lower()
    try:
        return OutputFormat(normalized)
    except ValueError:
        raise UnsupportedFormat(value, supported_format_values())


def has_allowed_extension(filename: str) -> bool:
    """Check the upload extension against the allowed set (case-insensitive)."""
    return Path(filename or "").suffix.lower() in settings.allowed_upload_extensions
