"""Helper functions for common operations."""

import secrets
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .constants import MERGEABLE_VIDEO_FIELDS


def unique_suffix() -> str:
    """Millisecond timestamp plus random hex, unique within the process."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def generate_raw_filename(original_filename: str) -> str:
    """
    Generate the on-disk name for a raw upload.
    Format: <millis>-<random><original extension>
    """
    return f"{unique_suffix()}{Path(original_filename).suffix.lower()}"


def generate_processed_filename(output_format: str) -> str:
    """
    Generate the on-disk name for a converted output.
    Format: processed-<millis>-<random>.<format>
    """
    return f"processed-{unique_suffix()}.{output_format}"


def truncate_error(message: Any, limit: int = 500) -> str:
    """Render an error as text no longer than ``limit`` characters."""
    text = str(message) if message is not None else ""
    return text[:limit]


def merge_video_fields(
    existing: Mapping[str, Any], partial: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Merge a partial metadata update into an existing record.

    Only mergeable fields whose new value is not None are applied;
    everything else keeps the stored value. Returns a new dict.
    """
    merged = dict(existing)
    if not partial:
        return merged
    for field in MERGEABLE_VIDEO_FIELDS:
        value = partial.get(field)
        if value is not None:
            merged[field] = value
    return merged
