"""Local storage configuration for raw uploads and processed outputs."""

from pathlib import Path
from typing import Tuple
from .settings import settings


def get_storage_roots() -> Tuple[Path, Path]:
    """Return the (raw uploads, processed outputs) directories."""
    return settings.raw_upload_dir, settings.processed_dir


def ensure_storage_dirs() -> None:
    """Create the storage roots if they do not exist."""
    for root in get_storage_roots():
        root.mkdir(parents=True, exist_ok=True)
