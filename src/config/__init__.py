"""Configuration module for application settings."""

from .settings import settings
from .database import get_db, init_db
from .storage import ensure_storage_dirs
from .redis import get_redis

__all__ = [
    "settings",
    "get_db",
    "init_db",
    "ensure_storage_dirs",
    "get_redis",
]
