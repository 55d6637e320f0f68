"""Remote blob store backends."""

from cloudsync.storage.base import (
    CONTENT_MD5_KEY,
    WRITER_ID_KEY,
    Backend,
    NotFoundError,
    StorageError,
)
from cloudsync.storage.memory import InMemoryBackend

__all__ = [
    "Backend",
    "InMemoryBackend",
    "NotFoundError",
    "StorageError",
    "CONTENT_MD5_KEY",
    "WRITER_ID_KEY",
]
