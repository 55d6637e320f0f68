"""Backend interface for the remote blob store."""

from abc import ABC, abstractmethod
from typing import BinaryIO

from cloudsync.models import RemoteEntry

# Object metadata keys. S3 lowercases user metadata keys, so these are lowercase.
WRITER_ID_KEY = "writer-client-id"
CONTENT_MD5_KEY = "content-md5"


class StorageError(Exception):
    """Base exception for storage operations."""


class NotFoundError(StorageError):
    """Object does not exist in storage."""


class Backend(ABC):
    """Abstract remote blob store.

    Paths are relative to the backend's configured root and always use
    forward slashes.
    """

    client_id: str

    @abstractmethod
    def list_all(self) -> dict[str, RemoteEntry]:
        """List every object under the root, keyed by relative path."""

    @abstractmethod
    def get(self, path: str) -> tuple[RemoteEntry, BinaryIO]:
        """Fetch an object's metadata and content.

        The caller owns the returned stream and must close it.
        """

    @abstractmethod
    def put(self, path: str, stream: BinaryIO) -> RemoteEntry:
        """Store content at path, tagging it with this backend's client id.

        The stream is consumed and closed by this call.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete the object at path."""

    @abstractmethod
    def get_meta(self, path: str) -> RemoteEntry:
        """Fetch an object's metadata without its content.

        Raises:
            NotFoundError: If no object exists at path
        """
