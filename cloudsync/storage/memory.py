"""Dict-backed backend used by tests."""

import hashlib
import io
from datetime import datetime, timezone
from typing import BinaryIO

from cloudsync.models import RemoteEntry
from cloudsync.storage.base import Backend, NotFoundError


class InMemoryBackend(Backend):
    """Keeps objects in a dict keyed by relative path."""

    def __init__(self, client_id: str, clock=None):
        self.client_id = client_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._objects: dict[str, tuple[RemoteEntry, bytes]] = {}

    def seed(
        self,
        path: str,
        content: bytes,
        last_modified: datetime | None = None,
        writer_id: str | None = None,
    ) -> RemoteEntry:
        """Store an object as if another client had written it."""
        entry = RemoteEntry(
            path=path,
            md5=hashlib.md5(content).hexdigest(),
            last_modified=last_modified or self._clock(),
            writer_id=writer_id,
        )
        self._objects[path] = (entry, content)
        return entry

    def content(self, path: str) -> bytes:
        return self._lookup(path)[1]

    def _lookup(self, path: str) -> tuple[RemoteEntry, bytes]:
        try:
            return self._objects[path]
        except KeyError:
            raise NotFoundError(f"File not found: {path}") from None

    def list_all(self) -> dict[str, RemoteEntry]:
        return {path: entry for path, (entry, _) in self._objects.items()}

    def get(self, path: str) -> tuple[RemoteEntry, BinaryIO]:
        entry, content = self._lookup(path)
        return entry, io.BytesIO(content)

    def put(self, path: str, stream: BinaryIO) -> RemoteEntry:
        try:
            content = stream.read()
        finally:
            stream.close()
        return self.seed(path, content, writer_id=self.client_id)

    def delete(self, path: str) -> None:
        self._lookup(path)
        del self._objects[path]

    def get_meta(self, path: str) -> RemoteEntry:
        return self._lookup(path)[0]
