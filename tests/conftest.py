"""Shared fixtures for cloudsync tests."""

import hashlib
import io
import os
from datetime import datetime, timedelta, timezone

import pytest

from cloudsync.models import LocalEntry, RemoteEntry
from cloudsync.storage.memory import InMemoryBackend

CLIENT_ID = "client-a"
OTHER_CLIENT_ID = "client-b"

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(minutes=5)
T2 = T0 + timedelta(minutes=10)


def md5_of(content: bytes) -> str:
    return hashlib.md5(content).hexdigest()


class InterruptedStream(io.BytesIO):
    """Stream that drops the connection after ``fail_after`` bytes."""

    def __init__(self, content: bytes, fail_after: int):
        super().__init__(content)
        self.fail_after = fail_after

    def read(self, size=-1):
        remaining = self.fail_after - self.tell()
        if remaining <= 0:
            raise ConnectionError("connection reset by peer")
        if size is None or size < 0 or size > remaining:
            size = remaining
        return super().read(size)


@pytest.fixture
def local_root(tmp_path):
    """Absolute local root with no trailing separator."""
    root = tmp_path / "local"
    root.mkdir()
    return str(root)


@pytest.fixture
def backend():
    """In-memory backend acting as this machine."""
    return InMemoryBackend(CLIENT_ID)


@pytest.fixture
def local_entry():
    """Factory for LocalEntry values."""

    def make(path, md5="H1", last_modified=T0):
        return LocalEntry(path=path, md5=md5, last_modified=last_modified)

    return make


@pytest.fixture
def remote_entry():
    """Factory for RemoteEntry values."""

    def make(path, md5="H1", last_modified=T0, writer_id=None):
        return RemoteEntry(
            path=path, md5=md5, last_modified=last_modified, writer_id=writer_id
        )

    return make


@pytest.fixture
def write_local(local_root):
    """Write a file under the local root, optionally setting its mtime."""

    def write(rel_path, content: bytes, mtime: datetime | None = None):
        full_path = os.path.join(local_root, *rel_path.split("/"))
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(content)
        if mtime is not None:
            ts = mtime.timestamp()
            os.utime(full_path, (ts, ts))
        return full_path

    return write
