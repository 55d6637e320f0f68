"""Sync actions.

The four action kinds form a closed set. Each one carries the path, the local
root where it needs one, and the entries the decision was derived from, so it
can be executed and logged on its own.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

from cloudsync.models import LocalEntry, RemoteEntry


@dataclass(frozen=True)
class Upload:
    """Copy the local file to the remote store."""

    kind: ClassVar[str] = "upload"

    path: str
    local_base: str
    local: LocalEntry | None = None
    remote: RemoteEntry | None = None
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.kind}:{self.path}"


@dataclass(frozen=True)
class Download:
    """Copy the remote object over the local file."""

    kind: ClassVar[str] = "download"

    path: str
    local_base: str
    remote: RemoteEntry | None = None
    local: LocalEntry | None = None
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.kind}:{self.path}"


@dataclass(frozen=True)
class DeleteLocal:
    """Remove the local file."""

    kind: ClassVar[str] = "delete_local"

    path: str
    local_base: str
    local: LocalEntry | None = None
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.kind}:{self.path}"


@dataclass(frozen=True)
class DeleteRemote:
    """Remove the remote object."""

    kind: ClassVar[str] = "delete_remote"

    path: str
    remote: RemoteEntry | None = None
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.kind}:{self.path}"


Action = Union[Upload, Download, DeleteLocal, DeleteRemote]

ACTION_TYPES = (Upload, Download, DeleteLocal, DeleteRemote)
