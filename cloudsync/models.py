"""Data model shared by the sync engine, the storage backends and the local lister.

All entries are immutable once captured: a Snapshot is a point-in-time view of
both replicas and is replaced wholesale after each cycle.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


@dataclass(frozen=True)
class RemoteEntry:
    """Metadata for one object in the remote blob store."""

    path: str
    md5: str  # hex md5 of the object content
    last_modified: datetime
    writer_id: str | None = None  # client id of the machine that last wrote it
    base_path: str = ""


@dataclass(frozen=True)
class LocalEntry:
    """Metadata for one regular file under the local root."""

    path: str
    md5: str  # hex md5 of the file content
    last_modified: datetime
    base_dir: str = ""


@dataclass(frozen=True)
class Snapshot:
    """Listing of both replicas captured during one cycle."""

    remote: dict[str, RemoteEntry] = field(default_factory=dict)
    local: dict[str, LocalEntry] = field(default_factory=dict)
    scan_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls) -> "Snapshot":
        """Snapshot used before the first cycle (and after every restart)."""
        return cls(remote={}, local={})

    @classmethod
    def from_listings(
        cls,
        remote: dict[str, RemoteEntry],
        local: list[LocalEntry],
        scan_time: datetime | None = None,
    ) -> "Snapshot":
        return cls(
            remote=dict(remote),
            local={entry.path: entry for entry in local},
            scan_time=scan_time or datetime.now(timezone.utc),
        )

    @property
    def is_empty(self) -> bool:
        return not self.remote and not self.local


class Change(str, Enum):
    """How a path changed on one side since the previous snapshot."""

    NONE = "none"
    UPDATED = "updated"  # added or modified
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffEntry:
    """Per-path change classification on both sides.

    ``local`` and ``remote`` hold the entry currently present on that side,
    or None if the path is absent there now.
    """

    path: str
    local: LocalEntry | None = None
    local_change: Change = Change.NONE
    remote: RemoteEntry | None = None
    remote_change: Change = Change.NONE

    @property
    def has_changes(self) -> bool:
        return self.local_change != Change.NONE or self.remote_change != Change.NONE

    def __str__(self) -> str:
        local = self.local_change.value
        if self.local_change == Change.UPDATED and self.local is not None:
            local = f"updated {self.local.md5}"
        remote = self.remote_change.value
        if self.remote_change == Change.UPDATED and self.remote is not None:
            remote = f"updated {self.remote.md5}"
        return f"local:{local} remote:{remote}"
