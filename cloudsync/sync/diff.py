"""Diff engine: classify per-path changes between two snapshots.

Each replica is compared independently against its own previous listing. Added
and modified paths are both classified as UPDATED; only removals are
distinguishable, which is all the reconciler needs.
"""

import logging
from typing import Mapping, Protocol

from cloudsync.models import Change, DiffEntry, Snapshot

logger = logging.getLogger(__name__)


class _Fingerprinted(Protocol):
    path: str
    md5: str


def diff_side(
    previous: Mapping[str, _Fingerprinted],
    current: Mapping[str, _Fingerprinted],
) -> dict[str, Change]:
    """Classify every path of one replica.

    Args:
        previous: Entries from the prior snapshot, keyed by path
        current: Entries from the new snapshot, keyed by path

    Returns:
        Mapping of path to Change covering every path in either listing
    """
    changes = {path: Change.NONE for path in current}

    for path, old in previous.items():
        new = current.get(path)
        if new is None:
            changes[path] = Change.REMOVED
        elif new.md5 != old.md5:
            changes[path] = Change.UPDATED

    # Paths never seen before, including everything on the first cycle
    for path in current:
        if path not in previous:
            changes[path] = Change.UPDATED

    return changes


def diff_snapshots(previous: Snapshot, current: Snapshot) -> dict[str, DiffEntry]:
    """Build the per-path diff of both replicas.

    Args:
        previous: Snapshot from the prior cycle (empty after a restart)
        current: Snapshot captured this cycle

    Returns:
        Mapping of path to DiffEntry, containing only paths where at least
        one side changed
    """
    local_changes = diff_side(previous.local, current.local)
    remote_changes = diff_side(previous.remote, current.remote)

    diff = {}
    for path in sorted(local_changes.keys() | remote_changes.keys()):
        entry = DiffEntry(
            path=path,
            local=current.local.get(path),
            local_change=local_changes.get(path, Change.NONE),
            remote=current.remote.get(path),
            remote_change=remote_changes.get(path, Change.NONE),
        )
        if entry.has_changes:
            diff[path] = entry

    logger.debug(f"Diff produced {len(diff)} changed paths")
    return diff
