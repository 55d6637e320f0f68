"""Reconciler: turn per-path change classifications into actions.

``decide`` applies a fixed decision table to one DiffEntry and returns at most
one action. Rules are checked in order and the first match wins:

 1. removed on both sides                           -> nothing
 2. removed remotely, updated locally               -> upload (local edit wins)
 3. removed remotely, unchanged locally             -> delete local
 4. removed remotely, absent locally                -> nothing
 5. removed locally, updated remotely by us         -> delete remote
 6. removed locally, updated remotely by others     -> download
 7. removed locally, unchanged remotely             -> delete remote
 8. present on one side only                        -> copy to the other side
 9. same content on both sides                      -> nothing
10. content differs, local strictly newer           -> upload
11. content differs, remote newer or same time      -> download

Rule 5 keeps a machine from resurrecting a file it uploaded and then deleted.
Rule 6 restores a file deleted here when someone else changed it remotely,
even if the deletion was intentional.
"""

import logging

from cloudsync.models import Change, DiffEntry
from cloudsync.sync.actions import (
    Action,
    DeleteLocal,
    DeleteRemote,
    Download,
    Upload,
)

logger = logging.getLogger(__name__)


def decide(entry: DiffEntry, local_base: str, client_id: str) -> Action | None:
    """Decide what to do for one changed path.

    Args:
        entry: Change classification for the path
        local_base: Absolute local root
        client_id: This machine's client id

    Returns:
        The single action to perform, or None if the path is converged
    """
    path = entry.path
    local, remote = entry.local, entry.remote
    local_removed = entry.local_change == Change.REMOVED
    remote_removed = entry.remote_change == Change.REMOVED

    if local_removed and remote_removed:
        return None

    if remote_removed:
        if entry.local_change == Change.UPDATED:
            return Upload(
                path,
                local_base,
                local=local,
                reason="Deleted remotely but edited locally",
            )
        if local is not None:
            return DeleteLocal(path, local_base, local=local, reason="Deleted remotely")
        return None

    if local_removed:
        if entry.remote_change == Change.UPDATED:
            if remote is not None and remote.writer_id == client_id:
                return DeleteRemote(
                    path, remote=remote, reason="Deleted locally after our own upload"
                )
            return Download(
                path,
                local_base,
                remote=remote,
                reason="Deleted locally but updated remotely by another client",
            )
        if remote is not None:
            return DeleteRemote(path, remote=remote, reason="Deleted locally")
        return None

    if local is None and remote is None:
        logger.warning(f"Diff entry for {path} has no entry on either side")
        return None
    if remote is None:
        return Upload(path, local_base, local=local, reason="New local file")
    if local is None:
        return Download(path, local_base, remote=remote, reason="New remote file")

    if local.md5 == remote.md5:
        return None
    if local.last_modified > remote.last_modified:
        return Upload(
            path, local_base, local=local, remote=remote, reason="Local file is newer"
        )
    return Download(
        path, local_base, remote=remote, local=local, reason="Remote file is newer"
    )


def plan_actions(
    diff: dict[str, DiffEntry], local_base: str, client_id: str
) -> list[Action]:
    """Decide actions for every changed path, in sorted path order."""
    actions = []
    for path in sorted(diff):
        entry = diff[path]
        action = decide(entry, local_base, client_id)
        logger.debug(f"diffEntry {path} {entry} -> {action or 'no action'}")
        if action is not None:
            actions.append(action)
    return actions
