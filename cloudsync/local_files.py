"""Local filesystem listing.

Walks regular files under a root directory and fingerprints each one by
hashing its full content.
"""

import hashlib
import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path

from cloudsync.models import LocalEntry

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def md5_file(path: Path | str) -> str:
    """Calculate the MD5 hash of a file's content.

    Args:
        path: File to hash

    Returns:
        MD5 hash as hex string
    """
    hasher = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _check_root(root: str) -> None:
    if not os.path.isabs(root) or root.endswith(os.sep):
        raise ValueError(
            f"Base path must be absolute and must not end with {os.sep}: {root}"
        )


def _make_entry(root: str, full_path: str, st: os.stat_result) -> LocalEntry:
    rel_path = Path(full_path).relative_to(root).as_posix()
    return LocalEntry(
        path=rel_path,
        md5=md5_file(full_path),
        last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        base_dir=root,
    )


def get_local_entry(root: str, rel_path: str) -> LocalEntry | None:
    """Fetch the current metadata of one local file.

    Args:
        root: Absolute local root
        rel_path: Path relative to root, using forward slashes

    Returns:
        LocalEntry, or None if the file is missing or not a regular file
    """
    _check_root(root)
    full_path = os.path.join(root, *rel_path.split("/"))
    try:
        st = os.lstat(full_path)
    except FileNotFoundError:
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    return _make_entry(root, full_path, st)


def list_files(root: str) -> list[LocalEntry]:
    """Recursively list regular files under root.

    Directories, symlinks and other special files are skipped. Errors while
    walking or reading propagate to the caller.

    Args:
        root: Absolute directory path without a trailing separator

    Returns:
        List of LocalEntry, one per regular file
    """
    _check_root(root)
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Local root does not exist: {root}")

    def on_error(error: OSError):
        raise error

    entries = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for filename in sorted(filenames):
            full_path = os.path.join(dirpath, filename)
            st = os.lstat(full_path)
            if not stat.S_ISREG(st.st_mode):
                logger.debug(f"Skipping non-regular file {full_path}")
                continue
            entries.append(_make_entry(root, full_path, st))

    logger.debug(f"Listed {len(entries)} local files under {root}")
    return entries
