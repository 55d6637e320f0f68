"""Action executor.

Runs a batch of actions against the local tree and the backend, strictly in
the order given.
"""

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field

from cloudsync.config import FailurePolicy
from cloudsync.exceptions import ActionError
from cloudsync.local_files import get_local_entry
from cloudsync.storage.base import Backend, NotFoundError
from cloudsync.sync.actions import (
    Action,
    DeleteLocal,
    DeleteRemote,
    Download,
    Upload,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of executing one batch of actions."""

    succeeded: list[Action] = field(default_factory=list)
    skipped: list[Action] = field(default_factory=list)
    failed: list[ActionError] = field(default_factory=list)
    not_attempted: list[Action] = field(default_factory=list)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def aborted(self) -> bool:
        """True if a failure stopped the batch before every action ran."""
        return bool(self.not_attempted)

    @property
    def total(self) -> int:
        return (
            len(self.succeeded)
            + len(self.skipped)
            + len(self.failed)
            + len(self.not_attempted)
        )


def _local_full_path(local_base: str, path: str) -> str:
    return os.path.join(local_base, *path.split("/"))


class ActionExecutor:
    """Execute sync actions for one local root and one backend."""

    def __init__(
        self,
        backend: Backend,
        client_id: str,
        policy: FailurePolicy = FailurePolicy.ABORT,
    ):
        """Initialize executor.

        Args:
            backend: Remote store; writes are tagged with its client id
            client_id: This machine's client id
            policy: ABORT stops at the first failure, CONTINUE runs every action
        """
        self.backend = backend
        self.client_id = client_id
        self.policy = FailurePolicy(policy)

    def execute(self, actions: list[Action]) -> ExecutionResult:
        """Execute actions in order.

        Already-executed actions are never rolled back.
        """
        start_time = time.time()
        result = ExecutionResult()

        for index, action in enumerate(actions):
            try:
                performed = self.execute_one(action)
            except Exception as e:
                error = ActionError(action, e)
                logger.error(f"failure in {action}: {e}")
                result.failed.append(error)
                if self.policy == FailurePolicy.ABORT:
                    result.not_attempted.extend(actions[index + 1 :])
                    break
                continue

            if performed:
                result.succeeded.append(action)
            else:
                result.skipped.append(action)

        result.duration = time.time() - start_time
        return result

    def execute_one(self, action: Action) -> bool:
        """Execute a single action.

        Returns:
            True if the action changed a replica, False if it was skipped
        """
        if isinstance(action, Upload):
            return self.upload(action)
        if isinstance(action, Download):
            return self.download(action)
        if isinstance(action, DeleteLocal):
            return self.delete_local(action)
        if isinstance(action, DeleteRemote):
            return self.delete_remote(action)
        raise TypeError(f"Unknown action type: {type(action).__name__}")

    def upload(self, action: Upload) -> bool:
        """Upload the local file, unless the remote already holds its content."""
        local_md5 = action.local.md5 if action.local else None

        if local_md5 and action.remote and action.remote.md5 == local_md5:
            logger.info(f"[{action}] Remote md5 already matches. Skipping the upload")
            return False
        if local_md5:
            try:
                current = self.backend.get_meta(action.path)
            except NotFoundError:
                current = None
            if current is not None and current.md5 == local_md5:
                logger.info(
                    f"[{action}] Remote now has the same md5. Skipping the upload"
                )
                return False

        full_path = _local_full_path(action.local_base, action.path)
        logger.info(f"[{action}] Writing from {full_path} to remote:{action.path}")
        stream = open(full_path, "rb")
        self.backend.put(action.path, stream)
        return True

    def download(self, action: Download) -> bool:
        """Download the remote object, unless the local file changed meanwhile."""
        full_path = _local_full_path(action.local_base, action.path)
        current = get_local_entry(action.local_base, action.path)

        if current is not None and action.remote is not None:
            if current.md5 == action.remote.md5:
                logger.info(f"[{action}] Local md5 is the same. Skipping the download")
                return False
            if current.last_modified > action.remote.last_modified:
                logger.info(
                    f"[{action}] Local file is modified after remote. "
                    "Skipping the download"
                )
                return False

        logger.info(f"[{action}] Writing from remote:{action.path} to {full_path}")
        directory = os.path.dirname(full_path)
        os.makedirs(directory, exist_ok=True)
        _entry, stream = self.backend.get(action.path)

        # The target is only replaced once the whole object has been copied
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=directory, prefix=".cloudsync-", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = tmp.name
                shutil.copyfileobj(stream, tmp)
            os.replace(tmp_path, full_path)
            tmp_path = None
        finally:
            stream.close()
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
        return True

    def delete_local(self, action: DeleteLocal) -> bool:
        full_path = _local_full_path(action.local_base, action.path)
        logger.info(f"[{action}] Removing {full_path}")
        try:
            os.remove(full_path)
        except FileNotFoundError:
            logger.info(f"[{action}] Already absent locally")
            return False
        return True

    def delete_remote(self, action: DeleteRemote) -> bool:
        logger.info(f"[{action}] Removing remote:{action.path}")
        try:
            self.backend.delete(action.path)
        except NotFoundError:
            logger.info(f"[{action}] Already absent remotely")
            return False
        return True
