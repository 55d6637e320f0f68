"""Sync loop.

The engine owns the only piece of state that survives between cycles: the
snapshot captured by the previous cycle. Each cycle lists both replicas,
diffs them against that snapshot, decides and executes actions, then stores
the new snapshot as the baseline for the next cycle.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from cloudsync.config import DEFAULT_INTERVAL_SECONDS, FailurePolicy
from cloudsync.exceptions import ListingError
from cloudsync.local_files import list_files
from cloudsync.models import DiffEntry, Snapshot
from cloudsync.storage.base import Backend
from cloudsync.sync.actions import Action
from cloudsync.sync.diff import diff_snapshots
from cloudsync.sync.executor import ActionExecutor, ExecutionResult
from cloudsync.sync.reconciler import plan_actions

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class CycleReport:
    """What happened during one cycle."""

    started: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    diff: dict[str, DiffEntry] = field(default_factory=dict)
    actions: list[Action] = field(default_factory=list)
    result: ExecutionResult | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.result is None or self.result.ok)


class SyncEngine:
    """Drive repeated scan, diff, decide, execute cycles."""

    def __init__(
        self,
        local_path: str,
        backend: Backend,
        client_id: str,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        policy: FailurePolicy = FailurePolicy.ABORT,
        lister: Callable[[str], list] = list_files,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize sync engine.

        Args:
            local_path: Absolute local root without a trailing separator
            backend: Remote store
            client_id: This machine's client id
            interval: Seconds to sleep between cycles
            policy: Failure policy handed to the action executor
            lister: Local lister, ``list_files`` by default
            sleep: Sleep function, replaceable in tests
        """
        self.local_path = local_path
        self.backend = backend
        self.client_id = client_id
        self.interval = interval
        self.lister = lister
        self.sleep = sleep
        self.executor = ActionExecutor(backend, client_id, policy=policy)

        self.state = LoopState.IDLE
        self.last_snapshot = Snapshot.empty()
        self.cycles = 0

    def scan(self) -> Snapshot:
        """List both replicas.

        Raises:
            ListingError: If either listing fails
        """
        try:
            remote = self.backend.list_all()
        except Exception as e:
            raise ListingError("remote", e) from e
        logger.info(f"Remote listing done: {len(remote)} objects")

        try:
            local = self.lister(self.local_path)
        except Exception as e:
            raise ListingError("local", e) from e
        logger.info(f"Local listing done: {len(local)} files")

        return Snapshot.from_listings(remote, local)

    def plan(self, snapshot: Snapshot) -> tuple[dict[str, DiffEntry], list[Action]]:
        """Diff a snapshot against the stored one and decide actions."""
        diff = diff_snapshots(self.last_snapshot, snapshot)
        actions = plan_actions(diff, self.local_path, self.client_id)
        return diff, actions

    def run_cycle(self) -> CycleReport:
        """Run one full cycle. Never raises for listing or action failures."""
        self.state = LoopState.RUNNING
        self.cycles += 1
        report = CycleReport()
        logger.info(f"==== Starting sync cycle {self.cycles} ====")

        try:
            try:
                snapshot = self.scan()
            except ListingError as e:
                logger.error(f"Sync cycle aborted: {e}")
                report.error = e
                return report

            report.diff, report.actions = self.plan(snapshot)
            logger.info(f"Planned {len(report.actions)} actions")

            try:
                report.result = self.executor.execute(report.actions)
            finally:
                self.last_snapshot = snapshot

            self._log_summary(report.result)
            return report
        finally:
            self.state = LoopState.IDLE

    def run_forever(self, max_cycles: int | None = None) -> None:
        """Run cycles separated by the configured interval.

        Args:
            max_cycles: Stop after this many cycles; None runs until the
                process is terminated
        """
        completed = 0
        while max_cycles is None or completed < max_cycles:
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Unexpected error during sync cycle")
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            self.sleep(self.interval)

    def _log_summary(self, result: ExecutionResult) -> None:
        summary = (
            f"Cycle {self.cycles} done in {result.duration:.2f}s: "
            f"{len(result.succeeded)} succeeded, {len(result.skipped)} skipped, "
            f"{len(result.failed)} failed"
        )
        if result.aborted:
            summary += f", {len(result.not_attempted)} not attempted"
        if result.ok:
            logger.info(summary)
        else:
            logger.warning(summary)
