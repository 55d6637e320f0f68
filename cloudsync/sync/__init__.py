"""Reconciliation engine.

- diff: classify per-path changes against the previous snapshot
- reconciler: decide one action per changed path
- executor: run actions against the local tree and the backend
- engine: the scan/diff/decide/execute loop
"""

from cloudsync.sync.actions import (
    Action,
    DeleteLocal,
    DeleteRemote,
    Download,
    Upload,
)
from cloudsync.sync.diff import diff_side, diff_snapshots
from cloudsync.sync.engine import CycleReport, LoopState, SyncEngine
from cloudsync.sync.executor import ActionExecutor, ExecutionResult
from cloudsync.sync.reconciler import decide, plan_actions

__all__ = [
    "Action",
    "ActionExecutor",
    "CycleReport",
    "DeleteLocal",
    "DeleteRemote",
    "Download",
    "ExecutionResult",
    "LoopState",
    "SyncEngine",
    "Upload",
    "decide",
    "diff_side",
    "diff_snapshots",
    "plan_actions",
]
