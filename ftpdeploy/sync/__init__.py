"""Reconciliation engine: walk local files, diff snapshots, sync remotely."""

from .comparator import (
    DeleteJob,
    Job,
    JobKind,
    SnapshotDiffer,
    UploadJob,
    diff_snapshots,
)
from .engine import CycleReport, LoopState, ReconciliationLoop
from .ignore import ExclusionMatcher, compile_exclusion, is_excluded
from .operations import RemoteSyncClient
from .scanner import InventoryEntry, InventorySnapshot, InventoryWalker, walk

__all__ = [
    "ReconciliationLoop",
    "LoopState",
    "CycleReport",
    "RemoteSyncClient",
    "SnapshotDiffer",
    "diff_snapshots",
    "Job",
    "JobKind",
    "UploadJob",
    "DeleteJob",
    "InventoryWalker",
    "InventoryEntry",
    "InventorySnapshot",
    "walk",
    "ExclusionMatcher",
    "compile_exclusion",
    "is_excluded",
]
