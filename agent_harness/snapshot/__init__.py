"""
Snapshots

Disposable git branch around AI-driven edits:

- one temporary branch per session, created on the first change
- cleanup only when the branch has no uncommitted changes
- switch back first, delete second; a failed delete is only a warning
- one snapshot per user instruction, restorable by git reset or by
  rewriting the backed-up files
"""

from .manager import SnapshotManager
from .state import (
    SnapshotState,
    SnapshotPhase,
    CleanupStep,
    CleanupDecision,
    CleanupResult,
    BranchOperationResult,
    Snapshot,
    SnapshotSummary,
    SnapshotOperationResult,
    RestoreMethod,
    RestoreResult,
)

__all__ = [
    "SnapshotManager",
    "SnapshotState",
    "SnapshotPhase",
    "CleanupStep",
    "CleanupDecision",
    "CleanupResult",
    "BranchOperationResult",
    "Snapshot",
    "SnapshotSummary",
    "SnapshotOperationResult",
    "RestoreMethod",
    "RestoreResult",
]
