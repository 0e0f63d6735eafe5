"""
Snapshot State

In-memory mirror of the temporary-branch state of the working tree, the
per-instruction snapshot history, and the result types of both.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class SnapshotPhase(str, Enum):
    """Where the session is in the temporary-branch lifecycle."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    NOT_APPLICABLE = "not_applicable"  # no git, or not a repository
    ACTIVE = "active"                  # on a temporary branch
    INACTIVE = "inactive"              # git usable, no temporary branch
    CLEANING_UP = "cleaning_up"
    CLEANED = "cleaned"


class CleanupStep(str, Enum):
    """Named outcomes of the cleanup sequence."""
    SWITCHED = "switched"
    DELETED = "deleted"
    DELETE_FAILED_NON_FATAL = "delete_failed_non_fatal"


@dataclass
class SnapshotState:
    """
    Process-lifetime git integration state.

    ``git_mode`` implies both ``feature_branch`` and ``original_branch``
    are set; use ``enter_git_mode`` / ``leave_git_mode`` to change them.
    """
    git_available: bool = False
    is_git_repo: bool = False
    git_initialized: bool = False
    git_mode: bool = False
    original_branch: Optional[str] = None
    feature_branch: Optional[str] = None
    phase: SnapshotPhase = SnapshotPhase.UNINITIALIZED

    @property
    def git_usable(self) -> bool:
        return self.git_available and self.is_git_repo

    def enter_git_mode(self, feature_branch: str):
        if not feature_branch or not self.original_branch:
            raise ValueError("Git mode needs both an original and a feature branch")
        self.feature_branch = feature_branch
        self.git_mode = True
        self.phase = SnapshotPhase.ACTIVE

    def leave_git_mode(self, phase: SnapshotPhase = SnapshotPhase.INACTIVE):
        self.feature_branch = None
        self.git_mode = False
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "git_available": self.git_available,
            "is_git_repo": self.is_git_repo,
            "git_mode": self.git_mode,
            "original_branch": self.original_branch,
            "feature_branch": self.feature_branch,
        }


@dataclass
class CleanupDecision:
    """Whether the temporary branch can be retired right now."""
    should_cleanup: bool
    reason: Optional[str] = None


@dataclass
class CleanupResult:
    """Result of ``perform_cleanup``."""
    success: bool
    error: Optional[str] = None
    steps: List[CleanupStep] = field(default_factory=list)
    deleted_branch: Optional[str] = None
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "steps": [s.value for s in self.steps],
            "deleted_branch": self.deleted_branch,
            "warning": self.warning,
        }


@dataclass
class BranchOperationResult:
    """Result of creating, committing to, merging or leaving the temporary branch."""
    success: bool
    error: Optional[str] = None
    branch: Optional[str] = None


# =============================================================================
# Snapshot History
# =============================================================================

@dataclass
class Snapshot:
    """
    Files touched while carrying out one user instruction.

    ``files`` maps each path to its content before the first change, or
    None when the file did not exist yet (restoring deletes it).
    """
    id: int
    instruction: str
    timestamp: datetime
    files: Dict[str, Optional[str]] = field(default_factory=dict)
    git_branch: Optional[str] = None
    is_first_snapshot: bool = False

    @property
    def modified_files(self) -> List[str]:
        return list(self.files)

    @property
    def is_empty(self) -> bool:
        return not self.files


@dataclass
class SnapshotSummary:
    """One row of the snapshot list: an in-memory snapshot, or a commit in git mode."""
    id: int
    instruction: str
    timestamp: str
    is_git_commit: bool = False
    file_count: int = 0
    modified_files: List[str] = field(default_factory=list)
    git_hash: Optional[str] = None
    short_hash: Optional[str] = None
    author: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "instruction": self.instruction,
            "timestamp": self.timestamp,
            "is_git_commit": self.is_git_commit,
        }
        if self.is_git_commit:
            result.update({
                "git_hash": self.git_hash,
                "short_hash": self.short_hash,
                "author": self.author,
            })
        else:
            result.update({
                "file_count": self.file_count,
                "modified_files": self.modified_files,
            })
        return result


@dataclass
class SnapshotOperationResult:
    success: bool
    error: Optional[str] = None


class RestoreMethod(str, Enum):
    GIT_RESET = "git-reset"
    FILE_BASED = "file-based"


@dataclass
class RestoreResult:
    """Result of ``restore_snapshot``."""
    success: bool
    method: Optional[RestoreMethod] = None
    error: Optional[str] = None

    # git reset
    commit_hash: Optional[str] = None
    short_hash: Optional[str] = None

    # file-based
    restored_files: List[str] = field(default_factory=list)
    deleted_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
