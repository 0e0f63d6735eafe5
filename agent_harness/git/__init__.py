"""Git primitives used by the snapshot manager."""

from .primitives import (
    GitPrimitives,
    GitResult,
    GitAvailability,
    BranchResult,
    StatusResult,
    CommitInfo,
    CommitHistoryResult,
    CommitDetailsResult,
    CommitExistsResult,
)

__all__ = [
    "GitPrimitives",
    "GitResult",
    "GitAvailability",
    "BranchResult",
    "StatusResult",
    "CommitInfo",
    "CommitHistoryResult",
    "CommitDetailsResult",
    "CommitExistsResult",
]
