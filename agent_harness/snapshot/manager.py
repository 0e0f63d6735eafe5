"""
Snapshot Manager

Wraps the user's working tree in a disposable git branch for the length of
a session, keeps one snapshot per user instruction so AI-driven edits can
be reviewed or rolled back, and retires the branch once it is safe to do so.

Cleanup is switch-then-delete: once the original branch is checked out the
user is safe, so a failure to delete the temporary branch afterwards is only
logged as a warning.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from ..errors import HarnessError, GitUnavailableError, GitStateError, UnexpectedError
from ..git import GitPrimitives
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

logger = logging.getLogger("agent-harness.snapshot")


class SnapshotManager:
    """
    Temporary-branch state machine for one session.

    Not safe for concurrent use: callers serialize initialization and cleanup.
    """

    def __init__(
        self,
        git: GitPrimitives,
        state: Optional[SnapshotState] = None,
        enabled: bool = True,
        force_delete: bool = False,
        commit_prefix: str = "Synth-Dev",
        history_limit: int = 20,
    ):
        self.git = git
        self.state = state or SnapshotState()
        self.enabled = enabled
        self.force_delete = force_delete
        self.commit_prefix = commit_prefix
        self.history_limit = history_limit

        self.snapshots: List[Snapshot] = []
        self.current_snapshot: Optional[Snapshot] = None
        self._next_snapshot_id = 1

    # =========================================================================
    # Initialization
    # =========================================================================

    async def initialize(self):
        """Detect git and remember the branch the session started on. Never raises."""
        state = self.state
        state.phase = SnapshotPhase.INITIALIZING
        try:
            if not self.enabled:
                logger.info("Git integration disabled by configuration")
                state.git_available = False
                state.is_git_repo = False
                return

            availability = await self.git.check_git_availability()
            state.git_available = availability.available
            state.is_git_repo = availability.is_repo

            if state.git_usable:
                branch = await self.git.get_current_branch()
                if branch.success:
                    state.original_branch = branch.branch
                    logger.info(f"Git integration enabled. Original branch: {state.original_branch}")
                else:
                    logger.warning(f"Could not determine current branch: {branch.error}")
            else:
                logger.info(
                    f"Git integration disabled. Available: {state.git_available}, "
                    f"Repo: {state.is_git_repo}"
                )
        except Exception as e:
            logger.warning(f"Git initialization failed: {e}")
            state.git_available = False
            state.is_git_repo = False
        finally:
            state.git_initialized = True
            if not state.git_usable:
                state.phase = SnapshotPhase.NOT_APPLICABLE
            elif state.git_mode:
                state.phase = SnapshotPhase.ACTIVE
            else:
                state.phase = SnapshotPhase.INACTIVE

    async def ensure_initialized(self):
        if not self.state.git_initialized:
            await self.initialize()

    # =========================================================================
    # Temporary Branch
    # =========================================================================

    async def create_feature_branch(self, instruction: str) -> BranchOperationResult:
        """
        Create the session's temporary branch and switch to it.

        Only the first call per session creates a branch; later calls
        return the existing one.
        """
        await self.ensure_initialized()
        state = self.state

        if not state.git_usable:
            return BranchOperationResult(success=False, error="Git integration not available")
        if state.git_mode:
            return BranchOperationResult(success=True, branch=state.feature_branch)
        if not state.original_branch:
            return BranchOperationResult(success=False, error="Original branch unknown")

        try:
            branch_name = self.git.generate_branch_name(instruction)
            created = await self.git.create_branch(branch_name)
        except Exception as e:
            logger.warning(f"Git branch creation failed: {e}")
            return BranchOperationResult(success=False, error=str(e))

        if not created.success:
            logger.warning(f"Failed to create Git branch: {created.error}")
            return BranchOperationResult(success=False, error=created.error)

        state.enter_git_mode(branch_name)
        logger.info(f"Created feature branch: {branch_name}")
        return BranchOperationResult(success=True, branch=branch_name)

    async def resume(self, original_branch: str) -> BranchOperationResult:
        """Adopt the currently checked-out branch as the temporary branch of an earlier session."""
        await self.ensure_initialized()
        state = self.state

        if not state.git_usable:
            return BranchOperationResult(success=False, error="Git integration not available")

        current = await self.git.get_current_branch()
        if not current.success:
            return BranchOperationResult(success=False, error=f"Failed to get current branch: {current.error}")
        if current.branch == original_branch:
            return BranchOperationResult(
                success=False,
                error=f"Already on {original_branch}; there is no temporary branch to manage",
            )

        state.original_branch = original_branch
        state.enter_git_mode(current.branch)
        logger.info(f"Resumed temporary branch {current.branch} (original: {original_branch})")
        return BranchOperationResult(success=True, branch=current.branch)

    async def commit_changes(
        self,
        modified_files: List[str],
        instruction: Optional[str] = None,
    ) -> BranchOperationResult:
        """Commit modified files to the temporary branch, described by the current snapshot by default."""
        if instruction is None:
            instruction = self.current_snapshot.instruction if self.current_snapshot else ""
        if not self.state.git_mode:
            return BranchOperationResult(success=False, error="Not in Git mode")
        if not modified_files:
            return BranchOperationResult(success=False, error="No modified files to commit")

        try:
            added = await self.git.add_files(modified_files)
            if not added.success:
                return BranchOperationResult(success=False, error=f"Failed to stage files: {added.error}")

            committed = await self.git.commit(self.build_commit_message(modified_files, instruction))
        except Exception as e:
            return BranchOperationResult(success=False, error=str(e))

        if not committed.success:
            return BranchOperationResult(success=False, error=f"Failed to commit: {committed.error}")

        logger.info(f"Committed changes to Git: {', '.join(modified_files)}")
        return BranchOperationResult(success=True, branch=self.state.feature_branch)

    def build_commit_message(self, modified_files: List[str], instruction: str, now: Optional[datetime] = None) -> str:
        timestamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        if len(modified_files) <= 3:
            file_list = ", ".join(modified_files)
        else:
            file_list = f"{', '.join(modified_files[:3])} and {len(modified_files) - 3} more"
        sanitized = " ".join(instruction.split())
        return (
            f"{self.commit_prefix} [{timestamp}]: Modified {file_list}\n\n"
            f"Original instruction: {sanitized}"
        )

    async def merge_feature_branch(self) -> BranchOperationResult:
        """Switch back to the original branch and merge the temporary branch into it."""
        state = self.state
        if not state.git_mode or not state.feature_branch or not state.original_branch:
            return BranchOperationResult(success=False, error="Not in Git mode or missing branch information")

        try:
            switched = await self.git.switch_branch(state.original_branch)
            if not switched.success:
                return BranchOperationResult(
                    success=False,
                    error=f"Failed to switch to {state.original_branch}: {switched.error}",
                )

            merged = await self.git.merge_branch(state.feature_branch)
        except Exception as e:
            return BranchOperationResult(success=False, error=str(e))

        if not merged.success:
            return BranchOperationResult(
                success=False,
                error=f"Failed to merge {state.feature_branch}: {merged.error}",
            )

        branch = state.feature_branch
        state.leave_git_mode()
        logger.info(f"Merged {branch} into {state.original_branch}")
        return BranchOperationResult(success=True, branch=branch)

    async def switch_to_original_branch(self) -> BranchOperationResult:
        """Leave the temporary branch without merging. The branch itself is kept."""
        state = self.state
        if not state.git_mode or not state.original_branch:
            return BranchOperationResult(success=False, error="Not in Git mode or no original branch")

        try:
            switched = await self.git.switch_branch(state.original_branch)
        except Exception as e:
            return BranchOperationResult(success=False, error=str(e))

        if not switched.success:
            return BranchOperationResult(success=False, error=switched.error)

        branch = state.feature_branch
        state.leave_git_mode()
        logger.info(f"Switched back to {state.original_branch}; kept {branch}")
        return BranchOperationResult(success=True, branch=branch)

    # =========================================================================
    # Snapshot History
    # =========================================================================

    async def create_snapshot(self, instruction: str) -> Snapshot:
        """
        Start the snapshot for a new user instruction.

        A current snapshot that never backed up a file is reused. The first
        snapshot of the session also creates the temporary branch.
        """
        await self.ensure_initialized()

        current = self.current_snapshot
        if current is not None and current.is_empty:
            current.instruction = instruction
            current.timestamp = datetime.now(timezone.utc)
            return current

        snapshot = Snapshot(
            id=self._next_snapshot_id,
            instruction=instruction,
            timestamp=datetime.now(timezone.utc),
            is_first_snapshot=not self.snapshots,
        )
        self._next_snapshot_id += 1

        if snapshot.is_first_snapshot and self.state.git_usable:
            created = await self.create_feature_branch(instruction)
            if created.success:
                snapshot.git_branch = created.branch

        self.snapshots.append(snapshot)
        self.current_snapshot = snapshot
        logger.debug(f"Created snapshot {snapshot.id}: {instruction}")
        return snapshot

    def backup_file_if_needed(self, file_path: Union[str, Path]) -> bool:
        """
        Remember a file's content before its first change in the current snapshot.

        Returns True when a backup entry was added.
        """
        snapshot = self.current_snapshot
        if snapshot is None:
            return False

        key = str(file_path)
        if key in snapshot.files:
            return False

        path = Path(file_path)
        try:
            snapshot.files[key] = path.read_text(encoding="utf-8") if path.exists() else None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not backup file {key}: {e}")
            return False
        return True

    async def get_snapshot_summaries(self) -> List[SnapshotSummary]:
        """In git mode the commits of the temporary branch, otherwise the in-memory snapshots."""
        if self.state.git_mode:
            history = await self.git.get_commit_history(self.history_limit)
            if not history.success:
                logger.warning(f"Could not read commit history: {history.error}")
                return []
            return [
                SnapshotSummary(
                    id=index,
                    instruction=commit.subject,
                    timestamp=commit.date,
                    is_git_commit=True,
                    git_hash=commit.hash,
                    short_hash=commit.short_hash,
                    author=commit.author,
                )
                for index, commit in enumerate(history.commits, start=1)
            ]

        return [
            SnapshotSummary(
                id=snapshot.id,
                instruction=snapshot.instruction,
                timestamp=snapshot.timestamp.isoformat(),
                file_count=len(snapshot.files),
                modified_files=snapshot.modified_files,
            )
            for snapshot in self.snapshots
        ]

    async def get_snapshot(self, snapshot_id: int) -> Optional[Union[Snapshot, SnapshotSummary]]:
        if not self.state.git_mode:
            return self._find_snapshot(snapshot_id)

        summary = await self._find_commit_summary(snapshot_id)
        if summary is None:
            return None
        details = await self.git.get_commit_details(summary.git_hash)
        if not details.success:
            return None
        summary.message = details.message
        summary.modified_files = details.files
        summary.file_count = len(details.files)
        return summary

    async def get_snapshot_count(self) -> int:
        if self.state.git_mode:
            return len(await self.get_snapshot_summaries())
        return len(self.snapshots)

    async def restore_snapshot(self, snapshot_id: int) -> RestoreResult:
        """
        Put the working tree back to a snapshot.

        In git mode this is a hard reset to the listed commit; otherwise the
        backed-up files are rewritten and files that did not exist are deleted.
        """
        if self.state.git_mode:
            try:
                return await self._restore_commit(snapshot_id)
            except Exception as e:
                logger.error(f"Restore of snapshot {snapshot_id} aborted: {e}")
                return RestoreResult(
                    success=False,
                    method=RestoreMethod.GIT_RESET,
                    error=str(UnexpectedError("Failed to restore snapshot", e)),
                )

        snapshot = self._find_snapshot(snapshot_id)
        if snapshot is None:
            return RestoreResult(success=False, error=f"Snapshot {snapshot_id} not found")
        return self._restore_files(snapshot)

    async def _restore_commit(self, snapshot_id: int) -> RestoreResult:
        summary = await self._find_commit_summary(snapshot_id)
        if summary is None:
            return RestoreResult(success=False, error=f"Snapshot {snapshot_id} not found")

        exists = await self.git.commit_exists(summary.git_hash)
        if not exists.success or not exists.exists:
            return RestoreResult(
                success=False,
                method=RestoreMethod.GIT_RESET,
                error=f"Git commit {summary.short_hash} not found or inaccessible",
            )

        reset = await self.git.reset_to_commit(summary.git_hash)
        if not reset.success:
            return RestoreResult(
                success=False,
                method=RestoreMethod.GIT_RESET,
                error=f"Git reset failed: {reset.error}",
            )

        logger.info(f"Reset to commit {summary.short_hash}: {summary.instruction}")
        return RestoreResult(
            success=True,
            method=RestoreMethod.GIT_RESET,
            commit_hash=summary.git_hash,
            short_hash=summary.short_hash,
        )

    def _restore_files(self, snapshot: Snapshot) -> RestoreResult:
        result = RestoreResult(success=False, method=RestoreMethod.FILE_BASED)

        for key, content in snapshot.files.items():
            path = Path(key)
            try:
                if content is None:
                    if path.exists():
                        path.unlink()
                        result.deleted_files.append(key)
                else:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_text(content, encoding="utf-8")
                    result.restored_files.append(key)
            except OSError as e:
                result.errors.append(f"{key}: {e}")

        result.success = not result.errors
        if result.errors:
            result.error = f"Failed to restore {len(result.errors)} of {len(snapshot.files)} files"
            logger.warning(f"Snapshot {snapshot.id} restored partially: {'; '.join(result.errors)}")
        else:
            logger.info(f"Restored snapshot {snapshot.id}: {snapshot.instruction}")
        return result

    def delete_snapshot(self, snapshot_id: int) -> SnapshotOperationResult:
        if self.state.git_mode:
            return SnapshotOperationResult(
                success=False,
                error=(
                    "Snapshot deletion is not supported in Git mode. "
                    "Use Git commands to manage commit history."
                ),
            )

        snapshot = self._find_snapshot(snapshot_id)
        if snapshot is None:
            return SnapshotOperationResult(success=False, error=f"Snapshot {snapshot_id} not found")

        self.snapshots.remove(snapshot)
        if self.current_snapshot is snapshot:
            self.current_snapshot = None
        return SnapshotOperationResult(success=True)

    def clear_all_snapshots(self):
        self.snapshots = []
        self.current_snapshot = None

    def _find_snapshot(self, snapshot_id: int) -> Optional[Snapshot]:
        return next((s for s in self.snapshots if s.id == snapshot_id), None)

    async def _find_commit_summary(self, snapshot_id: int) -> Optional[SnapshotSummary]:
        summaries = await self.get_snapshot_summaries()
        return next((s for s in summaries if s.id == snapshot_id), None)

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def _check_cleanup_gate(self):
        """Raise the first reason cleanup is not allowed, in priority order."""
        await self.ensure_initialized()
        state = self.state

        if not state.git_available or not state.is_git_repo or not state.git_mode:
            raise GitUnavailableError("Git integration not active")

        if not state.feature_branch or not state.original_branch:
            raise GitUnavailableError("Not on a temporary branch")

        status = await self.git.has_uncommitted_changes()
        if not status.success:
            raise GitStateError(f"Failed to check Git status: {status.error}")

        if status.has_uncommitted_changes:
            raise GitStateError("Branch has uncommitted changes")

    async def should_perform_cleanup(self) -> CleanupDecision:
        """Decide whether the temporary branch can be retired. Does not mutate state."""
        try:
            await self._check_cleanup_gate()
        except HarnessError as e:
            return CleanupDecision(should_cleanup=False, reason=str(e))
        except Exception as e:
            return CleanupDecision(
                should_cleanup=False,
                reason=str(UnexpectedError("Error checking cleanup conditions", e)),
            )
        return CleanupDecision(should_cleanup=True)

    async def perform_cleanup(self) -> CleanupResult:
        """
        Switch back to the original branch and delete the temporary one.

        Safe to call again after a failure: gating is re-checked against
        the live repository every time.
        """
        decision = await self.should_perform_cleanup()
        if not decision.should_cleanup:
            return CleanupResult(success=False, error=decision.reason)

        try:
            return await self._run_cleanup()
        except Exception as e:
            logger.error(f"Cleanup aborted: {e}")
            if self.state.git_mode:
                self.state.phase = SnapshotPhase.ACTIVE
            return CleanupResult(success=False, error=str(UnexpectedError("Error checking cleanup conditions", e)))

    async def _run_cleanup(self) -> CleanupResult:
        state = self.state
        branch_to_delete = state.feature_branch
        state.phase = SnapshotPhase.CLEANING_UP
        result = CleanupResult(success=False)

        switched = await self.git.switch_branch(state.original_branch)
        if not switched.success:
            state.phase = SnapshotPhase.ACTIVE
            result.error = f"Failed to switch to original branch: {switched.error}"
            return result
        result.steps.append(CleanupStep.SWITCHED)

        deleted = await self.git.delete_branch(branch_to_delete, force=self.force_delete)
        if deleted.success:
            result.steps.append(CleanupStep.DELETED)
            result.deleted_branch = branch_to_delete
        else:
            result.steps.append(CleanupStep.DELETE_FAILED_NON_FATAL)
            result.warning = f"Failed to delete temporary branch {branch_to_delete}: {deleted.error}"
            logger.warning(result.warning)

        state.leave_git_mode(SnapshotPhase.CLEANED)
        result.success = True
        logger.info(
            f"Automatic cleanup completed: switched to {state.original_branch}"
            + (f" and deleted {branch_to_delete}" if result.deleted_branch else "")
        )
        return result

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Git integration status for display."""
        return self.state.to_dict()
