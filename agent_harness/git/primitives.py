"""
Git Primitives

Thin async wrappers around the ``git`` CLI. Every call returns a result
object instead of raising; the snapshot manager decides what a failure means.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

logger = logging.getLogger("agent-harness.git")

# Separators emitted by the %x1f / %x1e format placeholders
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"


@dataclass
class CommandOutput:
    """Raw outcome of one git invocation."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or f"git exited with status {self.returncode}"


@dataclass
class GitResult:
    """Result of a git operation."""
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "error": self.error}


@dataclass
class GitAvailability:
    """Whether git is installed and the working directory is a repository."""
    available: bool
    is_repo: bool
    error: Optional[str] = None


@dataclass
class BranchResult(GitResult):
    branch: Optional[str] = None


@dataclass
class StatusResult(GitResult):
    has_uncommitted_changes: bool = False
    status: str = ""


@dataclass
class CommitInfo:
    """One entry of the branch history."""
    hash: str
    subject: str
    date: str
    author: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@dataclass
class CommitHistoryResult(GitResult):
    commits: List[CommitInfo] = field(default_factory=list)


@dataclass
class CommitDetailsResult(GitResult):
    message: str = ""
    files: List[str] = field(default_factory=list)


@dataclass
class CommitExistsResult(GitResult):
    exists: bool = False


class GitPrimitives:
    """
    Git operations for one working tree.

    Usage:
        git = GitPrimitives(repo_path=".")
        availability = await git.check_git_availability()
        result = await git.create_branch(git.generate_branch_name("fix login"))
    """

    def __init__(self, repo_path: str | Path = ".", branch_prefix: str = "synth-dev"):
        self.repo_path = Path(repo_path)
        self.branch_prefix = branch_prefix

    async def _run(self, *args: str) -> CommandOutput:
        try:
            process = await asyncio.create_subprocess_exec(
                "git", *args,
                cwd=str(self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return CommandOutput(returncode=127, stderr="Git command not found")

        stdout, stderr = await process.communicate()
        output = CommandOutput(
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        logger.debug(f"git {' '.join(args)} -> {output.returncode}")
        return output

    async def _simple(self, *args: str) -> GitResult:
        output = await self._run(*args)
        if output.ok:
            return GitResult(success=True)
        return GitResult(success=False, error=output.error)

    async def check_git_availability(self) -> GitAvailability:
        """Check that git is installed and the repo path is inside a work tree."""
        version = await self._run("--version")
        if not version.ok:
            return GitAvailability(available=False, is_repo=False, error="Git command not found")

        status = await self._run("status", "--porcelain")
        if not status.ok:
            if "not a git repository" in status.stderr:
                return GitAvailability(available=True, is_repo=False, error="Not a Git repository")
            return GitAvailability(available=True, is_repo=False, error=status.error)

        return GitAvailability(available=True, is_repo=True)

    async def get_current_branch(self) -> BranchResult:
        output = await self._run("branch", "--show-current")
        if not output.ok:
            return BranchResult(success=False, error=output.error)
        branch = output.stdout.strip()
        if not branch:
            return BranchResult(success=False, error="HEAD is detached")
        return BranchResult(success=True, branch=branch)

    def generate_branch_name(self, instruction: str, now: Optional[datetime] = None) -> str:
        """Build a branch name from a timestamp and a slug of the instruction."""
        timestamp = (now or datetime.now()).strftime("%Y%m%dT%H%M%S")
        slug = re.sub(r"[^a-z0-9\s]", "", instruction.lower())
        slug = re.sub(r"\s+", "-", slug.strip())[:30].rstrip("-")
        name = f"{self.branch_prefix}/{timestamp}"
        return f"{name}-{slug}" if slug else name

    async def create_branch(self, name: str) -> GitResult:
        """Create ``name`` from HEAD and switch to it."""
        return await self._simple("checkout", "-b", name)

    async def switch_branch(self, name: str) -> GitResult:
        return await self._simple("checkout", name)

    async def add_files(self, paths: List[str]) -> GitResult:
        if not paths:
            return GitResult(success=False, error="No files to add")
        return await self._simple("add", "--", *paths)

    async def commit(self, message: str) -> GitResult:
        return await self._simple("commit", "-m", message)

    async def merge_branch(self, name: str) -> GitResult:
        return await self._simple("merge", name)

    async def get_status(self) -> StatusResult:
        output = await self._run("status", "--porcelain")
        if not output.ok:
            return StatusResult(success=False, error=output.error)
        return StatusResult(
            success=True,
            status=output.stdout,
            has_uncommitted_changes=bool(output.stdout.strip()),
        )

    async def has_uncommitted_changes(self) -> StatusResult:
        return await self.get_status()

    async def delete_branch(self, name: str, force: bool = False) -> GitResult:
        return await self._simple("branch", "-D" if force else "-d", name)

    # =========================================================================
    # History
    # =========================================================================

    async def get_commit_history(self, limit: int = 20) -> CommitHistoryResult:
        """Most recent commits on the current branch, newest first."""
        output = await self._run("log", f"-n{limit}", "--format=%H%x1f%s%x1f%aI%x1f%an")
        if not output.ok:
            return CommitHistoryResult(success=False, error=output.error)

        commits = []
        for line in output.stdout.splitlines():
            if not line.strip():
                continue
            hash_, subject, date, author = line.split(FIELD_SEP, 3)
            commits.append(CommitInfo(hash=hash_.strip(), subject=subject, date=date, author=author))
        return CommitHistoryResult(success=True, commits=commits)

    async def get_commit_details(self, commit_hash: str) -> CommitDetailsResult:
        output = await self._run("show", "--name-only", "--format=%B%x1e", commit_hash)
        if not output.ok:
            return CommitDetailsResult(success=False, error=output.error)

        message, _, names = output.stdout.partition(RECORD_SEP)
        return CommitDetailsResult(
            success=True,
            message=message.strip(),
            files=[name.strip() for name in names.splitlines() if name.strip()],
        )

    async def commit_exists(self, commit_hash: str) -> CommitExistsResult:
        output = await self._run("cat-file", "-e", f"{commit_hash}^{{commit}}")
        return CommitExistsResult(success=True, exists=output.ok)

    async def reset_to_commit(self, commit_hash: str) -> GitResult:
        """Hard reset the working tree to ``commit_hash``."""
        return await self._simple("reset", "--hard", commit_hash)
