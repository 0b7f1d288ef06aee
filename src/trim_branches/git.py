"""Git repository operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
SHORT_HASH_LENGTH = 7

# Unit separator between `git log` fields
_FIELD_SEP = "\x1f"


class GitError(Exception):
    """Git operation error."""


class MainBranchNotFoundError(GitError):
    """Main branch ref is missing from the remote listing."""

    def __init__(self, message: str, available: list[str]) -> None:
        """Initialize error.

        Args:
            message: Error message
            available: Remote branches that do exist, for the user hint
        """
        super().__init__(message)
        self.available = available


@dataclass(frozen=True)
class BranchRecord:
    """Most recent commit on a remote branch."""

    name: str
    commit_hash: str
    commit_message: str
    author_name: str
    commit_date: Optional[datetime]

    @classmethod
    def unknown(cls, name: str) -> "BranchRecord":
        """Record used when the commit lookup failed."""
        return cls(
            name=name,
            commit_hash=UNKNOWN,
            commit_message=UNKNOWN,
            author_name=UNKNOWN,
            commit_date=None,
        )


def is_symbolic_ref(line: str) -> bool:
    """Check whether a `git branch -r` line is an alias like `origin/HEAD -> origin/main`."""
    return " -> " in line


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Initialize repository."""
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Not in a git repository: {path}") from err
        if self.repo.bare:
            raise GitError("Cannot operate on bare repository")

    def has_remote(self, name: str) -> bool:
        """Check whether a remote with this name is configured."""
        return any(remote.name == name for remote in self.repo.remotes)

    def fetch(self, remote: str, prune: bool = True) -> None:
        """Fetch the latest refs from a remote."""
        args = [remote]
        if prune:
            args.append("--prune")
        try:
            self.repo.git.fetch(*args)
        except GitCommandError as err:
            logger.debug("git fetch %s failed: %s", remote, err)
            raise GitError(f"Error fetching from {remote}") from err

    def _branch_lines(self, *args: str) -> list[str]:
        try:
            output = self.repo.git.branch("-r", *args)
        except GitCommandError as err:
            logger.debug("git branch -r %s failed: %s", " ".join(args), err)
            raise GitError(f"Failed to list remote branches: {err}") from err
        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_remote_branches(self) -> list[str]:
        """List remote branches as printed by `git branch -r`, symbolic refs included."""
        return self._branch_lines()

    def list_merged_remote_branches(self, ref: str) -> list[str]:
        """List remote branches whose tip is reachable from `ref`."""
        return self._branch_lines("--merged", ref)

    def get_last_commit(self, ref: str, name: Optional[str] = None) -> Optional[BranchRecord]:
        """Get the most recent commit on `ref`.

        Args:
            ref: Full ref to inspect, e.g. `origin/feature/x`
            name: Branch name to store in the record (defaults to `ref`)

        Returns:
            The commit record, or None if the ref cannot be read
        """
        try:
            output = self.repo.git.log(
                "-1",
                "--format=%H%x1f%s%x1f%an%x1f%cI",
                ref,
                "--",
            )
        except GitCommandError as err:
            logger.debug("git log %s failed: %s", ref, err)
            return None

        fields = output.strip().split(_FIELD_SEP)
        if len(fields) != 4:
            return None
        commit_hash, message, author, date = fields
        try:
            commit_date: Optional[datetime] = datetime.fromisoformat(date)
        except ValueError:
            commit_date = None
        return BranchRecord(
            name=name or ref,
            commit_hash=commit_hash[:SHORT_HASH_LENGTH],
            commit_message=message,
            author_name=author,
            commit_date=commit_date,
        )

    def delete_remote_branch(self, remote: str, branch: str) -> bool:
        """Delete a branch on the remote. Returns True if successful."""
        try:
            self.repo.git.push(remote, "--delete", branch)
            return True
        except GitCommandError as err:
            logger.debug("git push %s --delete %s failed: %s", remote, branch, err)
            return False

    def prune_remote(self, remote: str) -> bool:
        """Remove remote-tracking refs whose upstream branch is gone."""
        try:
            self.repo.git.remote("prune", remote)
            return True
        except GitCommandError as err:
            logger.debug("git remote prune %s failed: %s", remote, err)
            return False
