"""Merged branch cleanup orchestration."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Union

from rich.console import Console
from rich.markup import escape

from trim_branches.git import UNKNOWN, BranchRecord, GitError, GitRepo, MainBranchNotFoundError, is_symbolic_ref

logger = logging.getLogger(__name__)

DEVELOP_BRANCH = "develop"
MAX_HINT_BRANCHES = 10


class RunStatus(Enum):
    """How a cleanup run ended."""

    CLEAN = "clean"
    DRY_RUN = "dry_run"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Configuration:
    """Options for one cleanup run."""

    main_branch: str = "main"
    dry_run: bool = False
    force: bool = False
    keep_develop: bool = True
    remote: str = "origin"


@dataclass
class RunResult:
    """Outcome of a cleanup run."""

    status: RunStatus
    branches: list[str] = field(default_factory=list)
    deleted_count: int = 0
    failed_count: int = 0
    remaining_count: Optional[int] = None


def relative_date(value: Union[datetime, str, None], now: Optional[datetime] = None) -> str:
    """Describe how long ago a commit was made, e.g. "3 days ago"."""
    if value is None:
        return UNKNOWN
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return UNKNOWN

    if now is None:
        now = datetime.now(timezone.utc) if value.tzinfo else datetime.now()
    elif (now.tzinfo is None) != (value.tzinfo is None):
        # Mixed naive/aware: read the naive side as UTC
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        else:
            value = value.replace(tzinfo=timezone.utc)

    days = max((now - value).days, 0)
    if days == 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def ask_confirmation(question: str) -> bool:
    """Ask a yes/no question on stdin. Anything but an explicit yes means no."""
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


class BranchPruner:
    """Find remote branches merged into the main branch and delete them."""

    def __init__(
        self,
        repo: GitRepo,
        config: Configuration,
        console: Optional[Console] = None,
        confirm: Callable[[str], bool] = ask_confirmation,
    ) -> None:
        """Initialize pruner.

        Args:
            repo: Repository to operate on
            config: Options for this run
            console: Console for progress output (defaults to stdout)
            confirm: Yes/no prompt used before deleting
        """
        self.repo = repo
        self.config = config
        self.console = console or Console()
        self.confirm = confirm

    @property
    def main_ref(self) -> str:
        """Remote-tracking ref of the main branch, e.g. `origin/main`."""
        return f"{self.config.remote}/{self.config.main_branch}"

    @property
    def remote(self) -> str:
        """Remote name, escaped for rich markup."""
        return escape(self.config.remote)

    def check_repository(self) -> None:
        """Make sure the configured remote exists."""
        if not self.repo.has_remote(self.config.remote):
            raise GitError(f"No remote named '{self.config.remote}' is configured")

    def fetch_latest(self) -> None:
        """Fetch and prune the configured remote."""
        self.console.print(f"[yellow]Fetching latest changes from {self.remote}...[/yellow]")
        self.repo.fetch(self.config.remote, prune=True)

    def check_main_branch(self) -> None:
        """Verify the main branch exists on the remote.

        Raises:
            MainBranchNotFoundError: If `<remote>/<main>` is not listed
        """
        branches = self.repo.list_remote_branches()
        if self.main_ref not in branches:
            raise MainBranchNotFoundError(
                f"Main branch '{self.main_ref}' not found",
                available=branches[:MAX_HINT_BRANCHES],
            )

    def _strip_remote(self, ref: str) -> Optional[str]:
        """Branch name without the remote prefix, or None for another remote's ref."""
        prefix = f"{self.config.remote}/"
        if not ref.startswith(prefix):
            return None
        return ref[len(prefix) :]

    def get_merged_branches(self) -> list[str]:
        """Get remote branches merged into main, minus the ones that must be kept.

        Order follows git's listing.
        """
        self.console.print("[yellow]Finding merged branches...[/yellow]")
        merged = self.repo.list_merged_remote_branches(self.main_ref)

        branches = []
        for ref in merged:
            if is_symbolic_ref(ref) or ref == self.main_ref:
                continue
            name = self._strip_remote(ref)
            if name is None or name in (self.config.main_branch, "HEAD"):
                continue
            if self.config.keep_develop and name == DEVELOP_BRANCH:
                self.console.print(
                    f"[yellow]Keeping '{DEVELOP_BRANCH}' branch (use --no-keep-develop to remove)[/yellow]"
                )
                continue
            branches.append(name)

        logger.debug("Merged branch candidates: %s", branches)
        return branches

    def get_branch_info(self, branch: str) -> BranchRecord:
        """Latest commit on a candidate, or an all-unknown record if it cannot be read."""
        record = self.repo.get_last_commit(f"{self.config.remote}/{branch}", name=branch)
        return record or BranchRecord.unknown(branch)

    def display_branches(self, branches: list[str]) -> None:
        """Print each candidate with its last commit and author."""
        self.console.print("[yellow]Found the following merged branches:[/yellow]")
        for branch in branches:
            info = self.get_branch_info(branch)
            self.console.print(f"  [blue]• {escape(branch)}[/blue]", highlight=False)
            self.console.print(
                f"    Last commit: {info.commit_hash} {info.commit_message}",
                markup=False,
                highlight=False,
            )
            self.console.print(
                f"    Author: {info.author_name} ({relative_date(info.commit_date)})",
                markup=False,
                highlight=False,
            )
            self.console.print()

    def confirm_deletion(self) -> bool:
        """Ask before deleting unless running with force."""
        if self.config.force:
            return True
        self.console.print()
        self.console.print(
            f"[yellow]This will permanently delete the above branches from {self.remote}![/yellow]"
        )
        return self.confirm("Are you sure you want to continue?")

    def delete_branches(self, branches: list[str]) -> tuple[int, int]:
        """Delete each branch on the remote, carrying on past failures.

        Returns:
            Tuple of (deleted_count, failed_count)
        """
        remote = self.remote
        self.console.print(f"[red]Deleting merged branches from {remote}...[/red]")

        deleted_count = 0
        failed_count = 0
        for branch in branches:
            label = f"{remote}/{escape(branch)}"
            self.console.print(f"[yellow]Deleting {label}...[/yellow]")
            if self.repo.delete_remote_branch(self.config.remote, branch):
                self.console.print(f"[green]Deleted {label}[/green]")
                deleted_count += 1
            else:
                self.console.print(f"[red]Failed to delete {label}[/red]")
                failed_count += 1

        return deleted_count, failed_count

    def cleanup_local(self) -> None:
        """Prune stale tracking refs; a failure only warns."""
        self.console.print("[yellow]Cleaning up local tracking branches...[/yellow]")
        if not self.repo.prune_remote(self.config.remote):
            self.console.print("[yellow]Warning: Could not prune local tracking branches[/yellow]")

    def get_remaining_branch_count(self) -> Optional[int]:
        """Count the configured remote's branches, or None if they cannot be listed."""
        try:
            branches = self.repo.list_remote_branches()
        except GitError as err:
            logger.debug("Could not count remaining branches: %s", err)
            return None
        return sum(
            1 for branch in branches if not is_symbolic_ref(branch) and self._strip_remote(branch) is not None
        )

    def run(self) -> RunResult:
        """Run the whole cleanup.

        Raises:
            GitError: On any fatal failure (missing remote, fetch, main branch lookup)
        """
        self.console.print("[blue]Starting merged branch cleanup...[/blue]")

        self.check_repository()
        self.fetch_latest()
        self.check_main_branch()

        branches = self.get_merged_branches()
        if not branches:
            self.console.print("[green]No merged branches found to delete[/green]")
            return RunResult(status=RunStatus.CLEAN)

        self.display_branches(branches)

        if self.config.dry_run:
            self.console.print(
                f"[yellow]DRY RUN: The above branches would be deleted from {self.remote}[/yellow]"
            )
            self.console.print("[yellow]Run without --dry-run to actually delete them[/yellow]")
            return RunResult(status=RunStatus.DRY_RUN, branches=branches)

        if not self.confirm_deletion():
            self.console.print("[yellow]Operation cancelled[/yellow]")
            return RunResult(status=RunStatus.CANCELLED, branches=branches)

        deleted_count, failed_count = self.delete_branches(branches)
        self.cleanup_local()

        remaining = self.get_remaining_branch_count()
        self.console.print()
        self.console.print("[green]Cleanup complete![/green]")
        self.console.print(f"[green]Deleted: {deleted_count} branches[/green]")
        if failed_count > 0:
            self.console.print(f"[red]Failed: {failed_count} branches[/red]")
        self.console.print(
            f"[blue]Remaining remote branches: {remaining if remaining is not None else UNKNOWN}[/blue]"
        )
        self.console.print(
            "[yellow]Tip: Run 'git branch -vv' to see if you have any local branches tracking deleted remotes[/yellow]"
        )

        return RunResult(
            status=RunStatus.COMPLETED,
            branches=branches,
            deleted_count=deleted_count,
            failed_count=failed_count,
            remaining_count=remaining,
        )
