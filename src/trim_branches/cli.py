"""Command line interface for trim-branches."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from trim_branches import __version__
from trim_branches.git import GitError, GitRepo, MainBranchNotFoundError
from trim_branches.pruner import BranchPruner, Configuration

app = typer.Typer(
    help="Trim merged branches from git origin",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)
console = Console()

EPILOG = """Examples:

  trim-branches --dry-run          # See what would be deleted

  trim-branches -f                 # Delete without confirmation

  trim-branches -m master          # Use 'master' as main branch
"""


def setup_logging(verbose: bool) -> None:
    """Send package logs through rich."""
    logger = logging.getLogger("trim_branches")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        console.print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err


def version_callback(value: bool) -> None:
    """Print the version and exit."""
    if value:
        console.print(__version__)
        raise typer.Exit()


@app.command(epilog=EPILOG)
def main(
    main_branch: Annotated[str, typer.Option("--main", "-m", help="Set main branch")] = "main",
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Show what would be deleted without actually deleting")
    ] = False,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation prompts")] = False,
    keep_develop: Annotated[
        bool, typer.Option("--keep-develop/--no-keep-develop", help="Keep the develop branch even if merged")
    ] = True,
    path: Annotated[Path, typer.Option("--path", "-p", help="Path to git repository")] = Path("."),
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show git command failures")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """Delete remote branches that are already merged into the main branch."""
    setup_logging(verbose)

    repo = get_repo(path)
    config = Configuration(
        main_branch=main_branch,
        dry_run=dry_run,
        force=force,
        keep_develop=keep_develop,
    )
    pruner = BranchPruner(repo, config, console=console)

    try:
        pruner.run()
    except MainBranchNotFoundError as err:
        console.print(f"[red]Error:[/red] {escape(str(err))}")
        console.print("[yellow]Available branches:[/yellow]")
        for branch in err.available:
            console.print(f"  {branch}", markup=False, highlight=False)
        raise typer.Exit(code=1) from err
    except GitError as err:
        console.print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err


if __name__ == "__main__":
    app()
