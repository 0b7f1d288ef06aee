"""Test configuration and fixtures."""

from pathlib import Path
from typing import Generator

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")


def commit_file(repo: Repo, path: Path, name: str, content: str, message: str) -> None:
    """Write a file and commit it."""
    test_file = path / name
    test_file.parent.mkdir(parents=True, exist_ok=True)
    test_file.write_text(content)
    repo.index.add([name])
    repo.index.commit(message, author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Remote branches:
        main            - default branch
        feature/merged  - merged into main with a merge commit
        feature/ff      - fast-forwarded into main
        feature/open    - has a commit main does not
        develop         - points at an ancestor of main

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)

    with local_repo.config_writer() as config:
        config.set_value("user", "name", AUTHOR.name)
        config.set_value("user", "email", AUTHOR.email)

    commit_file(local_repo, local_path, "README.md", "# Test Repository", "Initial commit")

    # Ensure we're on main branch
    if "main" not in local_repo.heads:
        local_repo.create_head("main")
    main_branch = local_repo.heads.main
    main_branch.checkout()

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")

    def create_branch(name: str, merge: bool = False, fast_forward: bool = False) -> None:
        """Create a branch off main with one commit and push it."""
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()
        commit_file(local_repo, local_path, f"{name}.txt", f"{name} content", f"Add {name}")
        origin.push(name)

        main_branch.checkout()
        if merge:
            local_repo.git.merge("--no-ff", "-m", f"Merge {name}", name)
        elif fast_forward:
            local_repo.git.merge("--ff-only", name)
        if merge or fast_forward:
            origin.push("main")

    local_repo.create_head("develop", "main")
    origin.push("develop")

    create_branch("feature/merged", merge=True)
    create_branch("feature/ff", fast_forward=True)
    create_branch("feature/open")

    main_branch.checkout()

    yield local_path, remote_path


@pytest.fixture
def remote_heads():
    """Return a helper listing branch names in the bare remote."""

    def _heads(remote_path: Path) -> list[str]:
        return [head.name for head in Repo(remote_path).heads]

    return _heads
