"""Pytest configuration and shared fixtures."""

import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest
import structlog

from branchflow.config.hierarchy import BranchHierarchy
from branchflow.config.settings import BranchflowSettings
from branchflow.engine.context import RunContext
from branchflow.engine.state_manager import StateManager
from branchflow.git.executor import GitExecutor


def run_git(cwd: Path, *args: str) -> str:
    """Run git synchronously in a test repository and return its output."""
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str | None = None) -> str:
    """Write a file, commit it and return the new commit SHA."""
    (repo / name).write_text(content)
    run_git(repo, "add", name)
    run_git(repo, "commit", "-m", message or f"update {name}")
    return run_git(repo, "rev-parse", "HEAD")


def _init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    run_git(path, "init")
    run_git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(path, "config", "user.email", "test@example.com")
    run_git(path, "config", "user.name", "Test User")
    run_git(path, "config", "commit.gpgsign", "false")
    commit_file(path, "README.md", "# Test Repository\n", "Initial commit")
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_state_dir(tmp_path: Path) -> Path:
    """Temporary state directory."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def state_manager(temp_state_dir: Path) -> StateManager:
    """StateManager instance with temp directory."""
    return StateManager(temp_state_dir)


@pytest.fixture
def settings(temp_state_dir: Path) -> BranchflowSettings:
    """Default settings with the state directory in tmp_path."""
    return BranchflowSettings(state_directory=str(temp_state_dir))


@pytest.fixture
def git_repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Real git repository with one commit on main, used as the working directory."""
    repo = _init_repo(tmp_path / "repo")
    monkeypatch.chdir(repo)
    return repo


@pytest.fixture
def origin_repo(tmp_path: Path, git_repo: Path) -> Path:
    """Bare repository registered as origin of git_repo, with main pushed."""
    origin = tmp_path / "origin.git"
    run_git(tmp_path, "init", "--bare", str(origin))
    run_git(origin, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(git_repo, "remote", "add", "origin", str(origin))
    run_git(git_repo, "push", "-u", "origin", "main")
    return origin


@pytest.fixture
def run_ctx(git_repo: Path, settings: BranchflowSettings) -> RunContext:
    """Run context against the real test repository."""
    return RunContext(
        git=GitExecutor(),
        settings=settings,
        hierarchy=BranchHierarchy(perennial_branches=[settings.main_branch]),
        repository=git_repo,
    )


@pytest.fixture
def mock_git() -> Mock:
    """GitExecutor double; its async methods are AsyncMocks."""
    git = Mock(spec=GitExecutor)
    git.current_branch.return_value = "main"
    git.current_sha.return_value = "a" * 40
    git.sha_of.return_value = "b" * 40
    git.root_directory.return_value = Path("/repo")
    git.has_open_changes.return_value = False
    git.has_conflicts.return_value = False
    git.has_merge_in_progress.return_value = False
    git.has_rebase_in_progress.return_value = False
    git.has_remote.return_value = False
    git.has_tracking_branch.return_value = False
    git.is_ancestor.return_value = True
    return git


@pytest.fixture
def mock_ctx(tmp_path: Path, mock_git: Mock, settings: BranchflowSettings) -> RunContext:
    """Run context whose executor is a mock."""
    return RunContext(
        git=mock_git,
        settings=settings,
        hierarchy=BranchHierarchy({"feature": "main"}, perennial_branches=["main"]),
        repository=tmp_path / "repo",
    )
