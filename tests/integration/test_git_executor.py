"""GitExecutor against real repositories."""

from pathlib import Path

import pytest

from branchflow.exceptions import ConflictError, ExternalOperationError
from branchflow.git.executor import GitExecutor
from tests.conftest import commit_file, run_git

pytestmark = pytest.mark.integration


@pytest.fixture
def diverged(git_repo: Path) -> Path:
    """main and feature both change README.md."""
    run_git(git_repo, "checkout", "-b", "feature")
    commit_file(git_repo, "README.md", "feature\n")
    run_git(git_repo, "checkout", "main")
    commit_file(git_repo, "README.md", "main\n")
    run_git(git_repo, "checkout", "feature")
    return git_repo


class TestQueries:
    @pytest.mark.asyncio
    async def test_branch_queries(self, git_repo: Path):
        git = GitExecutor()
        run_git(git_repo, "branch", "feature")

        assert await git.current_branch() == "main"
        assert await git.local_branches() == ["feature", "main"]
        assert await git.has_local_branch("feature")
        assert not await git.has_local_branch("nope")
        assert (await git.root_directory()).resolve() == git_repo.resolve()

    @pytest.mark.asyncio
    async def test_open_changes(self, git_repo: Path):
        git = GitExecutor()
        assert not await git.has_open_changes()

        (git_repo / "new.txt").write_text("untracked\n")

        assert await git.has_open_changes()

    @pytest.mark.asyncio
    async def test_shas_and_ancestry(self, git_repo: Path):
        git = GitExecutor()
        first = await git.current_sha()
        second = commit_file(git_repo, "a.txt", "a\n")

        assert await git.sha_of("main") == second
        assert await git.is_ancestor(first, "main")
        assert not await git.is_ancestor("main", first)

    @pytest.mark.asyncio
    async def test_config_round_trip(self, git_repo: Path):
        git = GitExecutor()

        assert await git.get_config("branchflow.branch.feature.parent") is None
        await git.set_config("branchflow.branch.feature.parent", "main")
        await git.set_config("branchflow.branch.child.parent", "feature")

        assert await git.get_config_regexp(r"^branchflow\.branch\..*\.parent$") == {
            "branchflow.branch.feature.parent": "main",
            "branchflow.branch.child.parent": "feature",
        }

        await git.unset_config("branchflow.branch.feature.parent")
        await git.unset_config("branchflow.branch.feature.parent")
        assert await git.get_config("branchflow.branch.feature.parent") is None

    @pytest.mark.asyncio
    async def test_unknown_ref(self, git_repo: Path):
        with pytest.raises(ExternalOperationError) as exc_info:
            await GitExecutor().sha_of("does-not-exist")

        assert exc_info.value.exit_code != 0


class TestConflicts:
    @pytest.mark.asyncio
    async def test_merge_conflict(self, diverged: Path):
        git = GitExecutor()

        with pytest.raises(ConflictError) as exc_info:
            await git.merge_branch("main")

        assert "CONFLICT" in exc_info.value.output
        assert await git.has_merge_in_progress()
        assert await git.has_conflicts()

        await git.abort_merge()
        assert not await git.has_merge_in_progress()
        assert not await git.has_open_changes()

    @pytest.mark.asyncio
    async def test_rebase_conflict_keeps_branch_name(self, diverged: Path):
        git = GitExecutor()

        with pytest.raises(ConflictError):
            await git.rebase("main")

        assert await git.has_rebase_in_progress()
        assert await GitExecutor().current_branch() == "feature"

        await git.abort_rebase()
        assert not await git.has_rebase_in_progress()
        assert await git.current_branch() == "feature"

    @pytest.mark.asyncio
    async def test_continue_rebase_after_resolution(self, diverged: Path):
        git = GitExecutor()
        with pytest.raises(ConflictError):
            await git.rebase("main")

        (diverged / "README.md").write_text("resolved\n")
        run_git(diverged, "add", "README.md")
        await git.continue_rebase()

        assert not await git.has_rebase_in_progress()
        assert await git.is_ancestor("main", "feature")

    @pytest.mark.asyncio
    async def test_stash_round_trip(self, git_repo: Path):
        git = GitExecutor()
        (git_repo / "wip.txt").write_text("work in progress\n")

        await git.stash()
        assert not await git.has_open_changes()
        assert await git.stash_size() == 1

        await git.pop_stash()
        assert (git_repo / "wip.txt").read_text() == "work in progress\n"
        assert await git.stash_size() == 0


class TestRemote:
    @pytest.mark.asyncio
    async def test_tracking_branch_lifecycle(self, git_repo: Path, origin_repo: Path):
        git = GitExecutor()
        await git.create_branch("feature", "main")

        await git.push_tracking_branch("feature")
        assert await git.has_tracking_branch("feature")

        sha = await git.sha_of("origin/feature")
        await git.delete_remote_branch("feature")
        await git.fetch()
        assert not await git.has_remote_branch("feature")

        await git.create_remote_branch("feature", sha)
        await git.fetch()
        assert await git.sha_of("origin/feature") == sha
