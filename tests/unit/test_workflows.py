"""Tests for the workflow builders in engine/workflows.py."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from branchflow.engine import workflows
from branchflow.enums import SyncStrategy
from branchflow.exceptions import ConfigurationError
from branchflow.hosting.base import HostingDriver, PullRequestInfo
from branchflow.steps import (
    CheckoutBranchStep,
    CreateBranchStep,
    CreateTrackingBranchStep,
    DeleteLocalBranchStep,
    DeleteParentBranchStep,
    DeleteRemoteBranchStep,
    MergePullRequestStep,
    PushBranchStep,
    RestoreOpenChangesStep,
    SetParentBranchStep,
    SquashMergeBranchStep,
    StashOpenChangesStep,
    SyncBranchStep,
)


@pytest.fixture
def ctx(mock_ctx, mock_git, tmp_path: Path, monkeypatch):
    """Mocked context whose repository root is the current directory."""
    monkeypatch.chdir(tmp_path)
    mock_git.root_directory.return_value = tmp_path
    mock_git.has_local_or_remote_branch.return_value = False
    mock_git.has_local_branch.return_value = True
    mock_git.has_shippable_changes.return_value = True
    mock_git.local_branches.return_value = ["main", "feature"]
    return mock_ctx


def _online(ctx, mock_git) -> None:
    mock_git.has_remote.return_value = True


SYNC_MAIN = SyncBranchStep(branch_name="main", strategy=SyncStrategy.REBASE)
SYNC_FEATURE = SyncBranchStep(branch_name="feature", parent_branch_name="main")


class TestHack:
    @pytest.mark.asyncio
    async def test_offline(self, ctx, mock_git):
        steps = await workflows.hack(ctx, "new")

        assert list(steps) == [
            SYNC_MAIN,
            CreateBranchStep(branch_name="new", starting_point="main"),
            SetParentBranchStep(branch_name="new", parent_branch_name="main"),
            CheckoutBranchStep(branch_name="new"),
        ]
        mock_git.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_online_pushes_new_branch(self, ctx, mock_git):
        _online(ctx, mock_git)
        ctx.settings.push_new_branches = True

        steps = await workflows.hack(ctx, "new")

        mock_git.fetch.assert_awaited_once_with("origin")
        assert steps.steps[0] == SyncBranchStep(branch_name="main", push_after=True, strategy=SyncStrategy.REBASE)
        assert steps.steps[-1] == CreateTrackingBranchStep(branch_name="new")

    @pytest.mark.asyncio
    async def test_offline_setting_skips_remote(self, ctx, mock_git):
        _online(ctx, mock_git)
        ctx.settings.offline = True
        ctx.settings.push_new_branches = True

        steps = await workflows.hack(ctx, "new")

        mock_git.fetch.assert_not_awaited()
        assert CreateTrackingBranchStep(branch_name="new") not in list(steps)

    @pytest.mark.asyncio
    async def test_existing_branch(self, ctx, mock_git):
        mock_git.has_local_or_remote_branch.return_value = True

        with pytest.raises(ConfigurationError, match="a branch named 'feature' already exists"):
            await workflows.hack(ctx, "feature")

    @pytest.mark.asyncio
    async def test_stashes_open_changes(self, ctx, mock_git):
        mock_git.has_open_changes.return_value = True

        steps = await workflows.hack(ctx, "new")

        assert steps.steps[0] == StashOpenChangesStep()
        assert steps.steps[-1] == RestoreOpenChangesStep()


class TestAppend:
    @pytest.mark.asyncio
    async def test_syncs_lineage_and_creates_child(self, ctx, mock_git):
        mock_git.current_branch.return_value = "feature"

        steps = await workflows.append(ctx, "child")

        assert list(steps) == [
            SYNC_MAIN,
            SYNC_FEATURE,
            CreateBranchStep(branch_name="child", starting_point="feature"),
            SetParentBranchStep(branch_name="child", parent_branch_name="feature"),
            CheckoutBranchStep(branch_name="child"),
        ]


class TestPrepend:
    @pytest.mark.asyncio
    async def test_inserts_parent(self, ctx, mock_git):
        mock_git.current_branch.return_value = "feature"

        steps = await workflows.prepend(ctx, "base")

        assert list(steps) == [
            SYNC_MAIN,
            CreateBranchStep(branch_name="base", starting_point="main"),
            SetParentBranchStep(branch_name="base", parent_branch_name="main"),
            SetParentBranchStep(branch_name="feature", parent_branch_name="base"),
            CheckoutBranchStep(branch_name="base"),
        ]

    @pytest.mark.asyncio
    async def test_on_perennial_branch(self, ctx):
        with pytest.raises(ConfigurationError, match="is not a feature branch"):
            await workflows.prepend(ctx, "base")

    @pytest.mark.asyncio
    async def test_unknown_parent(self, ctx, mock_git):
        mock_git.current_branch.return_value = "orphan"

        with pytest.raises(ConfigurationError, match="parent of branch 'orphan' is unknown"):
            await workflows.prepend(ctx, "base")


class TestSync:
    @pytest.mark.asyncio
    async def test_current_branch_lineage(self, ctx, mock_git):
        mock_git.current_branch.return_value = "feature"

        steps = await workflows.sync(ctx)

        assert list(steps) == [SYNC_MAIN, SYNC_FEATURE, CheckoutBranchStep(branch_name="feature")]

    @pytest.mark.asyncio
    async def test_all_branches_skips_unknown_parents(self, ctx, mock_git):
        ctx.hierarchy.set_parent("child", "feature")
        mock_git.local_branches.return_value = ["child", "orphan", "feature", "main"]

        steps = await workflows.sync(ctx, all_branches=True)

        assert [step.branch_name for step in steps] == ["main", "feature", "child", "main"]
        assert steps.steps[-1] == CheckoutBranchStep(branch_name="main")

    @pytest.mark.asyncio
    async def test_configured_strategy(self, ctx, mock_git):
        ctx.settings.sync_strategy = SyncStrategy.REBASE
        mock_git.current_branch.return_value = "feature"

        steps = await workflows.sync(ctx)

        assert steps.steps[1].strategy == SyncStrategy.REBASE

    @pytest.mark.asyncio
    async def test_runs_from_repository_root(self, ctx, mock_git, tmp_path: Path, monkeypatch):
        subdir = tmp_path / "src"
        subdir.mkdir()
        monkeypatch.chdir(subdir)

        steps = await workflows.sync(ctx)

        assert steps.steps[0].type == "change_directory"
        assert steps.steps[-1].type == "change_directory"


class TestShipValidation:
    @pytest.mark.asyncio
    async def test_open_changes(self, ctx, mock_git):
        mock_git.has_open_changes.return_value = True

        with pytest.raises(ConfigurationError, match="uncommitted changes"):
            await workflows.ship(ctx, "feature", "Ship it")

    @pytest.mark.asyncio
    async def test_missing_branch(self, ctx, mock_git):
        mock_git.has_local_branch.return_value = False

        with pytest.raises(ConfigurationError, match="no local branch named 'nope'"):
            await workflows.ship(ctx, "nope", "Ship it")

    @pytest.mark.asyncio
    async def test_perennial_branch(self, ctx):
        with pytest.raises(ConfigurationError, match="Only feature branches can be shipped"):
            await workflows.ship(ctx, "main", "Ship it")

    @pytest.mark.asyncio
    async def test_parent_must_be_shipped_first(self, ctx):
        ctx.hierarchy.set_parent("child", "feature")

        with pytest.raises(ConfigurationError, match="requires shipping its parent 'feature' first"):
            await workflows.ship(ctx, "child", "Ship it")

    @pytest.mark.asyncio
    async def test_no_changes(self, ctx, mock_git):
        mock_git.has_shippable_changes.return_value = False

        with pytest.raises(ConfigurationError, match="no shippable changes"):
            await workflows.ship(ctx, "feature", "Ship it")

    @pytest.mark.asyncio
    async def test_local_merge_needs_message(self, ctx):
        with pytest.raises(ConfigurationError, match="pass it with -m"):
            await workflows.ship(ctx, "feature")


class TestShip:
    @pytest.mark.asyncio
    async def test_local_squash_merge(self, ctx, mock_git):
        mock_git.current_branch.return_value = "feature"

        steps = await workflows.ship(ctx, commit_message="Ship it")

        assert list(steps) == [
            SYNC_MAIN,
            SYNC_FEATURE,
            CheckoutBranchStep(branch_name="main"),
            SquashMergeBranchStep(branch_name="feature", commit_message="Ship it"),
            DeleteLocalBranchStep(branch_name="feature", force=True),
            DeleteParentBranchStep(branch_name="feature"),
        ]

    @pytest.mark.asyncio
    async def test_local_squash_merge_pushes_when_online(self, ctx, mock_git):
        _online(ctx, mock_git)

        steps = await workflows.ship(ctx, "feature", "Ship it")

        assert PushBranchStep(branch_name="main") in list(steps)
        assert steps.steps[-1] == CheckoutBranchStep(branch_name="main")

    @pytest.mark.asyncio
    async def test_pull_request_merge(self, ctx, mock_git):
        _online(ctx, mock_git)
        mock_git.has_tracking_branch.return_value = True
        ctx.hierarchy.set_parent("child", "feature")
        driver = Mock(spec=HostingDriver)
        driver.load_pull_request_info = AsyncMock(
            return_value=PullRequestInfo(
                can_merge_with_api=True, default_commit_message="Add feature (#3)", pull_request_number=3
            )
        )
        ctx.driver = driver

        steps = list(await workflows.ship(ctx, "feature"))

        driver.load_pull_request_info.assert_awaited_once_with("feature", "main")
        assert MergePullRequestStep(
            branch_name="feature",
            parent_branch_name="main",
            commit_message="Add feature (#3)",
            pull_request_number=3,
        ) in steps
        assert not any(isinstance(step, SquashMergeBranchStep) for step in steps)
        assert DeleteRemoteBranchStep(branch_name="feature") in steps
        assert SetParentBranchStep(branch_name="child", parent_branch_name="main") in steps

    @pytest.mark.asyncio
    async def test_explicit_message_overrides_pull_request_title(self, ctx, mock_git):
        _online(ctx, mock_git)
        mock_git.has_tracking_branch.return_value = True
        driver = Mock(spec=HostingDriver)
        driver.load_pull_request_info = AsyncMock(
            return_value=PullRequestInfo(can_merge_with_api=True, default_commit_message="title (#3)", pull_request_number=3)
        )
        ctx.driver = driver

        steps = list(await workflows.ship(ctx, "feature", "Custom message"))

        merge = next(step for step in steps if isinstance(step, MergePullRequestStep))
        assert merge.commit_message == "Custom message"
