"""
Workflow builders.

Each builder validates the situation, then returns the step list that
implements one high-level command. Validation failures raise
``ConfigurationError`` before anything is executed or persisted; the
builders themselves only read the repository (and fetch from the remote to
see up-to-date branches).

Commands:
    hack <branch>      new feature branch off the main branch
    append <branch>    new child of the current branch
    prepend <branch>   new parent of the current branch
    sync [--all]       update the current branch and its ancestors
    ship [branch]      merge a feature branch into its parent and delete it
"""

import structlog

from branchflow.engine.context import RunContext
from branchflow.engine.step_list import StepList, WrapOptions
from branchflow.enums import SyncStrategy
from branchflow.exceptions import ConfigurationError
from branchflow.steps import (
    CheckoutBranchStep,
    CreateBranchStep,
    CreateTrackingBranchStep,
    DeleteLocalBranchStep,
    DeleteParentBranchStep,
    DeleteRemoteBranchStep,
    MergePullRequestStep,
    PushBranchStep,
    SetParentBranchStep,
    SquashMergeBranchStep,
    SyncBranchStep,
)

log = structlog.get_logger(__name__)

FULL_WRAP = WrapOptions(run_in_repo_root=True, stash_open_changes=True)


async def _is_online(ctx: RunContext) -> bool:
    return not ctx.settings.offline and await ctx.git.has_remote(ctx.remote)


async def _fetch_if_online(ctx: RunContext) -> bool:
    online = await _is_online(ctx)
    if online:
        await ctx.git.fetch(ctx.remote)
    return online


async def _ensure_branch_is_new(ctx: RunContext, branch_name: str) -> None:
    if await ctx.git.has_local_or_remote_branch(branch_name, ctx.remote):
        raise ConfigurationError(f"a branch named {branch_name!r} already exists")


def _parent_or_raise(ctx: RunContext, branch_name: str) -> str:
    parent = ctx.hierarchy.parent_of(branch_name)
    if parent is None:
        raise ConfigurationError(
            f"the parent of branch {branch_name!r} is unknown; set it with "
            f"'git config branchflow.branch.{branch_name}.parent <parent>'"
        )
    return parent


def sync_branch_steps(ctx: RunContext, branch_name: str, push_after: bool) -> StepList:
    """Steps that bring one local branch up to date.

    Perennial branches are rebased onto their tracking branch and have no
    parent; feature branches use the configured strategy and merge their
    parent.

    Raises:
        ConfigurationError: If a feature branch has no known parent.
    """
    if ctx.hierarchy.is_feature_branch(branch_name):
        step = SyncBranchStep(
            branch_name=branch_name,
            parent_branch_name=_parent_or_raise(ctx, branch_name),
            push_after=push_after,
            strategy=ctx.settings.sync_strategy,
        )
    else:
        step = SyncBranchStep(branch_name=branch_name, push_after=push_after, strategy=SyncStrategy.REBASE)
    return StepList([step])


def _lineage(ctx: RunContext, branch_name: str) -> list[str]:
    return [*ctx.hierarchy.ancestors(branch_name), branch_name]


def _new_branch_steps(ctx: RunContext, target: str, parent: str, online: bool) -> StepList:
    steps = StepList()
    steps.append(CreateBranchStep(branch_name=target, starting_point=parent))
    steps.append(SetParentBranchStep(branch_name=target, parent_branch_name=parent))
    steps.append(CheckoutBranchStep(branch_name=target))
    if online and ctx.settings.push_new_branches:
        steps.append(CreateTrackingBranchStep(branch_name=target))
    return steps


async def hack(ctx: RunContext, branch_name: str) -> StepList:
    """Create a feature branch off the freshly synced main branch."""
    online = await _fetch_if_online(ctx)
    await _ensure_branch_is_new(ctx, branch_name)
    main = ctx.settings.main_branch

    steps = StepList()
    steps.append_list(sync_branch_steps(ctx, main, push_after=online))
    steps.append_list(_new_branch_steps(ctx, branch_name, main, online))
    await steps.wrap(FULL_WRAP, ctx)
    return steps


async def append(ctx: RunContext, branch_name: str) -> StepList:
    """Create a feature branch as a child of the current branch."""
    online = await _fetch_if_online(ctx)
    await _ensure_branch_is_new(ctx, branch_name)
    current = await ctx.git.current_branch()

    steps = StepList()
    for lineage_branch in _lineage(ctx, current):
        steps.append_list(sync_branch_steps(ctx, lineage_branch, push_after=online))
    steps.append_list(_new_branch_steps(ctx, branch_name, current, online))
    await steps.wrap(FULL_WRAP, ctx)
    return steps


async def prepend(ctx: RunContext, branch_name: str) -> StepList:
    """Create a feature branch between the current branch and its parent.

    Syncs the ancestors, cuts the new branch off the parent, makes it the
    parent of the current branch and checks it out. Uncommitted changes move
    over to the new branch.
    """
    online = await _fetch_if_online(ctx)
    await _ensure_branch_is_new(ctx, branch_name)
    current = await ctx.git.current_branch()
    if not ctx.hierarchy.is_feature_branch(current):
        raise ConfigurationError(
            f"the branch {current!r} is not a feature branch. Only feature branches can have parent branches"
        )
    parent = _parent_or_raise(ctx, current)

    steps = StepList()
    for ancestor in ctx.hierarchy.ancestors(current):
        steps.append_list(sync_branch_steps(ctx, ancestor, push_after=online))
    steps.append(CreateBranchStep(branch_name=branch_name, starting_point=parent))
    steps.append(SetParentBranchStep(branch_name=branch_name, parent_branch_name=parent))
    steps.append(SetParentBranchStep(branch_name=current, parent_branch_name=branch_name))
    steps.append(CheckoutBranchStep(branch_name=branch_name))
    if online and ctx.settings.push_new_branches:
        steps.append(CreateTrackingBranchStep(branch_name=branch_name))
    await steps.wrap(FULL_WRAP, ctx)
    return steps


async def sync(ctx: RunContext, all_branches: bool = False) -> StepList:
    """Sync the current branch and its ancestors, or every local branch.

    With ``all_branches``, feature branches without a known parent are
    skipped instead of failing the command.
    """
    online = await _fetch_if_online(ctx)
    current = await ctx.git.current_branch()

    if all_branches:
        branches = []
        for branch_name in await ctx.git.local_branches():
            if ctx.hierarchy.is_feature_branch(branch_name) and ctx.hierarchy.parent_of(branch_name) is None:
                log.warning("sync_branch_skipped", branch=branch_name, reason="unknown parent")
                continue
            branches.append(branch_name)
        branches = ctx.hierarchy.sync_order(branches)
    else:
        branches = _lineage(ctx, current)

    steps = StepList()
    for branch_name in branches:
        steps.append_list(sync_branch_steps(ctx, branch_name, push_after=online))
    steps.append(CheckoutBranchStep(branch_name=current))
    await steps.wrap(FULL_WRAP, ctx)
    return steps


async def ship(ctx: RunContext, branch_name: str | None = None, commit_message: str | None = None) -> StepList:
    """Merge a feature branch into its parent and delete it.

    The pull request is merged through the hosting API when a driver with a
    token finds exactly one pull request; otherwise the branch is squashed
    into the parent locally and the parent is pushed. Children of the shipped
    branch are re-parented onto its parent.
    """
    online = await _fetch_if_online(ctx)
    current = await ctx.git.current_branch()
    branch_name = branch_name or current

    if await ctx.git.has_open_changes():
        raise ConfigurationError("you have uncommitted changes. Did you mean to commit them before shipping?")
    if not await ctx.git.has_local_branch(branch_name):
        raise ConfigurationError(f"there is no local branch named {branch_name!r}")
    if not ctx.hierarchy.is_feature_branch(branch_name):
        raise ConfigurationError(f"the branch {branch_name!r} is not a feature branch. Only feature branches can be shipped")
    parent = _parent_or_raise(ctx, branch_name)
    if ctx.hierarchy.is_feature_branch(parent):
        raise ConfigurationError(f"shipping {branch_name!r} requires shipping its parent {parent!r} first")
    if not await ctx.git.has_shippable_changes(branch_name, parent):
        raise ConfigurationError(f"the branch {branch_name!r} has no shippable changes")

    has_tracking = online and await ctx.git.has_tracking_branch(branch_name, ctx.remote)

    steps = StepList()
    steps.append_list(sync_branch_steps(ctx, parent, push_after=online))
    steps.append_list(sync_branch_steps(ctx, branch_name, push_after=has_tracking))
    steps.append(CheckoutBranchStep(branch_name=parent))

    pull_request = None
    if has_tracking and ctx.driver is not None:
        pull_request = await ctx.driver.load_pull_request_info(branch_name, parent)

    if pull_request is not None and pull_request.can_merge_with_api:
        steps.append(
            MergePullRequestStep(
                branch_name=branch_name,
                parent_branch_name=parent,
                commit_message=commit_message or pull_request.default_commit_message,
                pull_request_number=pull_request.pull_request_number,
            )
        )
    else:
        if not commit_message:
            raise ConfigurationError("shipping without the hosting API needs a commit message; pass it with -m")
        steps.append(SquashMergeBranchStep(branch_name=branch_name, commit_message=commit_message))
        if online:
            steps.append(PushBranchStep(branch_name=parent))

    if has_tracking:
        steps.append(DeleteRemoteBranchStep(branch_name=branch_name))
    steps.append(DeleteLocalBranchStep(branch_name=branch_name, force=True))
    steps.append(DeleteParentBranchStep(branch_name=branch_name))
    for child in ctx.hierarchy.children_of(branch_name):
        steps.append(SetParentBranchStep(branch_name=child, parent_branch_name=parent))
    if current != branch_name:
        steps.append(CheckoutBranchStep(branch_name=current))
    await steps.wrap(WrapOptions(run_in_repo_root=True), ctx)
    return steps
