"""Steps that merge, rebase and synchronize branches.

These are the only steps that can stop on conflicts. Each of them names the
step that cleans up a half-done operation (``abort_step``) and the step that
completes it once the user resolved the conflicts (``continue_step``).
"""

from typing import TYPE_CHECKING, Literal

import structlog

from branchflow.enums import SyncStrategy
from branchflow.exceptions import ConflictError
from branchflow.steps.base import Step
from branchflow.steps.branch import ResetToShaStep
from branchflow.steps.changes import CommitOpenChangesStep, DiscardOpenChangesStep

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext

log = structlog.get_logger(__name__)


async def _ensure_no_conflicts(ctx: "RunContext") -> None:
    if await ctx.git.has_conflicts():
        raise ConflictError("there are still unresolved conflicts; resolve them and stage the files with 'git add'")


class AbortMergeStep(Step):
    type: Literal["abort_merge"] = "abort_merge"

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.has_merge_in_progress():
            await ctx.git.abort_merge()

    def describe(self) -> str:
        return "git merge --abort"


class ContinueMergeStep(Step):
    """Commit a merge whose conflicts the user resolved."""

    type: Literal["continue_merge"] = "continue_merge"

    async def run(self, ctx: "RunContext") -> None:
        await _ensure_no_conflicts(ctx)
        if await ctx.git.has_merge_in_progress():
            await ctx.git.commit_no_edit()

    def describe(self) -> str:
        return "git commit --no-edit"


class AbortRebaseStep(Step):
    type: Literal["abort_rebase"] = "abort_rebase"

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.has_rebase_in_progress():
            await ctx.git.abort_rebase()

    def describe(self) -> str:
        return "git rebase --abort"


class AbortSyncStep(Step):
    """Abort whichever of a rebase or a merge a sync left unfinished.

    A sync can stop while rebasing onto the tracking branch or while merging
    the parent, regardless of the configured strategy.
    """

    type: Literal["abort_sync"] = "abort_sync"

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.has_rebase_in_progress():
            await ctx.git.abort_rebase()
        elif await ctx.git.has_merge_in_progress():
            await ctx.git.abort_merge()

    def describe(self) -> str:
        return "abort unfinished rebase or merge"


class ContinueRebaseStep(Step):
    type: Literal["continue_rebase"] = "continue_rebase"

    async def run(self, ctx: "RunContext") -> None:
        await _ensure_no_conflicts(ctx)
        if await ctx.git.has_rebase_in_progress():
            await ctx.git.continue_rebase()

    def describe(self) -> str:
        return "git rebase --continue"


class MergeBranchStep(Step):
    """Merge a branch into the checked-out branch."""

    type: Literal["merge_branch"] = "merge_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.merge_branch(self.branch_name)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=True)

    def abort_step(self) -> Step | None:
        return AbortMergeStep()

    def continue_step(self) -> Step | None:
        return ContinueMergeStep()

    def describe(self) -> str:
        return f"git merge --no-edit {self.branch_name}"


class RebaseBranchStep(Step):
    """Rebase the checked-out branch onto another branch."""

    type: Literal["rebase_branch"] = "rebase_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.rebase(self.branch_name)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=True)

    def abort_step(self) -> Step | None:
        return AbortRebaseStep()

    def continue_step(self) -> Step | None:
        return ContinueRebaseStep()

    def describe(self) -> str:
        return f"git rebase {self.branch_name}"


class SquashMergeBranchStep(Step):
    """Squash a branch into one commit on the checked-out branch."""

    type: Literal["squash_merge_branch"] = "squash_merge_branch"
    branch_name: str
    commit_message: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.squash_merge(self.branch_name)
        await ctx.git.commit_all(self.commit_message)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=True)

    def abort_step(self) -> Step | None:
        return DiscardOpenChangesStep()

    def continue_step(self) -> Step | None:
        return CommitOpenChangesStep(message=self.commit_message)

    def describe(self) -> str:
        return f"git merge --squash {self.branch_name}"


class SyncBranchStep(Step):
    """Bring a local branch up to date with its tracking branch and its parent.

    Checks out the branch, updates it from ``<remote>/<branch>`` with the
    configured strategy, merges the parent branch and optionally pushes.
    Every part is skipped when already done, which is what makes the
    ``resume`` copy safe to run after a conflict was resolved.

    Attributes:
        branch_name: Branch to synchronize
        parent_branch_name: Parent to merge in, None for perennial branches
        push_after: Push the branch once it is up to date
        strategy: How to integrate the tracking branch
        resume: Finish an in-progress merge or rebase before continuing
    """

    type: Literal["sync_branch"] = "sync_branch"
    branch_name: str
    parent_branch_name: str | None = None
    push_after: bool = False
    strategy: SyncStrategy = SyncStrategy.MERGE
    resume: bool = False

    async def run(self, ctx: "RunContext") -> None:
        git = ctx.git
        if self.resume:
            await _ensure_no_conflicts(ctx)
            if await git.has_rebase_in_progress():
                await git.continue_rebase()
            elif await git.has_merge_in_progress():
                await git.commit_no_edit()

        if await git.current_branch() != self.branch_name:
            await git.checkout_branch(self.branch_name)

        online = not ctx.settings.offline
        tracking = f"{ctx.remote}/{self.branch_name}"
        has_tracking = online and await git.has_tracking_branch(self.branch_name, ctx.remote)

        if has_tracking and not await git.is_ancestor(tracking, "HEAD"):
            log.debug("sync_tracking_branch", branch=self.branch_name, strategy=str(self.strategy))
            if self.strategy == SyncStrategy.REBASE:
                await git.rebase(tracking)
            else:
                await git.merge_branch(tracking)

        if self.parent_branch_name and not await git.is_ancestor(self.parent_branch_name, "HEAD"):
            log.debug("sync_parent_branch", branch=self.branch_name, parent=self.parent_branch_name)
            await git.merge_branch(self.parent_branch_name)

        if self.push_after and online and await git.has_remote(ctx.remote):
            if not has_tracking:
                await git.push_tracking_branch(self.branch_name, remote=ctx.remote)
            elif not await git.is_ancestor("HEAD", tracking):
                await git.push_branch(self.branch_name, remote=ctx.remote)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return RewindBranchStep(
            branch_name=self.branch_name,
            sha=await ctx.git.sha_of(self.branch_name),
            return_to=await ctx.git.current_branch(),
        )

    def abort_step(self) -> Step | None:
        return AbortSyncStep()

    def continue_step(self) -> Step | None:
        return self.model_copy(update={"resume": True})

    def describe(self) -> str:
        return f"sync {self.branch_name}"


class RewindBranchStep(Step):
    """Move a local branch back to a commit, then return to ``return_to``.

    Resetting hard also drops an unfinished merge left behind on the branch.
    """

    type: Literal["rewind_branch"] = "rewind_branch"
    branch_name: str
    sha: str
    return_to: str | None = None

    async def run(self, ctx: "RunContext") -> None:
        git = ctx.git
        if await git.current_branch() != self.branch_name:
            await git.checkout_branch(self.branch_name)
        await git.reset_to_sha(self.sha, hard=True)
        if self.return_to and self.return_to != self.branch_name:
            await git.checkout_branch(self.return_to)

    def describe(self) -> str:
        return f"reset {self.branch_name} to {self.sha[:12]}"
