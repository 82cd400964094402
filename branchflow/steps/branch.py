"""Steps that create, switch, delete and move local branches."""

from typing import TYPE_CHECKING, Literal

import structlog

from branchflow.steps.base import Step

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext

log = structlog.get_logger(__name__)


class CreateBranchStep(Step):
    type: Literal["create_branch"] = "create_branch"
    branch_name: str
    starting_point: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.create_branch(self.branch_name, self.starting_point)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return DeleteLocalBranchStep(branch_name=self.branch_name, force=True)

    def describe(self) -> str:
        return f"git branch {self.branch_name} {self.starting_point}"


class CheckoutBranchStep(Step):
    """Check out a branch. Does nothing when it is already checked out."""

    type: Literal["checkout_branch"] = "checkout_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.current_branch() != self.branch_name:
            await ctx.git.checkout_branch(self.branch_name)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        previous = await ctx.git.current_branch()
        if previous == self.branch_name:
            return None
        return CheckoutBranchStep(branch_name=previous)

    def describe(self) -> str:
        return f"git checkout {self.branch_name}"


class DeleteLocalBranchStep(Step):
    type: Literal["delete_local_branch"] = "delete_local_branch"
    branch_name: str
    force: bool = False

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.delete_local_branch(self.branch_name, force=self.force)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        sha = await ctx.git.sha_of(self.branch_name)
        return CreateBranchStep(branch_name=self.branch_name, starting_point=sha)

    def describe(self) -> str:
        return f"git branch {'-D' if self.force else '-d'} {self.branch_name}"


class ResetToShaStep(Step):
    """Move the checked-out branch to a commit."""

    type: Literal["reset_to_sha"] = "reset_to_sha"
    sha: str
    hard: bool = False

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.current_sha() == self.sha and not self.hard:
            return
        await ctx.git.reset_to_sha(self.sha, hard=self.hard)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=self.hard)

    def describe(self) -> str:
        return f"git reset {'--hard ' if self.hard else ''}{self.sha[:12]}"
