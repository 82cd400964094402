"""Steps that talk to the remote repository.

Pushes of existing branches cannot be undone safely (someone else may have
fetched them), so ``PushBranchStep`` has no undo step.
"""

from typing import TYPE_CHECKING, Literal

from branchflow.steps.base import Step

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


class FetchUpstreamStep(Step):
    type: Literal["fetch_upstream"] = "fetch_upstream"
    remote: str = "origin"

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.fetch(self.remote)

    def describe(self) -> str:
        return f"git fetch --prune --tags {self.remote}"


class CreateTrackingBranchStep(Step):
    """Push a new local branch and set it up to track the remote copy."""

    type: Literal["create_tracking_branch"] = "create_tracking_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.push_tracking_branch(self.branch_name, remote=ctx.remote)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return DeleteRemoteBranchStep(branch_name=self.branch_name)

    def describe(self) -> str:
        return f"push {self.branch_name} and track it"


class PushBranchStep(Step):
    type: Literal["push_branch"] = "push_branch"
    branch_name: str
    force: bool = False

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.push_branch(self.branch_name, remote=ctx.remote, force=self.force)

    def describe(self) -> str:
        return f"push {self.branch_name}" + (" (force with lease)" if self.force else "")


class DeleteRemoteBranchStep(Step):
    type: Literal["delete_remote_branch"] = "delete_remote_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.delete_remote_branch(self.branch_name, remote=ctx.remote)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        sha = await ctx.git.sha_of(f"{ctx.remote}/{self.branch_name}")
        return CreateRemoteBranchStep(branch_name=self.branch_name, sha=sha)

    def describe(self) -> str:
        return f"delete remote branch {self.branch_name}"


class CreateRemoteBranchStep(Step):
    type: Literal["create_remote_branch"] = "create_remote_branch"
    branch_name: str
    sha: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.create_remote_branch(self.branch_name, self.sha, remote=ctx.remote)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return DeleteRemoteBranchStep(branch_name=self.branch_name)

    def describe(self) -> str:
        return f"create remote branch {self.branch_name} at {self.sha[:12]}"
