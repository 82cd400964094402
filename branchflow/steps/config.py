"""Steps that change the recorded branch hierarchy."""

from typing import TYPE_CHECKING, Literal

from branchflow.config.hierarchy import parent_key
from branchflow.steps.base import Step

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


class SetParentBranchStep(Step):
    """Record ``parent_branch_name`` as the parent of ``branch_name``."""

    type: Literal["set_parent_branch"] = "set_parent_branch"
    branch_name: str
    parent_branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        ctx.hierarchy.check_parent(self.branch_name, self.parent_branch_name)
        await ctx.git.set_config(parent_key(self.branch_name), self.parent_branch_name)
        ctx.hierarchy.set_parent(self.branch_name, self.parent_branch_name)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        previous = ctx.hierarchy.parent_of(self.branch_name)
        if previous is None:
            return DeleteParentBranchStep(branch_name=self.branch_name)
        return SetParentBranchStep(branch_name=self.branch_name, parent_branch_name=previous)

    def describe(self) -> str:
        return f"set parent of {self.branch_name} to {self.parent_branch_name}"


class DeleteParentBranchStep(Step):
    type: Literal["delete_parent_branch"] = "delete_parent_branch"
    branch_name: str

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.unset_config(parent_key(self.branch_name))
        ctx.hierarchy.remove_parent(self.branch_name)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        previous = ctx.hierarchy.parent_of(self.branch_name)
        if previous is None:
            return None
        return SetParentBranchStep(branch_name=self.branch_name, parent_branch_name=previous)

    def describe(self) -> str:
        return f"remove parent of {self.branch_name}"
