"""Steps for uncommitted changes in the working tree."""

from typing import TYPE_CHECKING, Literal

from branchflow.exceptions import ConflictError
from branchflow.steps.base import Step
from branchflow.steps.branch import ResetToShaStep

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


class StashOpenChangesStep(Step):
    """Stash all changes, untracked files included."""

    type: Literal["stash_open_changes"] = "stash_open_changes"

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.stash()

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return RestoreOpenChangesStep()

    def describe(self) -> str:
        return "git add -A && git stash"


class RestoreOpenChangesStep(Step):
    type: Literal["restore_open_changes"] = "restore_open_changes"

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.pop_stash()

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return StashOpenChangesStep()

    def describe(self) -> str:
        return "git stash pop"


class DiscardOpenChangesStep(Step):
    type: Literal["discard_open_changes"] = "discard_open_changes"

    async def run(self, ctx: "RunContext") -> None:
        await ctx.git.discard_open_changes()

    def describe(self) -> str:
        return "git reset --hard"


class CommitOpenChangesStep(Step):
    type: Literal["commit_open_changes"] = "commit_open_changes"
    message: str

    async def run(self, ctx: "RunContext") -> None:
        if await ctx.git.has_conflicts():
            raise ConflictError("cannot commit while files have unresolved conflicts")
        await ctx.git.commit_all(self.message)

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=False)

    def describe(self) -> str:
        return f"git commit -m {self.message.splitlines()[0]!r}" if self.message else "git commit"
