"""Step that ships a branch through the hosting service."""

from typing import TYPE_CHECKING, Literal

import structlog

from branchflow.exceptions import ConfigurationError
from branchflow.hosting.base import MergePullRequestOptions
from branchflow.steps.base import Step
from branchflow.steps.branch import ResetToShaStep

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext

log = structlog.get_logger(__name__)


class MergePullRequestStep(Step):
    """Squash-merge the pull request of a branch via the hosting API.

    Runs with the parent branch checked out and fast-forwards it to the merge
    commit afterwards. The merge on the hosting service cannot be reverted;
    undoing only resets the local parent branch.
    """

    type: Literal["merge_pull_request"] = "merge_pull_request"
    branch_name: str
    parent_branch_name: str
    commit_message: str
    pull_request_number: int = 0

    async def run(self, ctx: "RunContext") -> None:
        if ctx.driver is None:
            raise ConfigurationError("no hosting driver is configured for this repository")

        sha = await ctx.driver.merge_pull_request(
            MergePullRequestOptions(
                branch=self.branch_name,
                parent_branch=self.parent_branch_name,
                commit_message=self.commit_message,
                pull_request_number=self.pull_request_number,
            )
        )
        log.info("pull_request_shipped", branch=self.branch_name, sha=sha)

        await ctx.git.fetch(ctx.remote)
        await ctx.git.fast_forward(f"{ctx.remote}/{self.parent_branch_name}")

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ResetToShaStep(sha=await ctx.git.current_sha(), hard=True)

    def describe(self) -> str:
        return f"merge pull request of {self.branch_name} into {self.parent_branch_name}"
