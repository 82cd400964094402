"""Step that moves the process into another directory."""

import os
from typing import TYPE_CHECKING, Literal

from branchflow.exceptions import ExternalOperationError
from branchflow.steps.base import Step

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


class ChangeDirectoryStep(Step):
    """Change the working directory of the current process.

    Git commands without an explicit ``cwd`` follow it.
    """

    type: Literal["change_directory"] = "change_directory"
    directory: str

    async def run(self, ctx: "RunContext") -> None:
        try:
            os.chdir(self.directory)
        except OSError as e:
            raise ExternalOperationError(f"cannot change directory to {self.directory}: {e.strerror or e}") from e

    async def create_undo_step(self, ctx: "RunContext") -> Step | None:
        return ChangeDirectoryStep(directory=os.getcwd())

    def describe(self) -> str:
        return f"cd {self.directory}"
