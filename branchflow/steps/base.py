"""
Base class for workflow steps.

A step is one atomic repository operation. Workflows are lists of steps and
the runner executes them one by one, persisting progress in between so that
a run can stop on a conflict and be continued, skipped or aborted by a later
invocation.

Step Lifecycle:
    1. ``create_undo_step()`` is awaited right before the step runs and
       captures whatever the inverse operation needs (previous branch,
       previous SHA, previous parent).
    2. ``run()`` performs the operation. A normal return is success,
       ``ConflictError`` pauses the run, anything else aborts it.
    3. When paused on this step, ``abort_step()`` cleans up the half-done
       operation and ``continue_step()`` finishes it after the user resolved
       the conflict.

Steps are frozen pydantic models tagged by their ``type`` field, so a run
state containing them round-trips through JSON. Every concrete step must be
listed in ``AnyStep`` (``branchflow.steps``).

Example:
    >>> class TouchStep(Step):
    ...     type: Literal["touch"] = "touch"
    ...     path: str
    ...
    ...     async def run(self, ctx: RunContext) -> None:
    ...         Path(self.path).touch()
    ...
    ...     def describe(self) -> str:
    ...         return f"touch {self.path}"
"""

from abc import abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


class Step(BaseModel):
    """Abstract base class for all workflow steps."""

    model_config = ConfigDict(frozen=True)

    type: str

    @abstractmethod
    async def run(self, ctx: "RunContext") -> None:
        """Perform the operation.

        Raises:
            ConflictError: The operation stopped on conflicts the user can
                resolve.
            BranchflowError: The operation failed.
        """
        pass

    async def create_undo_step(self, ctx: "RunContext") -> "Step | None":
        """Return the step that reverts this one, based on the current state."""
        return None

    def abort_step(self) -> "Step | None":
        """Return the cleanup for when the run is aborted while paused on this step."""
        return None

    def continue_step(self) -> "Step | None":
        """Return the step that finishes this one after manual conflict resolution."""
        return None

    def describe(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self if name != "type")
        return f"{self.type}({fields})"
