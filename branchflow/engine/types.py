"""Persisted run state.

A ``RunState`` is everything a later invocation needs to continue, skip or
abort a run that stopped on a conflict. It is written to disk after every
step attempt by ``StateManager``.

Example:
    A run paused while syncing ``feature``::

        {
            "version": 1,
            "command": "sync",
            "repository": "/home/dev/project",
            "status": "paused_on_conflict",
            "run_step_list": [{"type": "checkout_branch", "branch_name": "main"}],
            "undo_step_list": [],
            "abort_step_list": [
                {"type": "abort_sync"},
                {"type": "rewind_branch", "branch_name": "feature", "sha": "3f2a...", "return_to": "main"}
            ],
            "paused_step": {"type": "sync_branch", "branch_name": "feature", ...},
            "paused_undo_step": {"type": "rewind_branch", ...},
            "conflict_message": "CONFLICT (content): Merge conflict in README.md",
            "created_at": "2024-01-15T10:30:00+00:00",
            "updated_at": "2024-01-15T10:30:02+00:00"
        }
"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from branchflow.enums import RunStatus
from branchflow.steps import AnyStep

RUN_STATE_VERSION = 1


def utc_now() -> str:
    return datetime.now(UTC).isoformat()


class RunState(BaseModel):
    """State of one workflow run.

    Attributes:
        version: Schema version of the persisted document
        command: High-level command that started the run
        repository: Absolute path of the repository root
        status: Lifecycle status
        run_step_list: Steps still to run, in order
        undo_step_list: Inverse steps, most recent first
        abort_step_list: Steps that abandon the run from where it stands
        paused_step: Step that stopped on a conflict
        paused_undo_step: Undo step captured for ``paused_step`` before it ran
        conflict_message: Git output describing the conflict
    """

    version: int = RUN_STATE_VERSION
    command: str
    repository: str
    status: RunStatus = RunStatus.NOT_STARTED
    run_step_list: list[AnyStep] = Field(default_factory=list)
    undo_step_list: list[AnyStep] = Field(default_factory=list)
    abort_step_list: list[AnyStep] = Field(default_factory=list)
    paused_step: AnyStep | None = None
    paused_undo_step: AnyStep | None = None
    conflict_message: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @property
    def is_paused(self) -> bool:
        return self.status == RunStatus.PAUSED_ON_CONFLICT

    def clear_pause(self) -> None:
        self.paused_step = None
        self.paused_undo_step = None
        self.conflict_message = None
