"""Enumerations shared across branchflow."""

from enum import Enum


class RunStatus(str, Enum):
    """Lifecycle of a workflow run.

    Transitions:
        NOT_STARTED -> RUNNING -> FINISHED | PAUSED_ON_CONFLICT | ABORTED
        PAUSED_ON_CONFLICT -> RUNNING (continue / skip) -> ...
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED_ON_CONFLICT = "paused_on_conflict"
    FINISHED = "finished"
    ABORTED = "aborted"

    def __str__(self) -> str:
        return self.value

    @property
    def is_active(self) -> bool:
        """Whether a persisted run in this status blocks a new run."""
        return self in (RunStatus.RUNNING, RunStatus.PAUSED_ON_CONFLICT)


class SyncStrategy(str, Enum):
    """How a feature branch is updated from its tracking branch."""

    MERGE = "merge"
    REBASE = "rebase"

    def __str__(self) -> str:
        return self.value


class HostingDriverType(str, Enum):
    """Code-hosting services with a pull-request driver."""

    GITHUB = "github"
    GITEA = "gitea"

    def __str__(self) -> str:
        return self.value
