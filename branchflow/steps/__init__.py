"""Workflow steps.

``AnyStep`` is the closed set of step types a run state may contain. Steps
are told apart by their ``type`` tag when a persisted run is loaded, so a new
step type has to be added to this union.
"""

from typing import Annotated

from pydantic import Field

from branchflow.steps.base import Step
from branchflow.steps.branch import CheckoutBranchStep, CreateBranchStep, DeleteLocalBranchStep, ResetToShaStep
from branchflow.steps.changes import (
    CommitOpenChangesStep,
    DiscardOpenChangesStep,
    RestoreOpenChangesStep,
    StashOpenChangesStep,
)
from branchflow.steps.config import DeleteParentBranchStep, SetParentBranchStep
from branchflow.steps.hosting import MergePullRequestStep
from branchflow.steps.merge import (
    AbortMergeStep,
    AbortRebaseStep,
    AbortSyncStep,
    ContinueMergeStep,
    ContinueRebaseStep,
    MergeBranchStep,
    RebaseBranchStep,
    RewindBranchStep,
    SquashMergeBranchStep,
    SyncBranchStep,
)
from branchflow.steps.remote import (
    CreateRemoteBranchStep,
    CreateTrackingBranchStep,
    DeleteRemoteBranchStep,
    FetchUpstreamStep,
    PushBranchStep,
)
from branchflow.steps.workspace import ChangeDirectoryStep

AnyStep = Annotated[
    CreateBranchStep
    | CheckoutBranchStep
    | DeleteLocalBranchStep
    | ResetToShaStep
    | SetParentBranchStep
    | DeleteParentBranchStep
    | FetchUpstreamStep
    | CreateTrackingBranchStep
    | PushBranchStep
    | DeleteRemoteBranchStep
    | CreateRemoteBranchStep
    | MergeBranchStep
    | RebaseBranchStep
    | SquashMergeBranchStep
    | AbortMergeStep
    | ContinueMergeStep
    | AbortRebaseStep
    | AbortSyncStep
    | ContinueRebaseStep
    | SyncBranchStep
    | RewindBranchStep
    | StashOpenChangesStep
    | RestoreOpenChangesStep
    | DiscardOpenChangesStep
    | CommitOpenChangesStep
    | ChangeDirectoryStep
    | MergePullRequestStep,
    Field(discriminator="type"),
]

__all__ = [
    "AbortMergeStep",
    "AbortRebaseStep",
    "AbortSyncStep",
    "AnyStep",
    "ChangeDirectoryStep",
    "CheckoutBranchStep",
    "CommitOpenChangesStep",
    "ContinueMergeStep",
    "ContinueRebaseStep",
    "CreateBranchStep",
    "CreateRemoteBranchStep",
    "CreateTrackingBranchStep",
    "DeleteLocalBranchStep",
    "DeleteParentBranchStep",
    "DeleteRemoteBranchStep",
    "DiscardOpenChangesStep",
    "FetchUpstreamStep",
    "MergeBranchStep",
    "MergePullRequestStep",
    "PushBranchStep",
    "RebaseBranchStep",
    "ResetToShaStep",
    "RestoreOpenChangesStep",
    "RewindBranchStep",
    "SetParentBranchStep",
    "SquashMergeBranchStep",
    "StashOpenChangesStep",
    "Step",
    "SyncBranchStep",
]
