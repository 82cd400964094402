"""Workflow engine: run state, persistence, step lists and the runner."""

from branchflow.engine.context import RunContext
from branchflow.engine.runner import RunResult, Runner
from branchflow.engine.state_manager import StateManager
from branchflow.engine.step_list import StepList, WrapOptions
from branchflow.engine.types import RUN_STATE_VERSION, RunState

__all__ = [
    "RUN_STATE_VERSION",
    "RunContext",
    "RunResult",
    "RunState",
    "Runner",
    "StateManager",
    "StepList",
    "WrapOptions",
]
