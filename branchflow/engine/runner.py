"""
Workflow runner.

The runner executes a step list against the repository and owns the run
state machine::

    not_started -> running -> finished | paused_on_conflict | aborted
    paused_on_conflict -> running (continue / skip) -> ...

Execution Model:
    Steps are awaited strictly one after another. Right before a step runs,
    its undo step is captured; after it succeeds the undo step is prepended
    to the undo list, so the undo list always holds the inverse operations in
    reverse completion order. The run state is persisted after every step
    attempt, which is what lets a conflict end the process and a later
    invocation continue, skip or abort the same run.

Outcomes:
    - ConflictError: the run pauses. The abort list becomes the conflicted
      step's abort step, then its own undo step, then the undo list.
    - Any other BranchflowError or OSError: the failed step took no effect,
      so only its abort step and the undo list are executed. The state is
      cleared and StepFailedError is raised.
    - PersistenceError while saving progress: the in-memory abort list is
      executed, the state file is removed and RunNotSavedError is raised.
      A stale state file would otherwise undo less than the repository holds.

Example:
    >>> runner = Runner(ctx, StateManager(settings.state_dir))
    >>> result = await runner.run("hack", step_list)
    >>> if result.status == RunStatus.PAUSED_ON_CONFLICT:
    ...     print(result.message)
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from branchflow.engine.context import RunContext
from branchflow.engine.state_manager import StateManager
from branchflow.engine.types import RunState
from branchflow.enums import RunStatus
from branchflow.exceptions import (
    BranchflowError,
    ConfigurationError,
    ConflictError,
    PersistenceError,
    RunNotSavedError,
    StepFailedError,
)
from branchflow.steps import Step

log = structlog.get_logger(__name__)

RESUME_INSTRUCTIONS = (
    "To continue after resolving the conflicts, run 'branchflow continue'.\n"
    "To skip the conflicting step, run 'branchflow skip'.\n"
    "To go back to where you started, run 'branchflow abort'."
)

_EXIT_CODES = {
    RunStatus.FINISHED: 0,
    RunStatus.ABORTED: 1,
    RunStatus.PAUSED_ON_CONFLICT: 2,
}


@dataclass
class RunResult:
    """What happened to a run by the time the runner returned.

    Attributes:
        status: Final status of this invocation
        command: Command that started the run
        message: Human readable summary
        conflict_message: Git output describing the conflict, when paused
        abort_errors: Failures collected while executing abort steps
    """

    status: RunStatus
    command: str
    message: str = ""
    conflict_message: str | None = None
    abort_errors: list[BaseException] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        """Process exit code for this result (0 finished, 1 aborted, 2 paused)."""
        return _EXIT_CODES.get(self.status, 1)


class Runner:
    """Run, continue, skip and abort workflow runs.

    Attributes:
        ctx: Collaborators the steps run against
        state_manager: Persistence for the repository's run state
    """

    def __init__(self, ctx: RunContext, state_manager: StateManager) -> None:
        self.ctx = ctx
        self.state_manager = state_manager

    async def run(self, command: str, steps: Iterable[Step]) -> RunResult:
        """Start a new run.

        Raises:
            ConfigurationError: If a run is already in progress for this
                repository. Nothing is executed or persisted.
            StepFailedError: If a step fails; the run has been aborted.
            PersistenceError: If the new run cannot be saved. Nothing ran.
            RunNotSavedError: If progress cannot be saved after a step
                changed the repository; the run has been undone.
        """
        existing = await self.state_manager.load_state(self.ctx.repository)
        if existing is not None and existing.status.is_active:
            raise ConfigurationError(
                f"a '{existing.command}' run is already in progress in this repository; "
                "run 'branchflow continue', 'branchflow skip' or 'branchflow abort' first"
            )

        state = RunState(
            command=command,
            repository=str(self.ctx.repository),
            status=RunStatus.RUNNING,
            run_step_list=list(steps),
        )
        log.info("run_started", command=command, steps=len(state.run_step_list))
        await self.state_manager.save_state(state)
        return await self._execute(state)

    async def continue_run(self) -> RunResult:
        """Finish the paused step and resume the run.

        The paused step's continue step runs without capturing a new undo
        step; the undo step captured before the step first ran still reverts
        it. If conflicts remain the run stays paused.

        Raises:
            ConfigurationError: If no run is paused. Nothing is changed.
            StepFailedError: If finishing the step or a later step fails.
            RunNotSavedError: If progress cannot be saved; the run has
                been undone.
        """
        state = await self._load_paused("continue")
        paused_step = state.paused_step
        continue_step = paused_step.continue_step() if paused_step is not None else None

        if continue_step is not None:
            log.info("step_continued", command=state.command, step=continue_step.describe())
            try:
                await continue_step.run(self.ctx)
            except ConflictError as e:
                state.conflict_message = e.output or e.message
                await self._save(state)
                return self._paused_result(state)
            except (BranchflowError, OSError) as e:
                await self._fail(state, paused_step, e)

        self._resume(state)
        await self._save(state)
        return await self._execute(state)

    async def skip(self) -> RunResult:
        """Drop the paused step's change and resume with the next step.

        Only the paused step's abort step runs. Its undo step is still kept,
        because earlier effects of the step (such as a checkout) remain and a
        later abort has to revert them. If the abort step fails the run stays
        paused and the error propagates.

        Raises:
            ConfigurationError: If no run is paused. Nothing is changed.
        """
        state = await self._load_paused("skip")
        abort_step = state.paused_step.abort_step() if state.paused_step is not None else None

        if abort_step is not None:
            log.info("step_skipped", command=state.command, step=abort_step.describe())
            await abort_step.run(self.ctx)

        self._resume(state)
        await self._save(state)
        return await self._execute(state)

    async def abort(self) -> RunResult:
        """Abandon the persisted run and return the repository to where it started.

        Failures of individual abort steps are collected, not raised, so one
        broken step does not keep the others from running.

        Raises:
            ConfigurationError: If no run is in progress.
        """
        state = await self.state_manager.load_state(self.ctx.repository)
        if state is None or not state.status.is_active:
            raise ConfigurationError("there is no run in progress to abort")

        steps = state.abort_step_list if state.is_paused else state.undo_step_list
        log.info("run_aborting", command=state.command, steps=len(steps))
        errors = await self._execute_abort_steps(steps)

        state.status = RunStatus.ABORTED
        await self.state_manager.clear_state(self.ctx.repository)
        message = f"aborted '{state.command}'"
        if errors:
            message += f"; {len(errors)} step(s) could not be undone"
        return RunResult(status=RunStatus.ABORTED, command=state.command, message=message, abort_errors=errors)

    async def _execute(self, state: RunState) -> RunResult:
        while state.run_step_list:
            step = state.run_step_list.pop(0)
            log.info("step_started", command=state.command, step=step.describe())

            undo_step: Step | None = None
            try:
                undo_step = await step.create_undo_step(self.ctx)
                await step.run(self.ctx)
            except ConflictError as e:
                return await self._pause(state, step, undo_step, e)
            except (BranchflowError, OSError) as e:
                state.abort_step_list = self._abort_list(step, None, state.undo_step_list)
                await self._fail(state, step, e)

            if undo_step is not None:
                state.undo_step_list.insert(0, undo_step)
            state.abort_step_list = list(state.undo_step_list)
            await self._save(state)

        state.status = RunStatus.FINISHED
        await self.state_manager.clear_state(self.ctx.repository)
        log.info("run_finished", command=state.command)
        return RunResult(status=RunStatus.FINISHED, command=state.command, message=f"'{state.command}' finished")

    async def _pause(self, state: RunState, step: Step, undo_step: Step | None, error: ConflictError) -> RunResult:
        state.status = RunStatus.PAUSED_ON_CONFLICT
        state.paused_step = step
        state.paused_undo_step = undo_step
        state.conflict_message = error.output or error.message
        state.abort_step_list = self._abort_list(step, undo_step, state.undo_step_list)
        await self._save(state)
        log.info("run_paused", command=state.command, step=step.describe())
        return self._paused_result(state)

    async def _save(self, state: RunState) -> None:
        """Persist progress, or undo the run and raise RunNotSavedError."""
        try:
            await self.state_manager.save_state(state)
        except PersistenceError as e:
            log.error("run_state_not_saved", command=state.command, error=str(e))
            errors = await self._execute_abort_steps(state.abort_step_list)
            state.status = RunStatus.ABORTED
            errors.extend(await self._discard_state())
            raise RunNotSavedError(state.command, e, errors) from e

    async def _fail(self, state: RunState, step: Step, cause: BaseException) -> None:
        """Abort the run after a fatal step failure and raise StepFailedError."""
        log.error("step_failed", command=state.command, step=step.describe(), error=str(cause))
        errors = await self._execute_abort_steps(state.abort_step_list)
        state.status = RunStatus.ABORTED
        errors.extend(await self._discard_state())
        raise StepFailedError(step, cause, errors) from cause

    async def _discard_state(self) -> list[BaseException]:
        try:
            await self.state_manager.clear_state(self.ctx.repository)
        except PersistenceError as e:
            log.warning("run_state_not_cleared", error=str(e))
            return [e]
        return []

    async def _execute_abort_steps(self, steps: list[Step]) -> list[BaseException]:
        errors: list[BaseException] = []
        for step in steps:
            log.info("abort_step_started", step=step.describe())
            try:
                await step.run(self.ctx)
            except (BranchflowError, OSError) as e:
                log.warning("abort_step_failed", step=step.describe(), error=str(e))
                errors.append(e)
        return errors

    async def _load_paused(self, action: str) -> RunState:
        state = await self.state_manager.load_state(self.ctx.repository)
        if state is None:
            raise ConfigurationError(f"nothing to {action}: there is no run in progress")
        if not state.is_paused:
            raise ConfigurationError(f"nothing to {action}: the '{state.command}' run is {state.status}, not paused")
        return state

    @staticmethod
    def _resume(state: RunState) -> None:
        if state.paused_undo_step is not None:
            state.undo_step_list.insert(0, state.paused_undo_step)
        state.clear_pause()
        state.status = RunStatus.RUNNING
        state.abort_step_list = list(state.undo_step_list)

    @staticmethod
    def _abort_list(step: Step, undo_step: Step | None, undo_steps: list[Step]) -> list[Step]:
        head = [candidate for candidate in (step.abort_step(), undo_step) if candidate is not None]
        return head + list(undo_steps)

    @staticmethod
    def _paused_result(state: RunState) -> RunResult:
        step = state.paused_step.describe() if state.paused_step is not None else state.command
        return RunResult(
            status=RunStatus.PAUSED_ON_CONFLICT,
            command=state.command,
            message=f"'{state.command}' stopped because of conflicts in: {step}\n\n{RESUME_INSTRUCTIONS}",
            conflict_message=state.conflict_message,
        )
