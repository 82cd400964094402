"""Custom exception hierarchy for branchflow.

This module defines a structured exception hierarchy that lets the command
layer tell apart the failure kinds the workflow engine can produce and print
an actionable message for each of them.

Exception Hierarchy:
    BranchflowError (base)
    ├── ConfigurationError
    ├── ConflictError
    ├── ExternalOperationError
    ├── HostingServiceError
    ├── PersistenceError
    │   └── RunNotSavedError
    └── WorkflowError
        └── StepFailedError

Example Usage:
    >>> from branchflow.exceptions import ConfigurationError
    >>> if repo.has_local_or_remote_branch(name):
    ...     raise ConfigurationError(f"a branch named {name!r} already exists")
"""

from typing import Any


class BranchflowError(Exception):
    """Base exception for all branchflow errors.

    All custom exceptions inherit from this base class, allowing callers to
    catch every branchflow-specific error with a single except clause.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(BranchflowError):
    """The requested workflow cannot start in the current situation.

    Raised before any step runs and before any run state is created.

    Examples:
        - Target branch already exists locally or remotely
        - Current branch is not a feature branch
        - A run is already in progress for this repository
        - Continue/abort/skip invoked without a matching paused run
        - Invalid configuration file
    """

    pass


class ConflictError(BranchflowError):
    """Git stopped a merge or rebase because of conflicts.

    This is recoverable. The runner turns it into a paused run and never
    lets it escape as a failure.

    Attributes:
        output: Git output describing the conflict (if available)
    """

    def __init__(self, message: str, output: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            output: Combined stdout/stderr of the git command
        """
        super().__init__(message)
        self.output = output


class ExternalOperationError(BranchflowError):
    """A git command failed for a reason other than a known conflict.

    Examples:
        - Branch does not exist
        - Permission denied
        - git binary not found
        - Push rejected by the remote

    Attributes:
        command: The command that was executed
        exit_code: Process exit code (None if the process never started)
        stderr: Captured standard error
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            command: Executed command and arguments
            exit_code: Process exit code
            stderr: Captured standard error
        """
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr

        full_message = message
        if exit_code is not None:
            full_message = f"{message} (exit code {exit_code})"
        if stderr and stderr.strip():
            full_message = f"{full_message}\n{stderr.strip()}"

        super().__init__(full_message)
        # Preserve original message
        self.message = message


class HostingServiceError(BranchflowError):
    """The code-hosting service could not complete a request.

    Raised for network and API failures and for pull-request lookups that do
    not resolve to exactly one open pull request.

    Attributes:
        status_code: HTTP status code (if applicable)
        response_text: Response body text (if applicable)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response_text: Response body text (if applicable)
        """
        self.status_code = status_code
        self.response_text = response_text

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)
        self.message = message


class PersistenceError(BranchflowError):
    """The run state could not be read or written.

    A run that cannot be persisted cannot be resumed, so this is always
    fatal and reported separately from git failures.

    Attributes:
        path: Location of the state file involved
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            path: State file path
        """
        self.path = path
        full_message = f"{message} ({path})" if path else message
        super().__init__(full_message)
        self.message = message


class RunNotSavedError(PersistenceError):
    """Progress of a run could not be saved after the repository changed.

    The runner undoes the run from memory before raising this, so the
    repository does not drift away from a stale state file.

    Attributes:
        command: Command that started the run
        cause: The PersistenceError raised while saving
        abort_errors: Failures collected while undoing the run
    """

    def __init__(
        self,
        command: str,
        cause: PersistenceError,
        abort_errors: list[BaseException] | None = None,
    ) -> None:
        self.command = command
        self.cause = cause
        self.abort_errors = list(abort_errors or [])

        message = f"could not save the progress of '{command}', so it was undone: {cause.message}"
        if self.abort_errors:
            details = "\n".join(f"  - {error}" for error in self.abort_errors)
            message = f"{message}\nAdditionally, undoing the run failed:\n{details}"

        super().__init__(message, path=cause.path)
        self.message = message


class WorkflowError(BranchflowError):
    """Workflow execution errors."""

    pass


class StepFailedError(WorkflowError):
    """A step failed fatally and the run was aborted.

    Carries the step that failed, the underlying cause, and every failure
    that happened while executing the abort steps, so that none of them is
    hidden behind the others.

    Attributes:
        step: The step that failed
        cause: The original exception raised by the step
        abort_errors: Exceptions raised by abort steps, in execution order
    """

    def __init__(
        self,
        step: Any,
        cause: BaseException,
        abort_errors: list[BaseException] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            step: The failed step
            cause: Exception raised by the step
            abort_errors: Failures collected while aborting
        """
        self.step = step
        self.cause = cause
        self.abort_errors = list(abort_errors or [])

        description = step.describe() if hasattr(step, "describe") else str(step)
        message = f"{description} failed: {cause}"
        if self.abort_errors:
            details = "\n".join(f"  - {error}" for error in self.abort_errors)
            message = f"{message}\nAdditionally, undoing the run failed:\n{details}"

        super().__init__(message)
