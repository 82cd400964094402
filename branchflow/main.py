"""CLI entry point for branchflow."""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click
import structlog

from branchflow.config.settings import BranchflowSettings, load_settings
from branchflow.engine import workflows
from branchflow.engine.context import RunContext
from branchflow.engine.runner import Runner, RunResult
from branchflow.engine.state_manager import StateManager
from branchflow.engine.step_list import StepList
from branchflow.enums import RunStatus
from branchflow.exceptions import BranchflowError
from branchflow.git.discovery import GitDiscovery
from branchflow.git.exceptions import NotGitRepositoryError
from branchflow.git.executor import GitExecutor
from branchflow.hosting.factory import create_hosting_driver
from branchflow.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)

T = TypeVar("T")


def _repository_root() -> Path:
    return GitDiscovery(Path.cwd()).root_directory


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration file (default: .branchflow.yaml in the repository root)",
)
@click.option("--log-level", default="WARNING", help="Logging level")
@click.option("--json-logs", is_flag=True, help="Write logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str, json_logs: bool) -> None:
    """branchflow: resumable git branch workflows."""
    configure_logging(log_level, json_output=json_logs)

    try:
        search_dir = _repository_root()
    except NotGitRepositoryError:
        search_dir = Path.cwd()

    try:
        settings = load_settings(config, search_dir=search_dir)
    except BranchflowError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings}


def _execute(action: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine and turn errors into messages and exit codes."""
    try:
        return asyncio.run(action())
    except BranchflowError as e:
        click.echo(f"Error: {e}", err=True)
        log.debug("command_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error("command_unexpected", exc_info=True)
        sys.exit(1)


def _report(result: RunResult, expected: RunStatus = RunStatus.FINISHED) -> None:
    """Print a run outcome and exit non-zero unless it is the expected one.

    ``abort`` expects an aborted run; it still fails when an abort step did.
    """
    if result.conflict_message:
        click.echo(result.conflict_message, err=True)
        click.echo("", err=True)
    click.echo(result.message)
    for error in result.abort_errors:
        click.echo(f"  - {error}", err=True)
    if result.status != expected or result.abort_errors:
        sys.exit(result.exit_code or 1)


async def _create_context(settings: BranchflowSettings) -> RunContext:
    root = _repository_root()
    driver = create_hosting_driver(settings, root)
    return await RunContext.create(settings, git=GitExecutor(), driver=driver)


async def _with_runner(settings: BranchflowSettings, action: Callable[[RunContext, Runner], Awaitable[T]]) -> T:
    ctx = await _create_context(settings)
    try:
        return await action(ctx, Runner(ctx, StateManager(settings.state_dir)))
    finally:
        if ctx.driver is not None:
            await ctx.driver.close()


def _run_workflow(
    click_ctx: click.Context, command: str, build: Callable[[RunContext], Awaitable[StepList]]
) -> None:
    async def _run(ctx: RunContext, runner: Runner) -> RunResult:
        steps = await build(ctx)
        return await runner.run(command, steps)

    settings = click_ctx.obj["settings"]
    _report(_execute(lambda: _with_runner(settings, _run)))


@cli.command()
@click.argument("branch")
@click.pass_context
def hack(ctx: click.Context, branch: str) -> None:
    """Create a new feature branch off the main branch."""
    _run_workflow(ctx, "hack", lambda run_ctx: workflows.hack(run_ctx, branch))


@cli.command()
@click.argument("branch")
@click.pass_context
def append(ctx: click.Context, branch: str) -> None:
    """Create a new feature branch as a child of the current branch."""
    _run_workflow(ctx, "append", lambda run_ctx: workflows.append(run_ctx, branch))


@cli.command()
@click.argument("branch")
@click.pass_context
def prepend(ctx: click.Context, branch: str) -> None:
    """Create a new feature branch as the parent of the current branch.

    Syncs the parent branch, cuts the new branch off it, makes the new branch
    the parent of the current branch and brings uncommitted changes along.
    """
    _run_workflow(ctx, "prepend", lambda run_ctx: workflows.prepend(run_ctx, branch))


@cli.command()
@click.option("--all", "all_branches", is_flag=True, help="Sync all local branches")
@click.pass_context
def sync(ctx: click.Context, all_branches: bool) -> None:
    """Update the current branch with its tracking branch and ancestors."""
    _run_workflow(ctx, "sync", lambda run_ctx: workflows.sync(run_ctx, all_branches=all_branches))


@cli.command()
@click.argument("branch", required=False)
@click.option("-m", "--message", default=None, help="Commit message for the squashed commit")
@click.pass_context
def ship(ctx: click.Context, branch: str | None, message: str | None) -> None:
    """Merge a feature branch into its parent and delete it."""
    _run_workflow(ctx, "ship", lambda run_ctx: workflows.ship(run_ctx, branch, commit_message=message))


@cli.command("continue")
@click.pass_context
def continue_command(ctx: click.Context) -> None:
    """Continue the paused run after resolving conflicts."""
    settings = ctx.obj["settings"]
    _report(_execute(lambda: _with_runner(settings, lambda _, runner: runner.continue_run())))


@cli.command()
@click.pass_context
def skip(ctx: click.Context) -> None:
    """Skip the conflicting step of the paused run."""
    settings = ctx.obj["settings"]
    _report(_execute(lambda: _with_runner(settings, lambda _, runner: runner.skip())))


@cli.command()
@click.pass_context
def abort(ctx: click.Context) -> None:
    """Abort the run in progress and undo its changes."""
    settings = ctx.obj["settings"]
    _report(_execute(lambda: _with_runner(settings, lambda _, runner: runner.abort())), expected=RunStatus.ABORTED)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the run in progress, if any."""
    settings = ctx.obj["settings"]

    async def _status() -> None:
        state = await StateManager(settings.state_dir).load_state(_repository_root())
        if state is None:
            click.echo("No run in progress.")
            return

        click.echo(f"Command: {state.command}")
        click.echo(f"Status:  {state.status}")
        click.echo(f"Started: {state.created_at}")
        if state.paused_step is not None:
            click.echo(f"Stopped at: {state.paused_step.describe()}")
        if state.run_step_list:
            click.echo(f"Next step:  {state.run_step_list[0].describe()} ({len(state.run_step_list)} remaining)")
        if state.conflict_message:
            click.echo("")
            click.echo(state.conflict_message)

    _execute(_status)


@cli.command()
@click.pass_context
def discard(ctx: click.Context) -> None:
    """Delete the persisted run state without touching the repository."""
    settings = ctx.obj["settings"]

    async def _discard() -> bool:
        return await StateManager(settings.state_dir).clear_state(_repository_root())

    if _execute(_discard):
        click.echo("Discarded the persisted run state.")
    else:
        click.echo("No run state to discard.")


if __name__ == "__main__":
    cli()
