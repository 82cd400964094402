"""Async subprocess utilities.

Non-blocking subprocess execution used by the git executor. Commands are
always run from an argument list, never through a shell, so branch names and
commit messages are passed to git verbatim.

Example:
    >>> from branchflow.utils.async_subprocess import run_command
    >>> stdout, stderr, code = await run_command("git", "status", cwd="/repo")
    >>> if code == 0:
    ...     print(stdout)
"""

import asyncio
from collections.abc import Mapping
from pathlib import Path


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[str, str, int]:
    """Run a command asynchronously without shell interpolation.

    A non-zero exit code is returned, not raised; callers decide what a
    failure means for them.

    Args:
        *args: Command and arguments as separate strings.
            Example: "git", "merge", "--no-edit", "main"
        cwd: Working directory for command execution. If None, uses the
            current working directory of the parent process.
        env: Full environment for the child process (None inherits ours).

    Returns:
        Tuple of (stdout, stderr, return_code) with stdout and stderr decoded
        as UTF-8 (invalid bytes replaced).

    Raises:
        FileNotFoundError: If the executable is not found.
        PermissionError: If the executable cannot be executed.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout_bytes, stderr_bytes = await process.communicate()

    stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
    stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")
    return stdout, stderr, process.returncode or 0
