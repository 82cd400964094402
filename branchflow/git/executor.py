"""Repository executor.

``GitExecutor`` runs single git operations against the working copy and
reports one of three outcomes: success (a ``CommandResult``), a recoverable
conflict (``ConflictError``) or a fatal failure (``ExternalOperationError``).

Conflict Detection:
    Git has no dedicated exit status for conflicts: merge, rebase, cherry-pick,
    revert and stash all exit with 1 (sometimes 128) for both conflicts and
    ordinary failures. The executor therefore classifies a non-zero exit as a
    conflict only when the operation is conflict capable *and* the combined
    output contains one of ``CONFLICT_PATTERNS``. Git runs with ``LC_ALL=C`` so
    the messages are not translated.

Working Directory:
    Commands run in ``cwd`` when given, otherwise in the process's current
    directory. ``ChangeDirectoryStep`` relies on the latter.

Example:
    >>> git = GitExecutor()
    >>> await git.checkout_branch("feature")
    >>> try:
    ...     await git.merge_branch("main")
    ... except ConflictError as e:
    ...     print(e.output)
"""

import os
from pathlib import Path

import structlog

from branchflow.exceptions import ConflictError, ExternalOperationError
from branchflow.git.cache import QueryCache
from branchflow.git.models import CommandResult
from branchflow.utils.async_subprocess import run_command

log = structlog.get_logger(__name__)

# Output fragments git prints when a merge-like operation stops on conflicts.
CONFLICT_PATTERNS: tuple[str, ...] = (
    "CONFLICT (",
    "Automatic merge failed",
    "could not apply",
    "Resolve all conflicts manually",
    "after resolving the conflicts",
    "needs merge",
    "you have unmerged paths",
    "Committing is not possible because you have unmerged files",
    "You must edit all merge conflicts",
)

GIT_ENVIRONMENT_OVERRIDES = {
    "LC_ALL": "C",
    "LANG": "C",
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_MERGE_AUTOEDIT": "no",
    "GIT_EDITOR": "true",
}


def is_conflict_output(output: str) -> bool:
    """Whether git output reports a merge or rebase conflict."""
    return any(pattern in output for pattern in CONFLICT_PATTERNS)


class GitExecutor:
    """Runs git commands and answers repository queries.

    Query results that only change through this executor (current branch,
    local branches, remotes, root directory) are memoized in ``cache`` and
    updated by the mutating methods.

    Attributes:
        cwd: Directory git runs in (None means the process's current directory)
        git_binary: Name or path of the git executable
        cache: Memoized query results for this executor
    """

    def __init__(self, cwd: str | Path | None = None, git_binary: str = "git") -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.git_binary = git_binary
        self.cache = QueryCache()
        self._env = {**os.environ, **GIT_ENVIRONMENT_OVERRIDES}

    async def execute(self, *args: str, conflict_possible: bool = False, check: bool = True) -> CommandResult:
        """Run one git command.

        Args:
            *args: Arguments after ``git``.
            conflict_possible: Classify conflict output as ConflictError.
            check: Raise on non-zero exit. When False the result carries the
                exit code instead.

        Returns:
            The command's output and exit code.

        Raises:
            ConflictError: The operation stopped because of conflicts.
            ExternalOperationError: Any other failure, including a missing git
                binary or an inaccessible working directory.
        """
        command = [self.git_binary, *args]
        log.debug("git_command", command=" ".join(command))

        try:
            stdout, stderr, exit_code = await run_command(*command, cwd=self.cwd, env=self._env)
        except FileNotFoundError as e:
            raise ExternalOperationError(
                f"cannot run {' '.join(command)}: {e.strerror or e}",
                command=command,
            ) from e
        except OSError as e:
            raise ExternalOperationError(f"cannot run {' '.join(command)}: {e}", command=command) from e

        if exit_code != 0 and check:
            combined = f"{stdout}\n{stderr}"
            if conflict_possible and is_conflict_output(combined):
                log.info("git_conflict", command=" ".join(command))
                raise ConflictError(f"git {args[0]} stopped because of conflicts", output=combined.strip())
            raise ExternalOperationError(
                f"git {' '.join(args)} failed",
                command=command,
                exit_code=exit_code,
                stderr=stderr or stdout,
            )

        return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    async def _succeeds(self, *args: str) -> bool:
        result = await self.execute(*args, check=False)
        return result.exit_code == 0

    # ------------------------------------------------------------------ queries

    async def root_directory(self) -> Path:
        if not self.cache.root_directory.initialized():
            result = await self.execute("rev-parse", "--show-toplevel")
            self.cache.root_directory.set(result.output)
        return Path(self.cache.root_directory.value())

    async def current_branch(self) -> str:
        """Name of the checked-out branch.

        While a rebase is in progress HEAD is detached; the branch being
        rebased is reported instead.
        """
        if self.cache.current_branch.initialized():
            return self.cache.current_branch.value()

        result = await self.execute("symbolic-ref", "--short", "-q", "HEAD", check=False)
        if result.exit_code == 0 and result.output:
            branch = result.output
        else:
            branch = await self._rebasing_branch()
            if branch is None:
                raise ExternalOperationError("cannot determine the current branch: HEAD is detached")
        self.cache.current_branch.set(branch)
        return branch

    async def _rebasing_branch(self) -> str | None:
        for directory in ("rebase-merge", "rebase-apply"):
            head_name = await self._git_path(f"{directory}/head-name")
            if head_name.is_file():
                return head_name.read_text().strip().removeprefix("refs/heads/")
        return None

    async def _git_path(self, name: str) -> Path:
        result = await self.execute("rev-parse", "--git-path", name)
        path = Path(result.output)
        if not path.is_absolute():
            path = (self.cwd or Path.cwd()) / path
        return path

    async def has_open_changes(self) -> bool:
        result = await self.execute("status", "--porcelain", "--ignore-submodules")
        return result.output != ""

    async def has_conflicts(self) -> bool:
        result = await self.execute("diff", "--name-only", "--diff-filter=U")
        return result.output != ""

    async def has_merge_in_progress(self) -> bool:
        return await self._succeeds("rev-parse", "-q", "--verify", "MERGE_HEAD")

    async def has_rebase_in_progress(self) -> bool:
        for directory in ("rebase-merge", "rebase-apply"):
            if (await self._git_path(directory)).is_dir():
                return True
        return False

    async def local_branches(self) -> list[str]:
        if not self.cache.local_branches.initialized():
            result = await self.execute("for-each-ref", "--format=%(refname:short)", "refs/heads")
            self.cache.local_branches.set([line for line in result.output.splitlines() if line])
        return self.cache.local_branches.value()

    async def has_local_branch(self, branch_name: str) -> bool:
        return branch_name in await self.local_branches()

    async def has_remote_branch(self, branch_name: str, remote: str = "origin") -> bool:
        return await self._succeeds("show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch_name}")

    async def has_local_or_remote_branch(self, branch_name: str, remote: str = "origin") -> bool:
        return await self.has_local_branch(branch_name) or await self.has_remote_branch(branch_name, remote)

    async def remotes(self) -> list[str]:
        if not self.cache.remotes.initialized():
            result = await self.execute("remote")
            self.cache.remotes.set([line for line in result.output.splitlines() if line])
        return self.cache.remotes.value()

    async def has_remote(self, remote: str = "origin") -> bool:
        return remote in await self.remotes()

    async def has_tracking_branch(self, branch_name: str, remote: str = "origin") -> bool:
        return await self.has_remote(remote) and await self.has_remote_branch(branch_name, remote)

    async def sha_of(self, ref: str) -> str:
        result = await self.execute("rev-parse", "--verify", f"{ref}^{{commit}}")
        return result.output

    async def current_sha(self) -> str:
        return await self.sha_of("HEAD")

    async def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return await self._succeeds("merge-base", "--is-ancestor", ancestor, descendant)

    async def has_shippable_changes(self, branch_name: str, parent_branch_name: str) -> bool:
        result = await self.execute("diff", "--quiet", parent_branch_name, branch_name, check=False)
        return result.exit_code != 0

    async def stash_size(self) -> int:
        result = await self.execute("stash", "list")
        return len([line for line in result.output.splitlines() if line])

    async def get_config(self, key: str) -> str | None:
        result = await self.execute("config", "--get", key, check=False)
        if result.exit_code == 1:
            return None
        if result.exit_code != 0:
            raise ExternalOperationError(
                f"git config --get {key} failed", exit_code=result.exit_code, stderr=result.stderr
            )
        return result.output

    async def get_config_regexp(self, pattern: str) -> dict[str, str]:
        """Return all config entries whose key matches ``pattern``."""
        result = await self.execute("config", "--get-regexp", pattern, check=False)
        if result.exit_code == 1:
            return {}
        if result.exit_code != 0:
            raise ExternalOperationError(
                f"git config --get-regexp {pattern} failed", exit_code=result.exit_code, stderr=result.stderr
            )
        entries = {}
        for line in result.output.splitlines():
            key, _, value = line.partition(" ")
            entries[key] = value
        return entries

    # ---------------------------------------------------------------- mutations

    async def set_config(self, key: str, value: str) -> None:
        await self.execute("config", key, value)

    async def unset_config(self, key: str) -> None:
        result = await self.execute("config", "--unset", key, check=False)
        # 5: the key was not set, which is the desired end state
        if result.exit_code not in (0, 5):
            raise ExternalOperationError(
                f"git config --unset {key} failed", exit_code=result.exit_code, stderr=result.stderr
            )

    async def checkout_branch(self, branch_name: str) -> None:
        await self.execute("checkout", branch_name)
        self.cache.current_branch.set(branch_name)

    async def create_branch(self, branch_name: str, starting_point: str) -> None:
        await self.execute("branch", branch_name, starting_point)
        self.cache.local_branches.invalidate()

    async def delete_local_branch(self, branch_name: str, force: bool = False) -> None:
        await self.execute("branch", "-D" if force else "-d", branch_name)
        self.cache.local_branches.invalidate()

    async def reset_to_sha(self, sha: str, hard: bool = False) -> None:
        await self.execute("reset", "--hard" if hard else "--soft", sha)

    async def merge_branch(self, branch_name: str) -> None:
        await self.execute("merge", "--no-edit", branch_name, conflict_possible=True)

    async def abort_merge(self) -> None:
        await self.execute("merge", "--abort")

    async def commit_no_edit(self) -> None:
        await self.execute("commit", "--no-edit", conflict_possible=True)

    async def rebase(self, target: str) -> None:
        await self.execute("rebase", target, conflict_possible=True)

    async def abort_rebase(self) -> None:
        await self.execute("rebase", "--abort")
        self.cache.current_branch.invalidate()

    async def continue_rebase(self) -> None:
        await self.execute("rebase", "--continue", conflict_possible=True)
        self.cache.current_branch.invalidate()

    async def squash_merge(self, branch_name: str) -> None:
        await self.execute("merge", "--squash", branch_name, conflict_possible=True)

    async def commit_all(self, message: str) -> None:
        await self.stage_all()
        await self.execute("commit", "-m", message, conflict_possible=True)

    async def stage_all(self) -> None:
        await self.execute("add", "-A")

    async def stash(self) -> None:
        await self.stage_all()
        await self.execute("stash")

    async def pop_stash(self) -> None:
        await self.execute("stash", "pop", conflict_possible=True)

    async def discard_open_changes(self) -> None:
        await self.execute("reset", "--hard")

    async def fetch(self, remote: str = "origin") -> None:
        await self.execute("fetch", "--prune", "--tags", remote)

    async def push_tracking_branch(self, branch_name: str, remote: str = "origin") -> None:
        await self.execute("push", "-u", remote, branch_name)

    async def push_branch(self, branch_name: str, remote: str = "origin", force: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force-with-lease")
        await self.execute(*args, remote, branch_name)

    async def create_remote_branch(self, branch_name: str, sha: str, remote: str = "origin") -> None:
        await self.execute("push", remote, f"{sha}:refs/heads/{branch_name}")

    async def delete_remote_branch(self, branch_name: str, remote: str = "origin") -> None:
        await self.execute("push", remote, f":{branch_name}")

    async def fast_forward(self, ref: str) -> None:
        await self.execute("merge", "--ff-only", ref)

