"""Run context for workflow steps.

This module provides the RunContext dataclass that carries the collaborators
every step needs. One context is built per invocation and passed explicitly;
there is no module-level state.
"""

from dataclasses import dataclass
from pathlib import Path

from branchflow.config.hierarchy import BranchHierarchy
from branchflow.config.settings import BranchflowSettings
from branchflow.git.executor import GitExecutor
from branchflow.hosting.base import HostingDriver


@dataclass
class RunContext:
    """Context passed to every step of a run.

    Attributes:
        git: Executor for the working copy
        settings: Settings of this invocation
        hierarchy: Parent mapping, kept in sync with git config by the steps
        repository: Absolute path of the repository root
        driver: Hosting driver, None when the remote is not a known service
    """

    git: GitExecutor
    settings: BranchflowSettings
    hierarchy: BranchHierarchy
    repository: Path
    driver: HostingDriver | None = None

    @property
    def remote(self) -> str:
        return self.settings.remote

    @classmethod
    async def create(
        cls,
        settings: BranchflowSettings,
        git: GitExecutor | None = None,
        driver: HostingDriver | None = None,
    ) -> "RunContext":
        """Build a context for the repository around the current directory."""
        git = git or GitExecutor()
        repository = await git.root_directory()
        perennial = [settings.main_branch, *settings.perennial_branches]
        hierarchy = await BranchHierarchy.load(git, perennial_branches=perennial)
        return cls(git=git, settings=settings, hierarchy=hierarchy, repository=repository, driver=driver)
