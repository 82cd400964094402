"""Branch hierarchy bookkeeping.

Every feature branch has exactly one parent branch. The mapping lives in git
config under ``branchflow.branch.<name>.parent`` so that it travels with the
repository and survives between invocations. ``BranchHierarchy`` is the
in-memory view of that mapping for one invocation; steps that change a
parent update both git config and this view.
"""

import re
from collections.abc import Iterable

import structlog

from branchflow.exceptions import ConfigurationError
from branchflow.git.executor import GitExecutor

log = structlog.get_logger(__name__)

PARENT_KEY_PATTERN = r"^branchflow\.branch\..*\.parent$"
_PARENT_KEY = re.compile(r"^branchflow\.branch\.(?P<branch>.+)\.parent$")


def parent_key(branch_name: str) -> str:
    """Git config key holding a branch's parent."""
    return f"branchflow.branch.{branch_name}.parent"


class BranchHierarchy:
    """Parent mapping of the repository's branches.

    Attributes:
        perennial_branches: Branches that never have a parent (main branch
            included)
    """

    def __init__(self, parents: dict[str, str] | None = None, perennial_branches: Iterable[str] = ()) -> None:
        self._parents: dict[str, str] = dict(parents or {})
        self.perennial_branches = frozenset(perennial_branches)

    @classmethod
    async def load(cls, git: GitExecutor, perennial_branches: Iterable[str] = ()) -> "BranchHierarchy":
        """Read the parent mapping from git config."""
        parents = {}
        for key, value in (await git.get_config_regexp(PARENT_KEY_PATTERN)).items():
            match = _PARENT_KEY.match(key)
            if match and value:
                parents[match.group("branch")] = value
        log.debug("hierarchy_loaded", branches=len(parents))
        return cls(parents, perennial_branches)

    @property
    def parents(self) -> dict[str, str]:
        return dict(self._parents)

    def parent_of(self, branch_name: str) -> str | None:
        return self._parents.get(branch_name)

    def is_feature_branch(self, branch_name: str) -> bool:
        return branch_name not in self.perennial_branches

    def ancestors(self, branch_name: str) -> list[str]:
        """Ancestors of a branch, oldest first.

        Raises:
            ConfigurationError: If the parent chain loops back on itself.
        """
        chain: list[str] = []
        seen = {branch_name}
        current = self._parents.get(branch_name)
        while current is not None:
            if current in seen:
                cycle = " -> ".join([branch_name, *chain, current])
                raise ConfigurationError(f"branch hierarchy contains a cycle: {cycle}")
            seen.add(current)
            chain.append(current)
            current = self._parents.get(current)
        chain.reverse()
        return chain

    def children_of(self, branch_name: str) -> list[str]:
        return sorted(child for child, parent in self._parents.items() if parent == branch_name)

    def sync_order(self, branch_names: Iterable[str]) -> list[str]:
        """Order branches so that every parent comes before its children."""
        return sorted(set(branch_names), key=lambda name: (len(self.ancestors(name)), name))

    def check_parent(self, branch_name: str, parent_branch_name: str) -> None:
        """Raise ConfigurationError if ``parent_branch_name`` cannot parent ``branch_name``."""
        if branch_name == parent_branch_name:
            raise ConfigurationError(f"branch {branch_name!r} cannot be its own parent")

    def set_parent(self, branch_name: str, parent_branch_name: str) -> None:
        self.check_parent(branch_name, parent_branch_name)
        self._parents[branch_name] = parent_branch_name

    def remove_parent(self, branch_name: str) -> None:
        self._parents.pop(branch_name, None)
