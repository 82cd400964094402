"""Ordered step sequences and the wrapping every workflow shares."""

import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from branchflow.steps import ChangeDirectoryStep, RestoreOpenChangesStep, StashOpenChangesStep, Step

if TYPE_CHECKING:
    from branchflow.engine.context import RunContext


@dataclass(frozen=True)
class WrapOptions:
    """How ``StepList.wrap`` brackets a step list.

    Attributes:
        run_in_repo_root: Run from the repository root and return to the
            current directory afterwards
        stash_open_changes: Stash uncommitted changes first and restore
            them at the end
    """

    run_in_repo_root: bool = False
    stash_open_changes: bool = False


class StepList:
    """Mutable, ordered sequence of steps."""

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self.steps: list[Step] = list(steps)

    def append(self, step: Step) -> None:
        self.steps.append(step)

    def append_list(self, other: "StepList | Iterable[Step]") -> None:
        self.steps.extend(other)

    def prepend(self, step: Step) -> None:
        self.steps.insert(0, step)

    def is_empty(self) -> bool:
        return not self.steps

    def peek(self) -> Step | None:
        return self.steps[0] if self.steps else None

    def pop(self) -> Step:
        """Remove and return the first step.

        Raises:
            IndexError: If the list is empty.
        """
        return self.steps.pop(0)

    async def wrap(self, options: WrapOptions, ctx: "RunContext") -> None:
        """Bracket the list with directory and stash steps.

        Directory steps are added only when the current directory differs
        from the repository root; stash steps only when the working tree has
        uncommitted changes. The stash bracket goes outside the directory
        bracket.

        Raises:
            ExternalOperationError: If the repository state cannot be queried.
        """
        if options.run_in_repo_root:
            root = await ctx.git.root_directory()
            cwd = Path(os.getcwd())
            if cwd.resolve() != root.resolve():
                self.prepend(ChangeDirectoryStep(directory=str(root)))
                self.append(ChangeDirectoryStep(directory=str(cwd)))

        if options.stash_open_changes and await ctx.git.has_open_changes():
            self.prepend(StashOpenChangesStep())
            self.append(RestoreOpenChangesStep())

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"StepList({[step.describe() for step in self.steps]!r})"
