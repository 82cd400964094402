"""Memoizing caches for repository queries.

Each cache holds one value and knows whether it has been filled. A
``QueryCache`` groups the caches one ``GitExecutor`` uses; it lives exactly as
long as that executor, so nothing leaks between runs or between tests.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class _ValueCache(Generic[T]):
    """Single memoized value with explicit initialization state."""

    def __init__(self) -> None:
        self._value: T | None = None
        self._initialized = False

    def initialized(self) -> bool:
        return self._initialized

    def set(self, value: T) -> None:
        self._value = value
        self._initialized = True

    def value(self) -> T:
        """Return the cached value.

        Raises:
            RuntimeError: If the cache has not been set.
        """
        if not self._initialized:
            raise RuntimeError(f"{type(self).__name__} used before being initialized")
        return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        self._value = None
        self._initialized = False


class BoolCache(_ValueCache[bool]):
    """Caches a boolean query result."""


class StringCache(_ValueCache[str]):
    """Caches a string query result."""


class StringListCache(_ValueCache[list[str]]):
    """Caches a list-of-strings query result."""

    def set(self, value: list[str]) -> None:
        super().set(list(value))

    def value(self) -> list[str]:
        return list(super().value())


@dataclass
class QueryCache:
    """Caches owned by one executor.

    Attributes:
        current_branch: Name of the checked-out branch
        root_directory: Absolute path of the repository root
        remotes: Configured remote names
        local_branches: Local branch names
    """

    current_branch: StringCache = field(default_factory=StringCache)
    root_directory: StringCache = field(default_factory=StringCache)
    remotes: StringListCache = field(default_factory=StringListCache)
    local_branches: StringListCache = field(default_factory=StringListCache)

    def invalidate_all(self) -> None:
        self.current_branch.invalidate()
        self.root_directory.invalidate()
        self.remotes.invalidate()
        self.local_branches.invalidate()
