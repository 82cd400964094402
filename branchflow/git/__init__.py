"""Git integration: command execution, query caches and remote discovery."""

from branchflow.git.cache import BoolCache, QueryCache, StringCache, StringListCache
from branchflow.git.discovery import GitDiscovery, detect_driver_type
from branchflow.git.exceptions import (
    GitDiscoveryError,
    InvalidGitUrlError,
    NoRemotesError,
    NotGitRepositoryError,
    UnsupportedHostError,
)
from branchflow.git.executor import CONFLICT_PATTERNS, GitExecutor, is_conflict_output
from branchflow.git.models import CommandResult, GitRemote, RepositoryInfo
from branchflow.git.parser import GitUrlParser

__all__ = [
    "BoolCache",
    "CONFLICT_PATTERNS",
    "CommandResult",
    "GitDiscovery",
    "GitDiscoveryError",
    "GitExecutor",
    "GitRemote",
    "GitUrlParser",
    "InvalidGitUrlError",
    "NoRemotesError",
    "NotGitRepositoryError",
    "QueryCache",
    "RepositoryInfo",
    "StringCache",
    "StringListCache",
    "UnsupportedHostError",
    "detect_driver_type",
    "is_conflict_output",
]
