"""Repository data models.

Example:
    >>> info = RepositoryInfo(
    ...     owner="git-town",
    ...     repo="git-town",
    ...     host="github.com",
    ...     remote_name="origin",
    ...     web_url="https://github.com/git-town/git-town",
    ... )
    >>> info.full_name
    'git-town/git-town'
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, field_validator


@dataclass(frozen=True)
class GitRemote:
    """A configured git remote.

    Attributes:
        name: Remote name (e.g., 'origin')
        url: Raw URL from git config
        url_type: Whether SSH or HTTPS format
    """

    name: str
    url: str
    url_type: Literal["ssh", "https", "unknown"]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one git invocation that exited successfully.

    Attributes:
        stdout: Captured standard output
        stderr: Captured standard error
        exit_code: Process exit code
    """

    stdout: str
    stderr: str = ""
    exit_code: int = 0

    @property
    def output(self) -> str:
        """Standard output without the trailing newline."""
        return self.stdout.strip()


class RepositoryInfo(BaseModel):
    """Hosting coordinates of a repository, parsed from one of its remotes.

    Attributes:
        owner: Repository owner/organization
        repo: Repository name (without .git suffix)
        host: Hostname of the hosting service
        remote_name: Which remote the information came from
        web_url: Browser URL of the repository
    """

    owner: str
    repo: str
    host: str
    remote_name: str
    web_url: str

    @field_validator("owner", "repo")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Owner and repo must not be empty")
        return v.strip()

    @property
    def full_name(self) -> str:
        """Return owner/repo format."""
        return f"{self.owner}/{self.repo}"
