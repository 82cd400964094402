"""Repository discovery exceptions.

Errors raised while locating the repository and working out which hosting
service its remote points to. They are configuration problems from the
engine's point of view, so they derive from ConfigurationError and carry a
hint for resolution.

Example:
    >>> from branchflow.git.exceptions import NotGitRepositoryError
    >>> raise NotGitRepositoryError("/tmp/not-a-repo")
    Traceback (most recent call last):
        ...
    NotGitRepositoryError: Not a Git repository: /tmp/not-a-repo

    Hint: Run 'git init' or navigate to a Git repository directory.
"""

from branchflow.exceptions import ConfigurationError


class GitDiscoveryError(ConfigurationError):
    """Base exception for repository discovery errors.

    Attributes:
        message: Error message
        hint: Optional hint for resolution
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class NotGitRepositoryError(GitDiscoveryError):
    """Raised when a directory is not inside a Git repository.

    Attributes:
        path: Path to the directory that is not a Git repository
    """

    def __init__(self, path: str) -> None:
        super().__init__(
            message=f"Not a Git repository: {path}",
            hint="Run 'git init' or navigate to a Git repository directory.",
        )
        self.path = path


class NoRemotesError(GitDiscoveryError):
    """Raised when the repository has no remote to talk to."""

    def __init__(self, remote_name: str | None = None) -> None:
        message = (
            f"Remote '{remote_name}' is not configured in this repository"
            if remote_name
            else "No Git remotes configured in this repository"
        )
        super().__init__(
            message=message,
            hint=f"Add a remote with: git remote add {remote_name or 'origin'} <url>",
        )
        self.remote_name = remote_name


class InvalidGitUrlError(GitDiscoveryError):
    """Raised when a remote URL format is not recognized.

    Attributes:
        url: The invalid URL
    """

    def __init__(self, url: str, reason: str | None = None) -> None:
        msg = f"Invalid Git URL format: {url}"
        if reason:
            msg += f" ({reason})"

        super().__init__(
            message=msg,
            hint=("Expected formats:\n" "  - git@github.com:owner/repo.git\n" "  - https://github.com/owner/repo.git"),
        )
        self.url = url


class UnsupportedHostError(GitDiscoveryError):
    """Raised when no hosting driver matches the remote's host.

    Attributes:
        host: The unsupported host
    """

    def __init__(self, host: str) -> None:
        super().__init__(
            message=f"No hosting driver available for host: {host}",
            hint="Set 'hosting.driver' to 'github' or 'gitea' in your branchflow configuration.",
        )
        self.host = host
