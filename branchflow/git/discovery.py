"""Repository discovery.

Locates the repository around a path with GitPython and reads the remote a
hosting driver has to talk to. Discovery is read-only; everything that
changes the working copy goes through ``GitExecutor``.

Example:
    >>> discovery = GitDiscovery("/path/to/repo/src")
    >>> discovery.root_directory
    PosixPath('/path/to/repo')
    >>> info = discovery.parse_repository("origin")
    >>> info.full_name, info.host
    ('git-town/git-town', 'github.com')
"""

from pathlib import Path
from typing import Literal

import git
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from branchflow.enums import HostingDriverType
from branchflow.git.exceptions import NoRemotesError, NotGitRepositoryError
from branchflow.git.models import GitRemote, RepositoryInfo
from branchflow.git.parser import GitUrlParser


class GitDiscovery:
    """Discovers repository location and remotes.

    The git.Repo object is opened lazily on first use and cached.

    Attributes:
        repo_path: Resolved absolute path discovery started from.
    """

    def __init__(self, repo_path: str | Path = ".") -> None:
        """Initialize discovery for a path inside a repository.

        Args:
            repo_path: Any path within the repository. Parent directories
                are searched.
        """
        self.repo_path = Path(repo_path).resolve()
        self._repo: git.Repo | None = None

    def _get_repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise NotGitRepositoryError(str(self.repo_path)) from e

        return self._repo

    @property
    def root_directory(self) -> Path:
        """Top-level directory of the working tree.

        Raises:
            NotGitRepositoryError: If the path is not inside a working tree.
        """
        working_tree = self._get_repo().working_tree_dir
        if working_tree is None:
            raise NotGitRepositoryError(str(self.repo_path))
        return Path(working_tree)

    def list_remotes(self) -> list[GitRemote]:
        """List all configured remotes with their URL type."""
        remotes = []
        for remote in self._get_repo().remotes:
            url = remote.url

            url_type: Literal["ssh", "https", "unknown"] = "unknown"
            if url.startswith(("git@", "ssh://")):
                url_type = "ssh"
            elif url.startswith(("http://", "https://")):
                url_type = "https"

            remotes.append(GitRemote(name=remote.name, url=url, url_type=url_type))

        return remotes

    def get_remote(self, remote_name: str = "origin") -> GitRemote:
        """Return the remote with the given name.

        Raises:
            NoRemotesError: If no such remote is configured.
        """
        for remote in self.list_remotes():
            if remote.name == remote_name:
                return remote
        raise NoRemotesError(remote_name)

    def parse_repository(self, remote_name: str = "origin", hostname_override: str | None = None) -> RepositoryInfo:
        """Parse hosting coordinates from a remote URL.

        Args:
            remote_name: Remote to read.
            hostname_override: Host to use instead of the one in the URL.

        Raises:
            NoRemotesError: If the remote is not configured.
            InvalidGitUrlError: If the remote URL cannot be parsed.
        """
        remote = self.get_remote(remote_name)
        parser = GitUrlParser(remote.url, hostname_override=hostname_override)

        return RepositoryInfo(
            owner=parser.owner,
            repo=parser.repo,
            host=parser.host,
            remote_name=remote.name,
            web_url=parser.web_url,
        )


def detect_driver_type(host: str) -> HostingDriverType | None:
    """Guess the hosting service from a hostname.

    Returns:
        The driver type, or None if the host is not recognized.

    Example:
        >>> detect_driver_type("github.com")
        <HostingDriverType.GITHUB: 'github'>
        >>> detect_driver_type("gitea.example.com")
        <HostingDriverType.GITEA: 'gitea'>
    """
    host_lower = host.lower()
    if host_lower == "github.com" or host_lower.startswith("github."):
        return HostingDriverType.GITHUB
    if "gitea" in host_lower or host_lower == "codeberg.org":
        return HostingDriverType.GITEA
    return None
