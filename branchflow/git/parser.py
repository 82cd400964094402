"""Remote URL parsing.

Turns the URL of a git remote into the pieces a hosting driver needs: the
host, the owner and the repository name.

Supported URL formats:
    SSH:
        - git@github.com:owner/repo.git
        - user@host:owner/repo
        - ssh://git@host:2222/owner/repo.git

    HTTPS:
        - https://github.com/owner/repo.git
        - https://gitea.example.com:3000/owner/repo

Example:
    >>> remote = GitUrlParser("git@github.com:git-town/git-town.git")
    >>> remote.host, remote.owner, remote.repo
    ('github.com', 'git-town', 'git-town')
    >>> remote.web_url
    'https://github.com/git-town/git-town'
"""

import re
from typing import Literal

from branchflow.git.exceptions import InvalidGitUrlError


class GitUrlParser:
    """Parser for git remote URLs in SSH and HTTPS formats.

    The constructor parses immediately and raises InvalidGitUrlError on
    anything it does not understand, so every property is valid afterwards.

    Attributes:
        url: Original URL that was parsed
        url_type: 'ssh' or 'https'
        host: Hostname of the git server (after any override)
        port: Port for HTTPS URLs with a non-standard port, else None
        owner: Repository owner/organization
        repo: Repository name without the .git suffix
    """

    # user@host:path, the scp-like syntax git uses for SSH remotes
    SCP_PATTERN = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[a-zA-Z0-9._-]+):(?!\d+/)(?P<path>.+?)(?:\.git)?/?$")

    SSH_PATTERN = re.compile(
        r"^ssh://(?:(?P<user>[\w.-]+)@)?(?P<host>[a-zA-Z0-9._-]+)(?::(?P<port>\d+))?/(?P<path>.+?)(?:\.git)?/?$"
    )

    HTTPS_PATTERN = re.compile(
        r"^https?://(?:[^@/]+@)?(?P<host>[a-zA-Z0-9._-]+)(?::(?P<port>\d+))?/(?P<path>.+?)(?:\.git)?/?$"
    )

    def __init__(self, url: str, hostname_override: str | None = None) -> None:
        """Parse a remote URL.

        Args:
            url: Remote URL. Surrounding whitespace is ignored.
            hostname_override: Replace the parsed host, for SSH identities
                configured as host aliases (``git@work-github:org/repo``).

        Raises:
            InvalidGitUrlError: If the URL is not SSH or HTTPS or lacks
                owner/repo.
        """
        self.url = url.strip()
        self.url_type: Literal["ssh", "https"]
        self.port: int | None = None

        if match := self.SCP_PATTERN.match(self.url):
            self.url_type = "ssh"
        elif match := self.SSH_PATTERN.match(self.url):
            self.url_type = "ssh"
        elif match := self.HTTPS_PATTERN.match(self.url):
            self.url_type = "https"
            port = match.group("port")
            self.port = int(port) if port else None
        else:
            raise InvalidGitUrlError(
                self.url,
                reason="Must be SSH (git@host:path) or HTTPS (https://host/path)",
            )

        self.host: str = hostname_override or match.group("host")
        self.owner, self.repo = self._split_path(match.group("path"))

    def _split_path(self, raw_path: str) -> tuple[str, str]:
        path = raw_path.strip("/").removesuffix(".git")
        parts = path.split("/")
        if len(parts) < 2 or not all(parts[:2]):
            raise InvalidGitUrlError(self.url, reason=f"Path must contain owner/repo (got: {path})")
        # Nested GitLab-style groups keep the last segment as the repository
        return "/".join(parts[:-1]), parts[-1]

    @property
    def full_name(self) -> str:
        """``owner/repo``."""
        return f"{self.owner}/{self.repo}"

    @property
    def web_url(self) -> str:
        """Browser URL of the repository, always HTTPS."""
        if self.port and self.url_type == "https":
            return f"https://{self.host}:{self.port}/{self.full_name}"
        return f"https://{self.host}/{self.full_name}"
