"""GitHub hosting driver using PyGithub."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog
from github import Auth, Github, GithubException  # type: ignore[import-not-found]
from github.PullRequest import PullRequest as GHPullRequest  # type: ignore[import-not-found]
from github.Repository import Repository as GHRepository  # type: ignore[import-not-found]

from branchflow.exceptions import HostingServiceError
from branchflow.git.models import RepositoryInfo
from branchflow.hosting.base import HostingDriver, PullRequestSummary

log = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_API_URL = "https://api.github.com"


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous function in a thread pool.

    This prevents blocking the event loop when calling synchronous
    PyGithub methods.
    """
    return await asyncio.to_thread(func)


def _to_hosting_error(action: str, error: GithubException) -> HostingServiceError:
    return HostingServiceError(
        f"GitHub API request to {action} failed: {error.data or error}",
        status_code=error.status,
        response_text=str(error.data) if error.data else None,
    )


class GitHubDriver(HostingDriver):
    """GitHub implementation using PyGithub library."""

    hosting_service_name = "GitHub"

    def __init__(
        self,
        repository: RepositoryInfo,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize GitHub driver.

        Args:
            repository: Repository coordinates parsed from the origin remote
            token: GitHub personal access token
            base_url: API base URL (GitHub Enterprise); derived from the
                repository host when omitted
            timeout: Request timeout in seconds
        """
        super().__init__(repository, token)
        self.base_url = (base_url or self.default_api_url(repository.host)).rstrip("/")
        self.timeout = timeout
        self._client: Github | None = None
        self._repo: GHRepository | None = None

    @staticmethod
    def default_api_url(host: str) -> str:
        if host == "github.com":
            return DEFAULT_API_URL
        return f"https://{host}/api/v3"

    async def _get_repo(self) -> GHRepository:
        if self._repo is None:

            def _connect() -> tuple[Github, GHRepository]:
                auth = Auth.Token(self.token) if self.token else None
                client = Github(auth=auth, base_url=self.base_url, timeout=int(self.timeout))
                return client, client.get_repo(self.repository.full_name)

            try:
                self._client, self._repo = await _run_sync(_connect)
            except GithubException as e:
                log.error("github_connect_failed", repository=self.repository.full_name, error=str(e))
                raise _to_hosting_error(f"open {self.repository.full_name}", e) from e
            log.debug("github_connected", base_url=self.base_url, repository=self.repository.full_name)
        return self._repo

    async def close(self) -> None:
        """Close GitHub client."""
        if self._client:
            await _run_sync(self._client.close)
            self._client = None
            self._repo = None

    async def _list_open_pull_requests(self, base: str, head: str | None = None) -> list[PullRequestSummary]:
        log.debug("list_pull_requests", base=base, head=head)
        repo = await self._get_repo()

        def _list() -> list[GHPullRequest]:
            if head is None:
                return list(repo.get_pulls(state="open", base=base))
            return list(repo.get_pulls(state="open", base=base, head=f"{self.repository.owner}:{head}"))

        try:
            pulls = await _run_sync(_list)
        except GithubException as e:
            log.error("github_list_pull_requests_failed", base=base, head=head, error=str(e))
            raise _to_hosting_error("list pull requests", e) from e

        return [PullRequestSummary(number=pull.number, title=pull.title or "") for pull in pulls]

    async def _update_pull_request_base(self, number: int, base: str) -> None:
        repo = await self._get_repo()

        def _update() -> None:
            repo.get_pull(number).edit(base=base)

        try:
            await _run_sync(_update)
        except GithubException as e:
            log.error("github_update_pull_request_failed", number=number, error=str(e))
            raise _to_hosting_error(f"update pull request #{number}", e) from e

    async def _squash_merge(self, number: int, title: str, body: str) -> str:
        repo = await self._get_repo()

        def _merge() -> str:
            status = repo.get_pull(number).merge(commit_title=title, commit_message=body, merge_method="squash")
            if not status.merged:
                raise HostingServiceError(f"GitHub did not merge pull request #{number}: {status.message}")
            return status.sha

        try:
            return await _run_sync(_merge)
        except GithubException as e:
            log.error("github_merge_failed", number=number, error=str(e))
            raise _to_hosting_error(f"merge pull request #{number}", e) from e
