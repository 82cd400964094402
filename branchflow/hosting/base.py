"""
Abstract base class for code-hosting drivers.

A hosting driver merges pull requests through the API of the service the
origin remote points to. The base class holds the behaviour every service
shares (which pull request belongs to a branch, how the commit message is
split, re-targeting child pull requests); subclasses only talk to their API.
"""

from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel, Field

from branchflow.exceptions import HostingServiceError
from branchflow.git.models import RepositoryInfo

log = structlog.get_logger(__name__)


class PullRequestSummary(BaseModel):
    """The parts of an open pull request the drivers need."""

    number: int
    title: str = ""


class PullRequestInfo(BaseModel):
    """Whether and how a branch can be shipped through the hosting API.

    Attributes:
        can_merge_with_api: A token is configured and exactly one open pull
            request exists for the branch
        default_commit_message: ``"<title> (#<number>)"`` of that pull request
        pull_request_number: Its number, 0 when there is none
    """

    can_merge_with_api: bool = False
    default_commit_message: str = ""
    pull_request_number: int = 0


class MergePullRequestOptions(BaseModel):
    """Parameters of a pull-request merge.

    A ``pull_request_number`` of 0 means the driver looks the pull request up
    from ``branch`` and ``parent_branch``.
    """

    branch: str
    parent_branch: str
    commit_message: str = Field(..., min_length=1)
    pull_request_number: int = 0


def split_commit_message(message: str) -> tuple[str, str]:
    """Split a commit message into title (first line) and body (the rest)."""
    title, _, body = message.strip().partition("\n")
    return title.strip(), body.strip()


class HostingDriver(ABC):
    """Abstract base class for hosting driver implementations.

    Subclasses translate their library's or transport's exceptions into
    HostingServiceError so that callers only ever see branchflow errors.

    Attributes:
        repository: Coordinates of the hosted repository
        token: API token, None when not configured
    """

    hosting_service_name: str = ""

    def __init__(self, repository: RepositoryInfo, token: str | None = None) -> None:
        self.repository = repository
        self.token = token.strip() if token else None

    @property
    def repository_url(self) -> str:
        """Browser URL of the repository."""
        return self.repository.web_url

    async def load_pull_request_info(self, branch: str, parent_branch: str) -> PullRequestInfo:
        """Describe the pull request that would ship ``branch`` into ``parent_branch``.

        Raises:
            HostingServiceError: If the lookup fails.
        """
        if not self.token:
            return PullRequestInfo()

        pull_requests = await self._list_open_pull_requests(base=parent_branch, head=branch)
        if len(pull_requests) != 1:
            log.debug("pull_request_not_unique", branch=branch, count=len(pull_requests))
            return PullRequestInfo()

        pull_request = pull_requests[0]
        return PullRequestInfo(
            can_merge_with_api=True,
            default_commit_message=f"{pull_request.title} (#{pull_request.number})",
            pull_request_number=pull_request.number,
        )

    async def merge_pull_request(self, options: MergePullRequestOptions) -> str:
        """Squash-merge the pull request of a branch.

        Open pull requests based on the branch are re-targeted to the parent
        first, because the hosting service closes them once the branch is
        deleted.

        Returns:
            SHA of the merge commit on the parent branch.

        Raises:
            HostingServiceError: If there is not exactly one pull request, or
                any API call fails.
        """
        await self._rebind_child_pull_requests(options.branch, options.parent_branch)

        number = options.pull_request_number or await self._find_pull_request_number(
            options.branch, options.parent_branch
        )
        title, body = split_commit_message(options.commit_message)

        log.info("merge_pull_request", service=self.hosting_service_name, number=number, branch=options.branch)
        sha = await self._squash_merge(number, title, body)
        log.info("pull_request_merged", number=number, sha=sha)
        return sha

    async def _rebind_child_pull_requests(self, branch: str, parent_branch: str) -> None:
        for child in await self._list_open_pull_requests(base=branch):
            log.info("update_pull_request_base", number=child.number, base=parent_branch)
            await self._update_pull_request_base(child.number, parent_branch)

    async def _find_pull_request_number(self, branch: str, parent_branch: str) -> int:
        pull_requests = await self._list_open_pull_requests(base=parent_branch, head=branch)
        if not pull_requests:
            raise HostingServiceError(
                f"cannot merge via {self.hosting_service_name} since there is no pull request"
            )
        if len(pull_requests) > 1:
            raise HostingServiceError(
                f"cannot merge via {self.hosting_service_name} since there are multiple pull requests"
            )
        return pull_requests[0].number

    async def close(self) -> None:
        """Release network resources."""

    @abstractmethod
    async def _list_open_pull_requests(self, base: str, head: str | None = None) -> list[PullRequestSummary]:
        """List open pull requests into ``base``, optionally only those from ``head``."""
        pass

    @abstractmethod
    async def _update_pull_request_base(self, number: int, base: str) -> None:
        pass

    @abstractmethod
    async def _squash_merge(self, number: int, title: str, body: str) -> str:
        """Squash-merge a pull request and return the resulting commit SHA."""
        pass
