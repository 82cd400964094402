"""Gitea hosting driver using direct REST API calls."""

from typing import Any

import httpx
import structlog

from branchflow.exceptions import HostingServiceError
from branchflow.git.models import RepositoryInfo
from branchflow.hosting.base import HostingDriver, PullRequestSummary
from branchflow.utils.retry import async_retry

log = structlog.get_logger(__name__)

PAGE_SIZE = 50


class GiteaDriver(HostingDriver):
    """Gitea implementation using direct REST API calls.

    The Gitea API cannot filter pull requests by head branch, so open pull
    requests are listed page by page and filtered locally.
    """

    hosting_service_name = "Gitea"

    def __init__(
        self,
        repository: RepositoryInfo,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Gitea driver.

        Args:
            repository: Repository coordinates parsed from the origin remote
            token: API token
            base_url: Gitea base URL (e.g., https://gitea.example.com);
                derived from the repository host when omitted
            timeout: Request timeout in seconds
            client: Preconfigured HTTP client, used as-is
        """
        super().__init__(repository, token)
        self.base_url = (base_url or f"https://{repository.host}").rstrip("/")
        self.api_base = f"{self.base_url}/api/v1"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.api_base,
            headers={
                "Authorization": f"token {self.token or ''}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.repository.owner}/{self.repository.repo}"

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GiteaDriver":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @async_retry(max_attempts=3, backoff_factor=2.0, exceptions=(httpx.TransportError,))
    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def _list_open_pull_requests(self, base: str, head: str | None = None) -> list[PullRequestSummary]:
        log.debug("list_pull_requests", base=base, head=head)
        pulls: list[dict[str, Any]] = []
        page = 1
        try:
            while True:
                batch = await self._get_json(
                    f"{self._repo_path}/pulls", params={"state": "open", "limit": PAGE_SIZE, "page": page}
                )
                pulls.extend(batch)
                if len(batch) < PAGE_SIZE:
                    break
                page += 1
        except httpx.HTTPError as e:
            log.error("gitea_list_pull_requests_failed", base=base, head=head, error=str(e))
            raise self._to_hosting_error("list pull requests", e) from e

        return [
            PullRequestSummary(number=pull["number"], title=pull.get("title") or "")
            for pull in pulls
            if pull["base"]["ref"] == base and (head is None or pull["head"]["ref"] == head)
        ]

    async def _update_pull_request_base(self, number: int, base: str) -> None:
        try:
            response = await self._client.patch(f"{self._repo_path}/pulls/{number}", json={"base": base})
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.error("gitea_update_pull_request_failed", number=number, error=str(e))
            raise self._to_hosting_error(f"update pull request #{number}", e) from e

    async def _squash_merge(self, number: int, title: str, body: str) -> str:
        data = {"Do": "squash", "MergeTitleField": title, "MergeMessageField": body}
        try:
            response = await self._client.post(f"{self._repo_path}/pulls/{number}/merge", json=data)
            response.raise_for_status()
            # The merge endpoint returns no body; the merge commit is on the pull request
            pull = await self._get_json(f"{self._repo_path}/pulls/{number}")
        except httpx.HTTPError as e:
            log.error("gitea_merge_failed", number=number, error=str(e))
            raise self._to_hosting_error(f"merge pull request #{number}", e) from e

        sha = pull.get("merge_commit_sha")
        if not sha:
            raise HostingServiceError(f"Gitea did not report a merge commit for pull request #{number}")
        return sha

    @staticmethod
    def _to_hosting_error(action: str, error: httpx.HTTPError) -> HostingServiceError:
        if isinstance(error, httpx.HTTPStatusError):
            return HostingServiceError(
                f"Gitea API request to {action} failed",
                status_code=error.response.status_code,
                response_text=error.response.text,
            )
        return HostingServiceError(f"Gitea API request to {action} failed: {error}")
