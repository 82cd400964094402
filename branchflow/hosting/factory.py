"""Hosting driver selection."""

from pathlib import Path

import structlog

from branchflow.config.settings import BranchflowSettings
from branchflow.enums import HostingDriverType
from branchflow.git.discovery import GitDiscovery, detect_driver_type
from branchflow.git.exceptions import InvalidGitUrlError, NoRemotesError, UnsupportedHostError
from branchflow.hosting.base import HostingDriver
from branchflow.hosting.gitea import GiteaDriver
from branchflow.hosting.github import GitHubDriver

log = structlog.get_logger(__name__)


def create_hosting_driver(settings: BranchflowSettings, repo_root: Path) -> HostingDriver | None:
    """Create the driver for the service the configured remote points to.

    The driver configured in settings wins over detection from the remote
    host. Returns None when the repository has no such remote, its URL names
    no hosted repository (a local path, for example) or its host is unknown
    and no driver is configured; shipping then merges locally.

    Raises:
        UnsupportedHostError: If ``hosting.driver`` names no known driver.
    """
    hosting = settings.hosting
    try:
        repository = GitDiscovery(repo_root).parse_repository(settings.remote, hostname_override=hosting.origin_hostname)
    except NoRemotesError:
        log.debug("hosting_driver_skipped", reason="no remote", remote=settings.remote)
        return None
    except InvalidGitUrlError as e:
        log.debug("hosting_driver_skipped", reason="not a hosted url", error=e.message)
        return None

    driver_type = hosting.driver or detect_driver_type(repository.host)
    if driver_type is None:
        log.debug("hosting_driver_skipped", reason="unknown host", host=repository.host)
        return None

    token = hosting.api_token.get_secret_value() if hosting.api_token else None
    log.debug("hosting_driver_selected", driver=str(driver_type), repository=repository.full_name)

    if driver_type == HostingDriverType.GITHUB:
        return GitHubDriver(repository, token=token, base_url=hosting.base_url, timeout=hosting.timeout)
    if driver_type == HostingDriverType.GITEA:
        return GiteaDriver(repository, token=token, base_url=hosting.base_url, timeout=hosting.timeout)
    raise UnsupportedHostError(repository.host)
