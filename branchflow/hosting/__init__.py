"""Code-hosting drivers."""

from branchflow.hosting.base import (
    HostingDriver,
    MergePullRequestOptions,
    PullRequestInfo,
    PullRequestSummary,
    split_commit_message,
)
from branchflow.hosting.factory import create_hosting_driver
from branchflow.hosting.gitea import GiteaDriver
from branchflow.hosting.github import GitHubDriver

__all__ = [
    "GitHubDriver",
    "GiteaDriver",
    "HostingDriver",
    "MergePullRequestOptions",
    "PullRequestInfo",
    "PullRequestSummary",
    "create_hosting_driver",
    "split_commit_message",
]
