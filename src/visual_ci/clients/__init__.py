"""Clients for external services."""

from .github import GitHubClient
from .test_runs import TestRunsClient

__all__ = [
    "GitHubClient",
    "TestRunsClient",
]
