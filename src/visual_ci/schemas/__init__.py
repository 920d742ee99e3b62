"""Pydantic schemas for visual-ci.

This module provides typed data structures for:
- GitHub API responses (branches, deployments, workflow runs)
- Test-results API responses
- Workflow trigger events

Usage:
    from visual_ci.schemas import GitHubDeployment, TestRun
"""

from .events import CodeChangeEvent, CodeChangeEventType
from .github import (
    GitHubBranch,
    GitHubCommitRef,
    GitHubDeployment,
    GitHubDeploymentStatus,
    GitHubPage,
    GitHubWorkflowRun,
)
from .test_runs import TestRun

__all__ = [
    "CodeChangeEvent",
    "CodeChangeEventType",
    "GitHubBranch",
    "GitHubCommitRef",
    "GitHubDeployment",
    "GitHubDeploymentStatus",
    "GitHubPage",
    "GitHubWorkflowRun",
    "TestRun",
]
