"""Pydantic schemas for GitHub API responses.

These schemas cover the parts of the REST API used for deployments, branches
and workflow runs. Unknown fields are kept (``extra="allow"``).

GitHub API Documentation: https://docs.github.com/en/rest
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class GitHubCommitRef(BaseModel):
    """Commit reference embedded in a branch response."""

    model_config = ConfigDict(extra="allow")

    sha: str = Field(..., description="Commit SHA")
    url: str | None = Field(None, description="API URL for the commit")


class GitHubBranch(BaseModel):
    """Branch info from GET /repos/{owner}/{repo}/branches/{branch}."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="Branch name")
    commit: GitHubCommitRef = Field(..., description="Head commit of the branch")
    protected: bool = Field(False, description="Whether the branch is protected")


class GitHubDeployment(BaseModel):
    """Deployment from GET /repos/{owner}/{repo}/deployments."""

    model_config = ConfigDict(extra="allow")

    id: int = Field(..., description="Deployment ID")
    sha: str | None = Field(None, description="Commit SHA that was deployed")
    ref: str | None = Field(None, description="Ref that was deployed")
    task: str | None = Field(None, description="Deployment task, usually 'deploy'")
    environment: str = Field(..., description="Environment name")
    original_environment: str | None = Field(None, description="Environment name at creation")
    production_environment: bool | None = Field(None, description="Whether it is production")
    transient_environment: bool | None = Field(None, description="Whether it is transient")
    description: str | None = Field(None, description="Free-form description")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = Field(None, description="Last update timestamp")


class GitHubDeploymentStatus(BaseModel):
    """Deployment status from GET /repos/{owner}/{repo}/deployments/{id}/statuses.

    ``state`` is one of error, failure, inactive, in_progress, queued,
    pending or success.
    """

    model_config = ConfigDict(extra="allow")

    id: int = Field(..., description="Deployment status ID")
    state: str = Field(..., description="Status state")
    environment: str | None = Field(None, description="Environment name")
    environment_url: str | None = Field(None, description="URL of the deployed environment")
    log_url: str | None = Field(None, description="URL of the deployment logs")
    description: str | None = Field(None, description="Free-form description")
    created_at: datetime = Field(..., description="Creation timestamp")


class GitHubWorkflowRun(BaseModel):
    """Workflow run from GET /repos/{owner}/{repo}/actions/runs/{run_id}."""

    model_config = ConfigDict(extra="allow")

    id: int = Field(..., description="Workflow run ID")
    workflow_id: int = Field(..., description="ID of the workflow this run belongs to")
    name: str | None = Field(None, description="Workflow name")
    head_sha: str = Field(..., description="Commit SHA the run is for")
    head_branch: str | None = Field(None, description="Branch the run is for")
    event: str | None = Field(None, description="Event that triggered the run")
    status: str | None = Field(None, description="queued, in_progress, completed, ...")
    conclusion: str | None = Field(None, description="success, failure, cancelled, ...")
    html_url: str = Field(..., description="Web URL for the run")
    created_at: datetime | None = Field(None, description="Creation timestamp")


class GitHubPage(BaseModel, Generic[T]):
    """One page of a list endpoint.

    ``has_next_page`` is derived from the ``Link`` response header.
    """

    items: list[T] = Field(default_factory=list)
    has_next_page: bool = False
