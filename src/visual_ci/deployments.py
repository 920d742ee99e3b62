"""Waiting for a deployment of a commit to get a URL to test against."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
import time
from typing import Protocol, TypeVar

import httpx

from visual_ci.clients.github import MAX_PAGE_SIZE, GitHubClient
from visual_ci.errors import DeploymentError, DeploymentTimeoutError
from visual_ci.logging import get_logger
from visual_ci.schemas import GitHubDeployment

logger = get_logger(__name__)

TIMEOUT_SECONDS = 30 * 60
MIN_POLL_SECONDS = 1.0
MAX_POLL_SECONDS = 10.0

FAILED_STATES = frozenset({"error", "failure"})

EXPECTED_PERMISSIONS_BLOCK = """permissions:
  actions: write
  contents: read
  deployments: read
  issues: write
  pull-requests: write
  statuses: read"""


class _Timestamped(Protocol):
    created_at: datetime


TimestampedT = TypeVar("TimestampedT", bound=_Timestamped)


@dataclass(frozen=True)
class DeploymentLookup:
    """Result of one poll: the URL if ready, plus what was seen for error messages."""

    deployment_url: str | None
    available_deployments: list[GitHubDeployment] | None


def join_with_or(names: Sequence[str]) -> str:
    """Join names for a sentence: "a", "a or b", "a, b, or c"."""
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} or {names[1]}"
    return f"{', '.join(names[:-1])}, or {names[-1]}"


def _environment_filter_text(allowed_environments: Sequence[str]) -> str:
    return join_with_or([f"'{e}'" for e in allowed_environments])


def describe_deployments(deployments: Sequence[GitHubDeployment] | None) -> str:
    if not deployments:
        return "none"
    return ", ".join(
        f'deployment {d.id} (environment name: "{d.environment}", '
        f'description: "{"null" if d.description is None else d.description}")'
        for d in deployments
    )


def find_latest(items: Sequence[TimestampedT]) -> TimestampedT | None:
    """Item with the greatest created_at; the earliest listed wins ties."""
    if not items:
        return None
    return max(items, key=lambda item: item.created_at)


async def get_deployment_url(
    owner: str,
    repo: str,
    commit_sha: str,
    client: GitHubClient,
    allowed_environments: Sequence[str] | None = None,
) -> DeploymentLookup:
    """Check once whether a deployment of the commit has a URL.

    Raises:
        DeploymentError: If deployments can't be listed, results exceed one page,
            the allowed environments match more than one deployment, or the
            deployment failed.
    """
    try:
        deployments = await client.list_deployments(owner, repo, commit_sha, per_page=MAX_PAGE_SIZE)
    except httpx.HTTPError as e:
        logger.error("deployments_list_failed", commit_sha=commit_sha, error=str(e))
        raise DeploymentError(
            f"Failed to list deployments for commit {commit_sha}.\n\n"
            "Note: if using 'use-deployment-url' then you must provide permissions for the "
            "action to read deployments. To do this edit the 'permissions:' block in your "
            "workflow file to include 'deployments: read'. Your permissions block should "
            "look like:\n\n" + EXPECTED_PERMISSIONS_BLOCK
        ) from e

    logger.debug("deployments_listed", count=len(deployments.items))

    if deployments.has_next_page:
        raise DeploymentError(
            f"More than {MAX_PAGE_SIZE} deployments found for commit {commit_sha}. "
            f"At most {MAX_PAGE_SIZE} deployments per commit are supported."
        )

    logger.debug(
        "deployments_found",
        deployments=[
            {
                "id": d.id,
                "environment": d.environment,
                "original_environment": d.original_environment,
                "production_environment": d.production_environment,
            }
            for d in deployments.items
        ],
        allowed_environments=allowed_environments,
    )

    matching = [
        d
        for d in deployments.items
        if allowed_environments is None or d.environment in allowed_environments
    ]

    if len(matching) > 1:
        if allowed_environments is None:
            logger.warning(
                "multiple_deployments_found",
                commit_sha=commit_sha,
                deployments=describe_deployments(matching),
                hint="Specify an environment name using the 'allowed-environments' input.",
            )
        else:
            raise DeploymentError(
                f"More than one deployment found for commit {commit_sha} for an environment "
                f"named {_environment_filter_text(allowed_environments)}."
            )

    latest = find_latest(matching)
    if latest is None:
        return DeploymentLookup(deployment_url=None, available_deployments=deployments.items)

    logger.debug("deployment_status_check", deployment_id=latest.id)

    statuses = await client.list_deployment_statuses(
        owner, repo, latest.id, per_page=MAX_PAGE_SIZE
    )
    if statuses.has_next_page:
        raise DeploymentError(
            f"More than {MAX_PAGE_SIZE} deployment statuses found for deployment {latest.id} "
            f"of commit {commit_sha}. At most {MAX_PAGE_SIZE} deployment statuses per "
            "deployment are supported."
        )

    success = next((s for s in statuses.items if s.state == "success"), None)
    if success is not None and success.environment_url is not None:
        return DeploymentLookup(
            deployment_url=success.environment_url,
            available_deployments=deployments.items,
        )

    latest_status = find_latest(statuses.items)
    if latest_status is not None and latest_status.state in FAILED_STATES:
        raise DeploymentError(
            f"Deployment {latest.id} failed with status {latest_status.state}. "
            "Cannot test against a failed deployment."
        )

    # Still deploying
    return DeploymentLookup(deployment_url=None, available_deployments=deployments.items)


async def wait_for_deployment_url(
    owner: str,
    repo: str,
    commit_sha: str,
    client: GitHubClient,
    allowed_environments: Sequence[str] | None = None,
    timeout: float = TIMEOUT_SECONDS,
    min_poll: float = MIN_POLL_SECONDS,
    max_poll: float = MAX_POLL_SECONDS,
) -> str:
    """Poll until a successful deployment of the commit exposes an environment URL.

    The poll interval starts at ``min_poll`` and grows by ``min_poll`` after
    each attempt, up to ``max_poll``.

    Raises:
        DeploymentTimeoutError: If no URL is found within ``timeout`` seconds.
        DeploymentError: If a poll hits an unrecoverable problem.
    """
    start = time.monotonic()
    poll_interval = min_poll
    deployments_found: list[GitHubDeployment] | None = None

    while time.monotonic() - start < timeout:
        lookup = await get_deployment_url(
            owner=owner,
            repo=repo,
            commit_sha=commit_sha,
            client=client,
            allowed_environments=allowed_environments,
        )
        deployments_found = lookup.available_deployments
        if lookup.deployment_url is not None:
            logger.info("deployment_url_found", url=lookup.deployment_url, commit_sha=commit_sha)
            return lookup.deployment_url

        await asyncio.sleep(poll_interval)
        poll_interval = min(max_poll, poll_interval + min_poll)

    environment_filter = (
        f" for an environment named {_environment_filter_text(allowed_environments)}"
        if allowed_environments is not None
        else ""
    )
    raise DeploymentTimeoutError(
        f"Timed out after waiting {timeout:.0f} seconds for a successful deployment URL "
        f"for commit {commit_sha}{environment_filter}. "
        f"Available deployments: {describe_deployments(deployments_found)}."
    )
