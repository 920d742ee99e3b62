"""Dispatching and waiting on GitHub Actions workflow runs."""

import asyncio
from dataclasses import dataclass
import time

from visual_ci.clients.github import GitHubClient
from visual_ci.context import ActionContext
from visual_ci.errors import ConfigurationError, WorkflowTimeoutError
from visual_ci.logging import get_logger
from visual_ci.schemas import GitHubWorkflowRun

logger = get_logger(__name__)

WORKFLOW_TIMEOUT_SECONDS = 60 * 60
WORKFLOW_POLL_SECONDS = 10.0

# A dispatched run takes a few seconds to show up in the runs listing
DISPATCH_LOOKUP_ATTEMPTS = 10
DISPATCH_LOOKUP_DELAY_SECONDS = 3.0

ACTIVE_STATUSES = frozenset({"requested", "queued", "pending", "waiting", "in_progress"})


@dataclass(frozen=True)
class WorkflowRunRef:
    """A workflow run that is running or will run for a commit."""

    workflow_run_id: int
    html_url: str

    @classmethod
    def from_run(cls, run: GitHubWorkflowRun) -> "WorkflowRunRef":
        return cls(workflow_run_id=run.id, html_url=run.html_url)


def is_reusable(run: GitHubWorkflowRun) -> bool:
    """Whether a run is still going or already succeeded."""
    if run.status in ACTIVE_STATUSES:
        return True
    return run.status == "completed" and run.conclusion == "success"


async def get_current_workflow_id(context: ActionContext, client: GitHubClient) -> int:
    """Get the ID of the workflow the current run belongs to."""
    if context.run_id is None:
        raise ConfigurationError("GITHUB_RUN_ID is not set")

    run = await client.get_workflow_run(context.owner, context.repo, context.run_id)
    logger.debug("current_workflow_resolved", run_id=run.id, workflow_id=run.workflow_id)
    return run.workflow_id


async def get_or_start_new_workflow_run(
    owner: str,
    repo: str,
    workflow_id: int,
    ref: str,
    commit_sha: str,
    client: GitHubClient,
    lookup_attempts: int = DISPATCH_LOOKUP_ATTEMPTS,
    lookup_delay: float = DISPATCH_LOOKUP_DELAY_SECONDS,
) -> WorkflowRunRef | None:
    """Find a usable run of the workflow for a commit, or dispatch a new one.

    Returns None if the dispatched run never shows up in the runs listing.
    """
    existing_runs = await client.list_workflow_runs(owner, repo, workflow_id, head_sha=commit_sha)
    for run in existing_runs:
        if is_reusable(run):
            logger.info(
                "workflow_run_reused",
                workflow_run_id=run.id,
                status=run.status,
                conclusion=run.conclusion,
                commit_sha=commit_sha,
            )
            return WorkflowRunRef.from_run(run)

    known_ids = {run.id for run in existing_runs}
    await client.create_workflow_dispatch(owner, repo, workflow_id, ref)

    for attempt in range(1, lookup_attempts + 1):
        await asyncio.sleep(lookup_delay)
        runs = await client.list_workflow_runs(
            owner, repo, workflow_id, head_sha=commit_sha, event="workflow_dispatch"
        )
        new_run = next((run for run in runs if run.id not in known_ids), None)
        if new_run is not None:
            logger.info(
                "workflow_run_started",
                workflow_run_id=new_run.id,
                commit_sha=commit_sha,
                attempt=attempt,
            )
            return WorkflowRunRef.from_run(new_run)

    logger.warning(
        "workflow_run_not_found",
        workflow_id=workflow_id,
        ref=ref,
        commit_sha=commit_sha,
        attempts=lookup_attempts,
    )
    return None


async def wait_for_workflow_completion(
    owner: str,
    repo: str,
    workflow_run_id: int,
    client: GitHubClient,
    timeout: float = WORKFLOW_TIMEOUT_SECONDS,
    poll_interval: float = WORKFLOW_POLL_SECONDS,
) -> GitHubWorkflowRun:
    """Poll a workflow run until it completes.

    Raises:
        WorkflowTimeoutError: If the run is still not completed after ``timeout`` seconds.
    """
    start = time.monotonic()
    while True:
        run = await client.get_workflow_run(owner, repo, workflow_run_id)
        if run.status == "completed":
            logger.info(
                "workflow_run_completed",
                workflow_run_id=run.id,
                conclusion=run.conclusion,
            )
            return run

        elapsed = time.monotonic() - start
        if elapsed >= timeout:
            raise WorkflowTimeoutError(
                f"Workflow run {workflow_run_id} did not complete within {timeout:.0f} seconds "
                f"(last status: {run.status}). See: {run.html_url}"
            )

        logger.debug("workflow_run_pending", workflow_run_id=run.id, status=run.status)
        await asyncio.sleep(poll_interval)
