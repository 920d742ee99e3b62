"""Make sure a pull request's base commit has a test run to diff against.

If the base commit has no test run yet, the current workflow is run on the
base branch and awaited. Only the head of a branch can be dispatched, so the
commit compared against may end up being the current head of the base branch
rather than the exact base commit of the pull request.
"""

from dataclasses import dataclass

from visual_ci import annotations
from visual_ci.clients.github import GitHubClient
from visual_ci.clients.test_runs import TestRunsClient
from visual_ci.context import ActionContext
from visual_ci.errors import BaseWorkflowRunError
from visual_ci.logging import get_logger
from visual_ci.schemas import CodeChangeEvent
from visual_ci.workflows import (
    WORKFLOW_POLL_SECONDS,
    WORKFLOW_TIMEOUT_SECONDS,
    get_current_workflow_id,
    get_or_start_new_workflow_run,
    wait_for_workflow_completion,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnsureBaseResult:
    sha_to_compare_against: str | None


NO_BASE = EnsureBaseResult(sha_to_compare_against=None)


def _warn(event: str, message: str, **fields) -> None:
    logger.warning(event, message=message, **fields)
    annotations.warning(message)


async def ensure_base_tests_exist(
    event: CodeChangeEvent,
    base: str | None,
    context: ActionContext,
    github: GitHubClient,
    test_runs: TestRunsClient,
    workflow_timeout: float = WORKFLOW_TIMEOUT_SECONDS,
    workflow_poll_interval: float = WORKFLOW_POLL_SECONDS,
) -> EnsureBaseResult:
    """Return the commit to compare against, running tests on the base branch if needed.

    Args:
        event: Event that triggered the workflow.
        base: Base commit SHA from the pull request event.
        context: Current workflow run.
        github: GitHub API client.
        test_runs: Test-results API client.

    Raises:
        BaseWorkflowRunError: If the workflow run on the base branch did not succeed.
    """
    # Only pull requests have a base to compare against
    if not event.is_pull_request or not base:
        return NO_BASE

    owner, repo = context.owner, context.repo
    base_ref = event.base_ref
    logger.debug("ensure_base_started", base=base, base_ref=base_ref)

    test_run = await test_runs.get_latest_test_run(base)
    if test_run is not None:
        logger.info("base_tests_exist", commit_sha=base, test_run_id=test_run.id)
        return EnsureBaseResult(sha_to_compare_against=base)

    if not base_ref:
        _warn(
            "base_ref_missing",
            f"Pull request event has no base branch. Will not perform diffs against {base}.",
            base=base,
        )
        return NO_BASE

    workflow_id = await get_current_workflow_id(context, github)

    branch = await github.get_branch(owner, repo, base_ref)
    current_base_sha = branch.commit.sha

    logger.debug(
        "base_branch_resolved",
        owner=owner,
        repo=repo,
        base=base,
        base_ref=base_ref,
        current_base_sha=current_base_sha,
    )
    if base != current_base_sha:
        _warn(
            "base_branch_moved",
            f"Pull request event received {base} as the base commit but {base_ref} "
            f"is now pointing to {current_base_sha}. Will use {current_base_sha} for tests. "
            "Re-running the tests will likely fix this.",
            base=base,
            base_ref=base_ref,
            current_base_sha=current_base_sha,
        )

    test_run = await test_runs.get_latest_test_run(current_base_sha)
    if test_run is not None:
        logger.info("base_tests_exist", commit_sha=current_base_sha, test_run_id=test_run.id)
        return EnsureBaseResult(sha_to_compare_against=current_base_sha)

    workflow_run = await get_or_start_new_workflow_run(
        owner=owner,
        repo=repo,
        workflow_id=workflow_id,
        ref=base_ref,
        commit_sha=current_base_sha,
        client=github,
    )
    if workflow_run is None:
        _warn(
            "base_workflow_run_missing",
            "Could not retrieve dispatched workflow run. "
            f"Will not perform diffs against {current_base_sha}.",
            current_base_sha=current_base_sha,
        )
        return NO_BASE

    logger.info("waiting_on_workflow_run", url=workflow_run.html_url)
    final_run = await wait_for_workflow_completion(
        owner=owner,
        repo=repo,
        workflow_run_id=workflow_run.workflow_run_id,
        client=github,
        timeout=workflow_timeout,
        poll_interval=workflow_poll_interval,
    )

    if final_run.status != "completed" or final_run.conclusion != "success":
        raise BaseWorkflowRunError(
            f"Comparing against screenshots taken on {base_ref}, but the corresponding "
            f"workflow run [{final_run.id}] did not complete successfully. "
            f"See: {final_run.html_url}"
        )

    return EnsureBaseResult(sha_to_compare_against=current_base_sha)


async def safe_ensure_base_tests_exist(
    event: CodeChangeEvent,
    base: str | None,
    context: ActionContext,
    github: GitHubClient,
    test_runs: TestRunsClient,
    workflow_timeout: float = WORKFLOW_TIMEOUT_SECONDS,
    workflow_poll_interval: float = WORKFLOW_POLL_SECONDS,
) -> EnsureBaseResult:
    """Like ensure_base_tests_exist, but any failure degrades to "no base"."""
    try:
        return await ensure_base_tests_exist(
            event=event,
            base=base,
            context=context,
            github=github,
            test_runs=test_runs,
            workflow_timeout=workflow_timeout,
            workflow_poll_interval=workflow_poll_interval,
        )
    except Exception as e:
        logger.exception("ensure_base_failed", base=base, error=str(e))
        _warn(
            "base_tests_unavailable",
            f"Error while running tests on base {base}. No diffs will be reported for this run.",
            base=base,
        )
        return NO_BASE
