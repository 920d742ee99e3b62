import asyncio
import time
from typing import Any

import httpx

from visual_ci.config import DEFAULT_GITHUB_API_URL
from visual_ci.logging import get_logger
from visual_ci.schemas import (
    GitHubBranch,
    GitHubDeployment,
    GitHubDeploymentStatus,
    GitHubPage,
    GitHubWorkflowRun,
)

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100
MAX_RATE_LIMIT_ATTEMPTS = 3


def has_next_page(response: httpx.Response) -> bool:
    """Whether a list response has more pages, per its ``Link`` header."""
    return 'rel="next"' in response.headers.get("link", "")


class GitHubClient:
    """Client for the GitHub REST API, authenticated with a workflow token."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = 30.0,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                follow_redirects=True,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _is_rate_limited(resp: httpx.Response) -> bool:
        if resp.status_code not in (httpx.codes.FORBIDDEN, httpx.codes.TOO_MANY_REQUESTS):
            return False
        return resp.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in resp.headers

    @staticmethod
    def _rate_limit_wait(resp: httpx.Response) -> float:
        retry_after = resp.headers.get("retry-after")
        if retry_after and retry_after.isdigit():
            wait = float(retry_after)
        else:
            reset = resp.headers.get("x-ratelimit-reset")
            wait = float(reset) - time.time() if reset and reset.isdigit() else 1.0
        return max(wait, 1.0)

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, waiting out rate limits before raising for status."""
        client = await self._get_client()
        for attempt in range(1, MAX_RATE_LIMIT_ATTEMPTS + 1):
            resp = await client.request(method, url, **kwargs)
            if self._is_rate_limited(resp) and attempt < MAX_RATE_LIMIT_ATTEMPTS:
                wait = self._rate_limit_wait(resp)
                logger.warning(
                    "github_rate_limited",
                    method=method,
                    url=url,
                    attempt=attempt,
                    wait_seconds=wait,
                )
                await asyncio.sleep(wait)
                continue
            resp.raise_for_status()
            return resp
        raise AssertionError("unreachable")

    async def get_branch(self, owner: str, repo: str, branch: str) -> GitHubBranch:
        """Get a branch and its head commit."""
        resp = await self._make_request("GET", f"/repos/{owner}/{repo}/branches/{branch}")
        return GitHubBranch.model_validate(resp.json())

    async def list_deployments(
        self, owner: str, repo: str, sha: str, per_page: int = MAX_PAGE_SIZE
    ) -> GitHubPage[GitHubDeployment]:
        """List the first page of deployments for a commit."""
        resp = await self._make_request(
            "GET",
            f"/repos/{owner}/{repo}/deployments",
            params={"sha": sha, "per_page": per_page},
        )
        return GitHubPage[GitHubDeployment](
            items=[GitHubDeployment.model_validate(d) for d in resp.json()],
            has_next_page=has_next_page(resp),
        )

    async def list_deployment_statuses(
        self, owner: str, repo: str, deployment_id: int, per_page: int = MAX_PAGE_SIZE
    ) -> GitHubPage[GitHubDeploymentStatus]:
        """List the first page of statuses for a deployment, newest first."""
        resp = await self._make_request(
            "GET",
            f"/repos/{owner}/{repo}/deployments/{deployment_id}/statuses",
            params={"per_page": per_page},
        )
        return GitHubPage[GitHubDeploymentStatus](
            items=[GitHubDeploymentStatus.model_validate(s) for s in resp.json()],
            has_next_page=has_next_page(resp),
        )

    async def get_workflow_run(self, owner: str, repo: str, run_id: int) -> GitHubWorkflowRun:
        resp = await self._make_request("GET", f"/repos/{owner}/{repo}/actions/runs/{run_id}")
        return GitHubWorkflowRun.model_validate(resp.json())

    async def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_id: int | str,
        head_sha: str | None = None,
        event: str | None = None,
        per_page: int = 20,
    ) -> list[GitHubWorkflowRun]:
        """List recent runs of a workflow, newest first."""
        params: dict[str, Any] = {"per_page": per_page}
        if head_sha:
            params["head_sha"] = head_sha
        if event:
            params["event"] = event

        resp = await self._make_request(
            "GET",
            f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/runs",
            params=params,
        )
        return [GitHubWorkflowRun.model_validate(r) for r in resp.json().get("workflow_runs", [])]

    async def create_workflow_dispatch(
        self,
        owner: str,
        repo: str,
        workflow_id: int | str,
        ref: str,
        inputs: dict[str, str] | None = None,
    ) -> None:
        """Trigger a workflow_dispatch event for a workflow on a ref.

        GitHub answers 204 without telling which run was created.
        """
        await self._make_request(
            "POST",
            f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
            json={"ref": ref, "inputs": inputs or {}},
        )
        logger.info(
            "github_workflow_dispatched",
            owner=owner,
            repo=repo,
            workflow_id=workflow_id,
            ref=ref,
        )
