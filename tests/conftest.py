"""Shared fixtures for visual-ci tests."""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
import structlog

from tests.mocks.github import MockGitHubClient, make_workflow_run
from tests.mocks.results_api import MockTestRunsClient
from visual_ci.config import get_settings
from visual_ci.context import ActionContext
from visual_ci.schemas import CodeChangeEvent

OWNER = "acme"
REPO = "webapp"
WORKFLOW_ID = 42
CURRENT_RUN_ID = 1000


def pull_request_payload(
    base_sha: str = "base-sha", base_ref: str = "main", head_sha: str = "head-sha"
) -> dict:
    return {
        "action": "synchronize",
        "number": 7,
        "pull_request": {
            "number": 7,
            "base": {"ref": base_ref, "sha": base_sha},
            "head": {"ref": "feature", "sha": head_sha},
        },
    }


@pytest.fixture(autouse=True)
def reset_state():
    """Settings are cached and logging is global; reset both around each test."""
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()
    yield
    get_settings.cache_clear()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def no_sleep():
    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def mock_github():
    github = MockGitHubClient()
    # The run executing this action
    github.add_workflow_run(
        make_workflow_run(
            CURRENT_RUN_ID,
            workflow_id=WORKFLOW_ID,
            head_sha="merge-sha",
            status="in_progress",
            conclusion=None,
        )
    )
    return github


@pytest.fixture
def mock_test_runs():
    return MockTestRunsClient()


@pytest.fixture
def action_context():
    return ActionContext(
        owner=OWNER,
        repo=REPO,
        run_id=CURRENT_RUN_ID,
        sha="merge-sha",
        event_name="pull_request",
        payload=pull_request_payload(),
    )


@pytest.fixture
def pr_event(action_context):
    return CodeChangeEvent(type="pull_request", payload=action_context.payload)


@pytest.fixture
def actions_env(tmp_path, monkeypatch):
    """A GitHub Actions step environment for a pull request."""
    event_path = tmp_path / "event.json"
    event_path.write_text(json.dumps(pull_request_payload()), encoding="utf-8")
    output_path = tmp_path / "github_output"
    output_path.write_text("", encoding="utf-8")

    env = {
        "GITHUB_TOKEN": "ghs_test",
        "GITHUB_REPOSITORY": f"{OWNER}/{REPO}",
        "GITHUB_RUN_ID": str(CURRENT_RUN_ID),
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": str(event_path),
        "GITHUB_SHA": "merge-sha",
        "GITHUB_OUTPUT": str(output_path),
        "VISUAL_CI_API_TOKEN": "api-token",
        "LOG_FORMAT": "json",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return {"event_path": event_path, "output_path": output_path, **env}
