import pytest

from tests.conftest import WORKFLOW_ID, pull_request_payload
from tests.mocks.github import make_workflow_run
from visual_ci.ensure_base import ensure_base_tests_exist, safe_ensure_base_tests_exist
from visual_ci.errors import BaseWorkflowRunError
from visual_ci.schemas import CodeChangeEvent

DISPATCHED_RUN_ID = 1001


@pytest.fixture
def run_ensure(pr_event, action_context, mock_github, mock_test_runs, no_sleep):
    async def _run(event=None, base="base-sha", safe=False):
        fn = safe_ensure_base_tests_exist if safe else ensure_base_tests_exist
        return await fn(
            event=event or pr_event,
            base=base,
            context=action_context,
            github=mock_github,
            test_runs=mock_test_runs,
            workflow_timeout=600,
            workflow_poll_interval=5,
        )

    return _run


@pytest.mark.asyncio
class TestEnsureBaseTestsExist:
    async def test_push_event_has_no_base(self, run_ensure, mock_test_runs):
        event = CodeChangeEvent(type="push", payload={"after": "abc"})

        result = await run_ensure(event=event)

        assert result.sha_to_compare_against is None
        assert mock_test_runs.lookups == []

    async def test_missing_base(self, run_ensure, mock_test_runs):
        result = await run_ensure(base=None)

        assert result.sha_to_compare_against is None
        assert mock_test_runs.lookups == []

    async def test_existing_test_run_for_base(self, run_ensure, mock_test_runs, mock_github):
        mock_test_runs.add_test_run("base-sha")

        result = await run_ensure()

        assert result.sha_to_compare_against == "base-sha"
        assert mock_github.dispatches == []

    async def test_existing_test_run_for_moved_base_branch(
        self, run_ensure, mock_test_runs, mock_github, capsys
    ):
        mock_github.branches["main"] = "new-main-sha"
        mock_test_runs.add_test_run("new-main-sha")

        result = await run_ensure()

        assert result.sha_to_compare_against == "new-main-sha"
        assert mock_test_runs.lookups == ["base-sha", "new-main-sha"]
        assert mock_github.dispatches == []

        out = capsys.readouterr().out
        assert "::warning::Pull request event received base-sha as the base commit" in out
        assert "main is now pointing to new-main-sha" in out

    async def test_dispatches_workflow_and_waits(self, run_ensure, mock_github, capsys):
        mock_github.branches["main"] = "base-sha"
        mock_github.run_status_polls[DISPATCHED_RUN_ID] = [
            ("queued", None),
            ("in_progress", None),
            ("completed", "success"),
        ]

        result = await run_ensure()

        assert result.sha_to_compare_against == "base-sha"
        assert mock_github.dispatches == [{"workflow_id": WORKFLOW_ID, "ref": "main", "inputs": {}}]
        # No warning when the base branch has not moved
        assert "::warning::" not in capsys.readouterr().out

    async def test_reuses_running_workflow(self, run_ensure, mock_github):
        mock_github.branches["main"] = "base-sha"
        mock_github.add_workflow_run(
            make_workflow_run(900, workflow_id=WORKFLOW_ID, head_sha="base-sha", status="queued")
        )
        mock_github.run_status_polls[900] = [("completed", "success")]

        result = await run_ensure()

        assert result.sha_to_compare_against == "base-sha"
        assert mock_github.dispatches == []

    async def test_failed_base_workflow_raises(self, run_ensure, mock_github):
        mock_github.branches["main"] = "base-sha"
        mock_github.run_status_polls[DISPATCHED_RUN_ID] = [("completed", "failure")]

        with pytest.raises(BaseWorkflowRunError) as exc_info:
            await run_ensure()

        message = str(exc_info.value)
        assert "Comparing against screenshots taken on main" in message
        assert f"workflow run [{DISPATCHED_RUN_ID}] did not complete successfully" in message
        assert f"actions/runs/{DISPATCHED_RUN_ID}" in message

    async def test_dispatched_run_not_found(self, run_ensure, mock_github, capsys):
        mock_github.branches["main"] = "base-sha"
        mock_github.dispatch_creates_run = False

        result = await run_ensure()

        assert result.sha_to_compare_against is None
        assert len(mock_github.dispatches) == 1
        out = capsys.readouterr().out
        assert "::warning::Could not retrieve dispatched workflow run." in out
        assert "Will not perform diffs against base-sha." in out

    async def test_missing_base_ref(self, run_ensure, mock_github):
        payload = pull_request_payload()
        del payload["pull_request"]["base"]["ref"]
        event = CodeChangeEvent(type="pull_request", payload=payload)

        result = await run_ensure(event=event)

        assert result.sha_to_compare_against is None
        assert mock_github.dispatches == []


@pytest.mark.asyncio
class TestSafeEnsureBaseTestsExist:
    async def test_passes_through_result(self, run_ensure, mock_test_runs):
        mock_test_runs.add_test_run("base-sha")

        result = await run_ensure(safe=True)

        assert result.sha_to_compare_against == "base-sha"

    async def test_failure_becomes_warning(self, run_ensure, mock_github, capsys):
        mock_github.branches["main"] = "base-sha"
        mock_github.run_status_polls[DISPATCHED_RUN_ID] = [("completed", "cancelled")]

        result = await run_ensure(safe=True)

        assert result.sha_to_compare_against is None
        assert (
            "::warning::Error while running tests on base base-sha. "
            "No diffs will be reported for this run." in capsys.readouterr().out
        )

    async def test_api_failure_becomes_warning(self, run_ensure, mock_test_runs, capsys):
        mock_test_runs.should_fail = True

        result = await run_ensure(safe=True)

        assert result.sha_to_compare_against is None
        assert "::warning::Error while running tests on base" in capsys.readouterr().out
