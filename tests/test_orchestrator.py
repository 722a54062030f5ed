"""Integration tests for a complete triage run."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import FakeTracker, make_issue
from triage.config import TriageConfig
from triage.core.orchestrator import async_main, run_triage
from triage.models import TriageResult
from triage.sync.github_client import GitHubClientError


class TestRunTriage:
    """Tests for run_triage end to end against a fake tracker."""

    @pytest.mark.asyncio
    async def test_three_issue_scenario(self, config: TriageConfig, clock, caplog: pytest.LogCaptureFixture) -> None:
        """Fetch, triage and report for a small repository."""
        tracker = FakeTracker(
            [
                make_issue(1, 10),
                make_issue(2, 40, author="alice"),
                make_issue(3, 70, author="bob"),
                make_issue(4, 200, is_pull_request=True),
            ]
        )

        with caplog.at_level(logging.INFO):
            result = await run_triage(config, tracker, dry_run=False, clock=clock)

        assert (result.marked_stale, result.closed) == (1, 1)
        assert result.total_issues == 3
        assert tracker.comments == [
            (2, "Stale after 40 days, cc @alice"),
            (3, "Closing after 70 days, cc @bob"),
        ]
        assert tracker.updates == [(2, {"labels": ["STALE"]}), (3, {"state": "closed"})]
        assert "Total issues for owner/repo: 3" in caplog.text
        assert "Issues marked as stale: 1" in caplog.text
        assert "Issues closed down: 1" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_failure_reported_as_no_issues(
        self, config: TriageConfig, clock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A broken fetch looks like an empty repository but keeps the cause."""
        tracker = FakeTracker([make_issue(2, 40)])
        tracker.fail_repository = GitHubClientError("GitHub API error 500: oops")

        with caplog.at_level(logging.INFO):
            result = await run_triage(config, tracker, dry_run=False, clock=clock)

        assert result.total_issues == 0
        assert result.outcomes == []
        assert result.fetch_error == "GitHub API error 500: oops"
        assert tracker.comments == []
        assert "Error while fetching issues: GitHub API error 500: oops" in caplog.text
        assert "No issues found for owner/repo" in caplog.text
        assert "No old issues found" not in caplog.text

    @pytest.mark.asyncio
    async def test_empty_repository(self, config: TriageConfig, clock) -> None:
        """An empty repository is a successful no-op."""
        result = await run_triage(config, FakeTracker(), dry_run=False, clock=clock)

        assert result.fetch_error is None
        assert result.total_issues == 0

    @pytest.mark.asyncio
    async def test_local_test_env_enables_dry_run(
        self, config: TriageConfig, clock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """GH_ACTION_LOCAL_TEST turns off comments and updates."""
        monkeypatch.setenv("GH_ACTION_LOCAL_TEST", "1")
        tracker = FakeTracker([make_issue(2, 40), make_issue(3, 70)])

        result = await run_triage(config, tracker, clock=clock)

        assert (result.marked_stale, result.closed) == (1, 1)
        assert tracker.comments == []
        assert tracker.updates == []

    @pytest.mark.asyncio
    async def test_without_local_test_env_runs_live(self, config: TriageConfig, clock) -> None:
        """Without the indicator the tracker is called."""
        tracker = FakeTracker([make_issue(2, 40)])

        await run_triage(config, tracker, clock=clock)

        assert len(tracker.comments) == 1

    @pytest.mark.asyncio
    async def test_per_issue_failures_do_not_raise(self, config: TriageConfig, clock) -> None:
        """The run completes even when every candidate fails."""
        tracker = FakeTracker([make_issue(2, 40), make_issue(3, 70)])
        tracker.fail_comment_on = {2, 3}

        result = await run_triage(config, tracker, dry_run=False, clock=clock)

        assert result.failed == 2
        assert result.acted is False


class TestAsyncMain:
    """Tests for the client wiring."""

    @pytest.mark.asyncio
    async def test_opens_client_and_runs(self, config: TriageConfig) -> None:
        """A GitHub client is opened with the given settings and passed on."""
        expected = TriageResult(total_issues=5)
        client = MagicMock()

        with (
            patch("triage.core.orchestrator.GitHubClient") as client_cls,
            patch("triage.core.orchestrator.run_triage", new_callable=AsyncMock) as mock_run,
        ):
            client_cls.return_value.__aenter__.return_value = client
            mock_run.return_value = expected

            result = await async_main(config, token="t0k3n", dry_run=True, base_url="https://ghe.example.com/api/v3")

        assert result is expected
        client_cls.assert_called_once_with(token="t0k3n", base_url="https://ghe.example.com/api/v3", timeout=30.0)
        mock_run.assert_awaited_once_with(config, client, dry_run=True)
