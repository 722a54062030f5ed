"""Shared fixtures for triage tests."""

from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime, timedelta

import pytest

from triage.config import TriageConfig
from triage.models import Issue, RepositoryInfo
from triage.sync.base import IssueTracker
from triage.sync.github_client import GitHubClientError

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class FakeTracker(IssueTracker):
    """In-memory tracker that records every call.

    ``items`` holds the listing in tracker order, pull requests included.
    Failures are injected by issue number or page number.
    """

    def __init__(self, items: list[Issue] | None = None) -> None:
        self.items: list[Issue] = items or []
        self.fail_repository: Exception | None = None
        self.fail_pages: set[int] = set()
        self.fail_comment_on: set[int] = set()
        self.fail_update_on: set[int] = set()
        self.comments: list[tuple[int, str]] = []
        self.updates: list[tuple[int, dict]] = []
        self.events: list[str] = []

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        if self.fail_repository is not None:
            raise self.fail_repository
        return RepositoryInfo(full_name=f"{owner}/{repo}", open_issues_count=len(self.items))

    async def list_issues(self, owner, repo, *, state="open", sort="updated", direction="desc", per_page=100, page=1):
        self.events.append(f"start:{page}")
        await asyncio.sleep(0)
        if page in self.fail_pages:
            raise GitHubClientError(f"GitHub API error 502: page {page}")
        self.events.append(f"end:{page}")
        start = (page - 1) * per_page
        return self.items[start : start + per_page]

    async def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> int:
        if issue_number in self.fail_comment_on:
            raise GitHubClientError("GitHub API error 500: comment failed")
        self.comments.append((issue_number, body))
        return len(self.comments)

    async def update_issue(self, owner, repo, issue_number, *, state=None, labels=None) -> None:
        if issue_number in self.fail_update_on:
            raise GitHubClientError("GitHub API error 422: update failed")
        changes: dict = {}
        if state is not None:
            changes["state"] = state
        if labels is not None:
            changes["labels"] = labels
        self.updates.append((issue_number, changes))


def make_issue(
    number: int,
    days_ago: float,
    author: str = "octocat",
    labels: list[str] | None = None,
    is_pull_request: bool = False,
) -> Issue:
    """Build an issue last updated ``days_ago`` days before NOW."""
    return Issue(
        number=number,
        updated_at=NOW - timedelta(days=days_ago),
        author=author,
        labels=labels or [],
        is_pull_request=is_pull_request,
    )


@pytest.fixture
def tracker() -> FakeTracker:
    """Create an empty fake tracker."""
    return FakeTracker()


@pytest.fixture
def issue_factory():
    """Factory for issues relative to the fixed reference time."""
    return make_issue


@pytest.fixture
def clock():
    """Clock frozen at the reference time."""
    return lambda: NOW


@pytest.fixture
def config() -> TriageConfig:
    """Config with stale after 30 days and close after 60 days."""
    return TriageConfig(
        repo_owner="owner",
        repo_name="repo",
        stale_after=30,
        close_after=60,
        stale_comment="Stale after %DAYS_OLD% days, cc @%AUTHOR%",
        close_comment="Closing after %DAYS_OLD% days, cc @%AUTHOR%",
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate tests from the runner's environment and working directory."""
    names = ["GH_ACTION_LOCAL_TEST", "GITHUB_ACTIONS", "GITHUB_REPOSITORY", "GITHUB_TOKEN"]
    names += [name for name in os.environ if name.startswith("INPUT_")]
    for name in names:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
