"""Fetch every open issue of a repository.

Pages are requested concurrently: the repository's open issue count
determines how many pages exist, every page request is started, and
the results are joined in page order.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING

from triage.models import FetchResult, Issue

if TYPE_CHECKING:
    from triage.sync.base import IssueTracker

logger = logging.getLogger(__name__)

# GitHub caps per_page at 100
ISSUES_PER_PAGE = 100


def is_issue(issue: Issue) -> bool:
    """Check that a listing entry is a real issue and not a pull request."""
    return not issue.is_pull_request


class IssueFetcher:
    """Retrieves the complete open issue set of a repository."""

    def __init__(self, tracker: IssueTracker, per_page: int = ISSUES_PER_PAGE) -> None:
        self.tracker = tracker
        self.per_page = per_page

    async def _get_issues_for_page(self, owner: str, repo: str, page: int) -> list[Issue]:
        issues = await self.tracker.list_issues(
            owner,
            repo,
            state="open",
            sort="updated",
            direction="desc",
            per_page=self.per_page,
            page=page,
        )
        return [issue for issue in issues if is_issue(issue)]

    async def fetch(self, owner: str, repo: str) -> FetchResult:
        """Fetch all open issues, excluding pull requests.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            FetchResult with issues in page order, or with an error and
            no issues if the repository lookup or any page failed.
        """
        try:
            repository = await self.tracker.get_repository(owner, repo)
            page_count = math.ceil(repository.open_issues_count / self.per_page)
            logger.debug(f"{repository.full_name}: {repository.open_issues_count} open issues and PRs, {page_count} page(s)")

            # The first failing page cancels the others
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self._get_issues_for_page(owner, repo, page)) for page in range(1, page_count + 1)]
        except Exception as e:
            error = e.exceptions[0] if isinstance(e, ExceptionGroup) else e
            logger.error(f"Error while fetching issues: {error}")
            return FetchResult(issues=[], error=str(error))

        issues: list[Issue] = []
        for task in tasks:
            issues.extend(task.result())
        return FetchResult(issues=issues)

    async def fetch_all_open_issues(self, owner: str, repo: str) -> list[Issue]:
        """Fetch all open issues, returning an empty list on failure."""
        result = await self.fetch(owner, repo)
        return result.issues
