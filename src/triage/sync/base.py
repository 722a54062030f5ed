"""Base issue tracker interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from triage.models import Issue, RepositoryInfo

IssueState = Literal["open", "closed", "all"]
SortField = Literal["created", "updated", "comments"]
SortDirection = Literal["asc", "desc"]


class IssueTracker(ABC):
    """Abstract base class for issue tracker clients.

    The triage core only talks to the tracker through these four calls.
    """

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Get repository metadata, including the open issue count."""

    @abstractmethod
    async def list_issues(
        self,
        owner: str,
        repo: str,
        *,
        state: IssueState = "open",
        sort: SortField = "updated",
        direction: SortDirection = "desc",
        per_page: int = 100,
        page: int = 1,
    ) -> list[Issue]:
        """List one page of issues.

        Args:
            owner: Repository owner.
            repo: Repository name.
            state: Issue state filter.
            sort: Field to sort by.
            direction: Sort direction.
            per_page: Page size (the tracker caps this at 100).
            page: 1-based page number.

        Returns:
            Issues on the page, pull requests included.
        """

    @abstractmethod
    async def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> int:
        """Post a comment on an issue and return the comment ID."""

    @abstractmethod
    async def update_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        *,
        state: IssueState | None = None,
        labels: list[str] | None = None,
    ) -> None:
        """Update an issue's state and/or replace its labels."""
