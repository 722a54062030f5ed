"""Data models for issue triage.

These models represent issues as read from the tracker and the
results produced by a single triage run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class Issue:
    """An open issue as returned by the tracker's listing endpoint.

    GitHub returns pull requests from the same endpoint; those carry
    ``is_pull_request=True`` and are never triaged.
    """

    number: int
    updated_at: datetime
    author: str
    labels: list[str] = field(default_factory=list)
    is_pull_request: bool = False
    title: str = ""
    url: str = ""


@dataclass
class RepositoryInfo:
    """Repository metadata needed to plan the paginated fetch."""

    full_name: str
    open_issues_count: int  # includes open pull requests


@dataclass
class FetchResult:
    """Outcome of fetching every open issue of a repository."""

    issues: list[Issue] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the fetch completed without error."""
        return self.error is None

    def __len__(self) -> int:
        return len(self.issues)


class TriageAction(str, Enum):
    """State transition applied to a candidate issue."""

    STALE = "stale"
    CLOSE = "close"


@dataclass
class IssueOutcome:
    """Result of processing a single candidate issue."""

    issue_number: int
    action: TriageAction
    success: bool
    days_old: int = 0
    error: str | None = None


@dataclass
class TriageResult:
    """Aggregate result of one triage run."""

    total_issues: int = 0
    outcomes: list[IssueOutcome] = field(default_factory=list)
    fetch_error: str | None = None

    @property
    def marked_stale(self) -> int:
        """Number of issues successfully marked as stale."""
        return sum(1 for o in self.outcomes if o.success and o.action == TriageAction.STALE)

    @property
    def closed(self) -> int:
        """Number of issues successfully closed."""
        return sum(1 for o in self.outcomes if o.success and o.action == TriageAction.CLOSE)

    @property
    def failed(self) -> int:
        """Number of candidates whose comment or update failed."""
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def acted(self) -> bool:
        """Check if any issue was marked stale or closed."""
        return bool(self.marked_stale or self.closed)
