"""Triage decision engine.

Classifies issues by inactivity, posts the templated notification and
applies the matching state transition:

- older than ``stale_after`` days: comment, then add the stale label
- older than ``close_after`` days (when ``close_after > stale_after``):
  comment, then close

Each candidate is processed on its own; a failure on one issue is
logged and the run moves on to the next.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from triage.models import Issue, IssueOutcome, TriageAction, TriageResult
from triage.sync.github_client import GitHubClientError

if TYPE_CHECKING:
    from triage.config import TriageConfig
    from triage.sync.base import IssueTracker

logger = logging.getLogger(__name__)

DAYS_OLD_TOKEN = "%DAYS_OLD%"
AUTHOR_TOKEN = "%AUTHOR%"

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def is_older_than(updated_at: datetime, days: int, now: datetime) -> bool:
    """Check if a timestamp lies strictly more than ``days`` before ``now``."""
    return as_utc(updated_at) < as_utc(now) - days * ONE_DAY


def days_since(updated_at: datetime, now: datetime) -> int:
    """Age in whole days, rounded half up, for display in messages."""
    days = abs((as_utc(now) - as_utc(updated_at)) / ONE_DAY)
    return math.floor(days + 0.5)


def render_message(template: str, days_old: int, author: str) -> str:
    """Fill in the message template.

    Only the first occurrence of each token is substituted.
    """
    message = template.replace(DAYS_OLD_TOKEN, str(days_old), 1)
    return message.replace(AUTHOR_TOKEN, author, 1)


class TriageEngine:
    """Marks stale issues and closes long-inactive ones."""

    def __init__(
        self,
        tracker: IssueTracker,
        config: TriageConfig,
        dry_run: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the engine.

        Args:
            tracker: Client used for comments and issue updates.
            config: Thresholds, templates and label for this run.
            dry_run: If True, skip comment and update calls. Logs at INFO and
                above match a live run.
            clock: Source of the reference time, read once per run.
        """
        self.tracker = tracker
        self.config = config
        self.dry_run = dry_run
        self.clock = clock

    def _log(self, message: str, level: int = logging.INFO) -> None:
        if self.config.show_logs:
            logger.log(level, message)

    # =========================================================================
    # Classification
    # =========================================================================

    def filter_old_issues(self, issues: Iterable[Issue], now: datetime) -> list[Issue]:
        """Select the candidates: issues inactive for more than stale_after days."""
        return [issue for issue in issues if is_older_than(issue.updated_at, self.config.stale_after, now)]

    def is_closing_down(self, issue: Issue, now: datetime) -> bool:
        """Check if a candidate should be closed rather than marked stale."""
        return self.config.close_after > self.config.stale_after and is_older_than(issue.updated_at, self.config.close_after, now)

    def classify(self, issue: Issue, now: datetime) -> TriageAction:
        """Get the transition to apply to a candidate."""
        return TriageAction.CLOSE if self.is_closing_down(issue, now) else TriageAction.STALE

    def generate_message(self, issue: Issue, action: TriageAction, now: datetime) -> str:
        """Render the comment for a candidate."""
        template = self.config.close_comment if action == TriageAction.CLOSE else self.config.stale_comment
        return render_message(template, days_since(issue.updated_at, now), issue.author)

    # =========================================================================
    # Side effects
    # =========================================================================

    async def _post_comment(self, issue: Issue, message: str) -> bool:
        if self.dry_run:
            self._log(f"[DRY RUN] Would add comment to #{issue.number}: {message[:50]}...", logging.DEBUG)
            return True

        try:
            await self.tracker.create_comment(
                self.config.repo_owner,
                self.config.repo_name,
                issue.number,
                message,
            )
        except GitHubClientError as e:
            logger.error(f"Could not post a comment in issue #{issue.number}: {e}")
            return False
        return True

    async def _update_issue(self, issue: Issue, close_issue: bool) -> bool:
        if close_issue:
            changes: dict = {"state": "closed"}
        else:
            # Full label list is sent; an existing stale label is not deduplicated
            changes = {"labels": [*issue.labels, self.config.stale_label]}

        if self.dry_run:
            self._log(f"[DRY RUN] Would update #{issue.number}: {changes}", logging.DEBUG)
            return True

        try:
            await self.tracker.update_issue(
                self.config.repo_owner,
                self.config.repo_name,
                issue.number,
                **changes,
            )
        except GitHubClientError as e:
            logger.error(f"Could not {'close' if close_issue else 'update'} issue #{issue.number}: {e}")
            return False
        return True

    async def process_issue(self, issue: Issue, now: datetime) -> IssueOutcome:
        """Comment on a candidate, then mark it stale or close it.

        The state transition is only attempted once the comment is posted.

        Args:
            issue: Candidate issue.
            now: Reference time of the run.

        Returns:
            IssueOutcome describing what happened.
        """
        action = self.classify(issue, now)
        outcome = IssueOutcome(
            issue_number=issue.number,
            action=action,
            success=False,
            days_old=days_since(issue.updated_at, now),
        )

        message = self.generate_message(issue, action, now)
        if not await self._post_comment(issue, message):
            outcome.error = f"Could not post comment for #{issue.number}."
            return outcome

        if not await self._update_issue(issue, action == TriageAction.CLOSE):
            outcome.error = f"Could not update issue #{issue.number}."
            return outcome

        outcome.success = True
        return outcome

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self, issues: list[Issue]) -> TriageResult:
        """Triage a set of issues.

        Candidates are processed one at a time. Never raises: every
        failure is recorded on the result and logged as a warning.

        Args:
            issues: Open issues fetched at the start of the run.

        Returns:
            TriageResult with one outcome per candidate.
        """
        now = self.clock()
        result = TriageResult(total_issues=len(issues))

        for issue in self.filter_old_issues(issues, now):
            try:
                outcome = await self.process_issue(issue, now)
            except Exception as e:
                outcome = IssueOutcome(
                    issue_number=issue.number,
                    action=self.classify(issue, now),
                    success=False,
                    error=f"Unexpected error on issue #{issue.number}: {e}",
                )

            if not outcome.success:
                logger.warning(outcome.error)
            result.outcomes.append(outcome)

        self.report(result)
        return result

    def report(self, result: TriageResult) -> None:
        """Log the aggregate counts of a run."""
        if result.marked_stale:
            self._log(f"Issues marked as stale: {result.marked_stale}")
        if result.closed:
            self._log(f"Issues closed down: {result.closed}")

        if not result.acted:
            self._log("No old issues found, sweet!")
