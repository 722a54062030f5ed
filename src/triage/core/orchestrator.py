"""Run orchestration: fetch the open issues, then triage them."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from triage.config import is_local_test
from triage.core.engine import TriageEngine, utc_now
from triage.core.fetcher import IssueFetcher
from triage.models import TriageResult
from triage.sync.github_client import DEFAULT_TIMEOUT, GITHUB_API_BASE, GitHubClient

if TYPE_CHECKING:
    from triage.config import TriageConfig
    from triage.sync.base import IssueTracker

logger = logging.getLogger(__name__)


async def run_triage(
    config: TriageConfig,
    tracker: IssueTracker,
    dry_run: bool | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> TriageResult:
    """Run one triage pass over a repository.

    A failed fetch is reported like an empty repository; the error is
    kept on the result. This function never raises for tracker errors.

    Args:
        config: Run configuration.
        tracker: Issue tracker client.
        dry_run: Skip comments and updates. None reads the local-test
            indicator from the environment.
        clock: Source of the reference time.

    Returns:
        TriageResult with per-issue outcomes and counts.
    """
    if dry_run is None:
        dry_run = is_local_test()

    def _log(message: str, level: int = logging.INFO) -> None:
        if config.show_logs:
            logger.log(level, message)

    if dry_run:
        _log("Dry run: no comments will be posted and no issues will be changed", logging.DEBUG)

    fetched = await IssueFetcher(tracker).fetch(config.repo_owner, config.repo_name)

    if not fetched.issues:
        _log(f"No issues found for {config.full_repo}")
        return TriageResult(total_issues=0, fetch_error=fetched.error)

    _log(f"Total issues for {config.full_repo}: {len(fetched.issues)}")

    engine = TriageEngine(tracker, config, dry_run=dry_run, clock=clock)
    return await engine.run(fetched.issues)


async def async_main(
    config: TriageConfig,
    token: str,
    dry_run: bool | None = None,
    base_url: str = GITHUB_API_BASE,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> TriageResult:
    """Open a GitHub client and run triage with it."""
    async with GitHubClient(token=token, base_url=base_url, timeout=timeout) as client:
        return await run_triage(config, client, dry_run=dry_run)
