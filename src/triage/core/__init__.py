"""Core triage logic."""

from triage.core.engine import TriageEngine, days_since, is_older_than, render_message
from triage.core.fetcher import IssueFetcher
from triage.core.orchestrator import async_main, run_triage

__all__ = [
    "IssueFetcher",
    "TriageEngine",
    "async_main",
    "days_since",
    "is_older_than",
    "render_message",
    "run_triage",
]
