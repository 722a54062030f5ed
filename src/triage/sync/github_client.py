"""GitHub API client using httpx for issue triage.

This module provides an async HTTP client for the GitHub REST API
operations triage needs: repository lookup, issue listing, comments
and issue updates. Uses GITHUB_TOKEN environment variable for
authentication when no token is passed explicitly.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any

import httpx

from triage.models import Issue, RepositoryInfo
from triage.sync.base import IssueState, IssueTracker, SortDirection, SortField

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT = 30.0


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""


class GitHubAuthError(GitHubClientError):
    """Authentication with GitHub failed."""


class GitHubRateLimitError(GitHubClientError):
    """GitHub API rate limit exceeded."""

    def __init__(self, message: str, reset_at: int | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at  # Unix timestamp when rate limit resets


class GitHubNotFoundError(GitHubClientError):
    """Requested resource not found."""


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware datetime."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def issue_from_json(data: dict[str, Any]) -> Issue:
    """Convert an issue payload from the REST API into an Issue."""
    user = data.get("user") or {}
    return Issue(
        number=data["number"],
        updated_at=parse_timestamp(data["updated_at"]),
        author=user.get("login", ""),
        labels=[label["name"] for label in data.get("labels", [])],
        # The issues endpoint returns PRs too; they carry a pull_request key
        is_pull_request=data.get("pull_request") is not None,
        title=data.get("title", ""),
        url=data.get("html_url", ""),
    )


class GitHubClient(IssueTracker):
    """Async GitHub API client for issue triage.

    Errors are mapped to GitHubClientError subclasses. Requests are
    never retried: a failed call is reported to the caller as-is.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str = GITHUB_API_BASE,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub token. If None, reads from GITHUB_TOKEN env var.
            base_url: API root, override for GitHub Enterprise.
            timeout: Request timeout in seconds, None to wait forever.

        Raises:
            GitHubAuthError: If no token is provided or found in environment.
        """
        self.base_url = base_url
        self.timeout = timeout

        self._token = token or os.getenv("GITHUB_TOKEN")
        if not self._token:
            raise GitHubAuthError("No GitHub token provided. Set GITHUB_TOKEN environment variable or pass token parameter.")

        # Build headers - never log the token!
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitHubClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("GitHubClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a single HTTP request and map error responses.

        Args:
            method: HTTP method (GET, POST, PATCH, etc.).
            endpoint: API endpoint (e.g., "/repos/owner/repo/issues/1").
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            GitHubAuthError: If authentication fails.
            GitHubRateLimitError: If rate limit is exceeded.
            GitHubNotFoundError: If resource is not found.
            GitHubClientError: For other API and transport errors.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise GitHubClientError(f"Request timeout: {method} {endpoint}") from e
        except httpx.HTTPError as e:
            raise GitHubClientError(f"HTTP error: {e}") from e

        if response.status_code == 401:
            raise GitHubAuthError("GitHub authentication failed. Check your token.")

        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            reset_at = int(response.headers.get("X-RateLimit-Reset", "0"))
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded. Resets at {reset_at}",
                reset_at=reset_at,
            )

        if response.status_code == 404:
            raise GitHubNotFoundError(f"Resource not found: {endpoint}")

        if response.status_code >= 400:
            error_body = response.text
            logger.debug(f"GitHub API error {response.status_code}: {error_body}")
            raise GitHubClientError(f"GitHub API error {response.status_code}: {error_body[:200]}")

        return response

    # =========================================================================
    # Repository Operations
    # =========================================================================

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Get repository metadata.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            RepositoryInfo with the open issue count.
        """
        response = await self._request("GET", f"/repos/{owner}/{repo}")
        data = response.json()
        return RepositoryInfo(
            full_name=data.get("full_name", f"{owner}/{repo}"),
            open_issues_count=data.get("open_issues_count", 0),
        )

    # =========================================================================
    # Issue Operations
    # =========================================================================

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
        """List one page of repository issues (pull requests included)."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/issues",
            params={
                "state": state,
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
                "page": page,
            },
        )
        return [issue_from_json(item) for item in response.json()]

    async def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> int:
        """Add a comment to an issue.

        Args:
            owner: Repository owner.
            repo: Repository name.
            issue_number: The issue number.
            body: Comment body text.

        Returns:
            Comment ID.
        """
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )
        return response.json()["id"]

    async def update_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        *,
        state: IssueState | None = None,
        labels: list[str] | None = None,
    ) -> None:
        """Update an issue.

        Labels replace the issue's existing label set.

        Args:
            owner: Repository owner.
            repo: Repository name.
            issue_number: The issue number.
            state: New state, e.g. "closed".
            labels: Full list of label names to set.
        """
        payload: dict[str, Any] = {}
        if state is not None:
            payload["state"] = state
        if labels is not None:
            payload["labels"] = labels

        await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/issues/{issue_number}",
            json=payload,
        )
