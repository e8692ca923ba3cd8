"""GitHub REST API client for issues, labels and repositories."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..models.config import DEFAULT_API_URL
from ..models.remote import IssueUpdate, RemoteIssue, RemoteLabel, RemoteRepository
from ..utils import to_github_timestamp

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str]
ModelT = TypeVar("ModelT", bound=BaseModel)

API_VERSION = "2022-11-28"
USER_AGENT = "issueboard"
PER_PAGE = 100
DEFAULT_RETRY_AFTER = 60.0


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthError(GitHubClientError):
    """Authentication failed (token missing, invalid or expired)."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Resource not found."""

    pass


class GitHubForbiddenError(GitHubClientError):
    """Permission denied."""

    pass


class GitHubRateLimitError(GitHubClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str, retry_after: float = DEFAULT_RETRY_AFTER) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class GitHubNetworkError(GitHubClientError):
    """The request never produced a response (connection failure, timeout)."""

    pass


def parse_repo_ref(repo: str) -> tuple[str, str]:
    """Split "owner/name" into its parts.

    Raises:
        ValueError: If the reference is not exactly two non-empty segments
    """
    parts = repo.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository '{repo}'. Use 'owner/repo'")
    return parts[0], parts[1]


def _retry_after_seconds(response: httpx.Response) -> float:
    """How long GitHub asks us to wait before calling again."""
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return max(1.0, float(retry_after))
        except ValueError:
            pass
    reset = response.headers.get("X-RateLimit-Reset")
    if reset:
        try:
            return max(1.0, int(reset) - time.time())
        except ValueError:
            pass
    return DEFAULT_RETRY_AFTER


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in response.text.lower()


class GitHubClient:
    """GitHub REST API client.

    Provides a thin wrapper around the issues, labels and repos endpoints
    with:
    - Bearer authentication from a token provider, consulted on every request
    - Enterprise support via custom base_url
    - Typed errors, including the retry-after duration on rate limits

    The client never retries; callers decide what to do with an error.
    """

    def __init__(
        self,
        token: str | TokenProvider,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: Bearer token, or a callable returning the current token
            base_url: API root (default: https://api.github.com)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if isinstance(token, str):
            static_token = token
            self._token_provider: TokenProvider = lambda: static_token
        else:
            self._token_provider = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @classmethod
    def from_environment(cls, base_url: str = DEFAULT_API_URL, timeout: float = 30.0) -> GitHubClient:
        """Create a client from environment variables or gh CLI.

        Tries in order:
        1. GITHUB_TOKEN environment variable
        2. gh auth token (if gh CLI is installed and authenticated)

        Raises:
            GitHubAuthError: If no token is available
        """
        token = os.environ.get("GITHUB_TOKEN")
        if token:
            logger.debug("Using token from GITHUB_TOKEN environment variable")
            return cls(token, base_url, timeout)

        try:
            result = subprocess.run(
                ["gh", "auth", "token"],
                capture_output=True,
                text=True,
                check=True,
            )
            token = result.stdout.strip()
            if token:
                logger.debug("Using token from gh CLI")
                return cls(token, base_url, timeout)
        except (subprocess.CalledProcessError, FileNotFoundError):
            logger.debug("gh CLI not available or not authenticated")

        logger.error("No GitHub token found")
        raise GitHubAuthError(
            "No GitHub token found. Either:\n"
            "  - Set GITHUB_TOKEN environment variable\n"
            "  - Run 'gh auth login' to authenticate with GitHub CLI"
        )

    # --- Transport ---

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request and map error responses to exceptions.

        Raises:
            GitHubAuthError: 401
            GitHubRateLimitError: 429, or 403 caused by rate limiting
            GitHubForbiddenError: Other 403
            GitHubNotFoundError: 404
            GitHubNetworkError: Connection failure or timeout
            GitHubClientError: Other errors
        """
        op_name = f"{method} {path.split('?', 1)[0]}"
        headers = {"Authorization": f"Bearer {self._token_provider()}"}

        logger.debug("%s: params=%s body=%s", op_name, params, json)

        start_time = time.monotonic()
        try:
            response = self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s timed out after %.0fms: %s", op_name, elapsed_ms, e)
            raise GitHubNetworkError(f"Request timed out after {self.timeout:.0f}s") from e
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s failed after %.0fms: %s", op_name, elapsed_ms, e)
            raise GitHubNetworkError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        status = response.status_code

        if status == 401:
            logger.error("%s: 401 Unauthorized (%.0fms)", op_name, elapsed_ms)
            raise GitHubAuthError(
                "Authentication failed. The GitHub token was rejected or has expired.\n"
                "Required scopes: repo"
            )
        if _is_rate_limited(response):
            retry_after = _retry_after_seconds(response)
            logger.error(
                "%s: %d Rate Limited, retry after %.0fs (%.0fms)",
                op_name,
                status,
                retry_after,
                elapsed_ms,
            )
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded. Retry in {retry_after:.0f}s.",
                retry_after=retry_after,
            )
        if status == 403:
            logger.error("%s: 403 Forbidden (%.0fms)", op_name, elapsed_ms)
            raise GitHubForbiddenError(
                "Permission denied. Check that your token has the 'repo' scope "
                "and access to this repository."
            )
        if status == 404:
            logger.error("%s: 404 Not Found (%.0fms)", op_name, elapsed_ms)
            raise GitHubNotFoundError(f"Resource not found: {path.split('?', 1)[0]}")
        if status >= 400:
            logger.error("%s: HTTP %d (%.0fms)", op_name, status, elapsed_ms)
            raise GitHubClientError(f"HTTP {status}: {response.text}")

        logger.info("%s: %d OK (%.0fms)", op_name, status, elapsed_ms)
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error("Invalid JSON response from %s", response.request.url)
            raise GitHubClientError(f"Invalid JSON response: {e}") from e

    def _parse(self, model: type[ModelT], data: Any) -> ModelT:
        """Validate one response object, mapping schema mismatches to GitHubClientError."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected %s payload: %s", model.__name__, e)
            raise GitHubClientError(f"Unexpected response from GitHub for {model.__name__}: {e}") from e

    def _get_all(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """GET a list endpoint, following Link rel="next" until exhausted."""
        items: list[dict[str, Any]] = []
        query: dict[str, Any] | None = {"per_page": PER_PAGE, **(params or {})}
        url: str | None = path
        pages = 0

        while url:
            response = self._request("GET", url, params=query)
            data = self._json(response)
            if not isinstance(data, list):
                raise GitHubClientError(f"Expected a list from {path}, got {type(data).__name__}")
            items.extend(data)
            pages += 1
            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            query = None

        logger.debug("Fetched %d items from %s in %d page(s)", len(items), path, pages)
        return items

    # --- Issues ---

    def list_issues(self, repo: str) -> list[RemoteIssue]:
        """List all issues (open and closed) in a repository."""
        return self._list_issues(repo, {"state": "all"})

    def list_issues_since(self, repo: str, since: datetime) -> list[RemoteIssue]:
        """List issues whose updated_at is at or after `since`."""
        return self._list_issues(repo, {"state": "all", "since": to_github_timestamp(since)})

    def _list_issues(self, repo: str, params: dict[str, Any]) -> list[RemoteIssue]:
        owner, name = parse_repo_ref(repo)
        raw = self._get_all(f"/repos/{owner}/{name}/issues", params)

        issues: list[RemoteIssue] = []
        for item in raw:
            issue = self._parse(RemoteIssue, item)
            # The issues endpoint also returns pull requests
            if issue.is_pull_request:
                logger.debug("Skipping pull request #%d in %s", issue.number, repo)
                continue
            issues.append(issue)

        logger.info("Fetched %d issues for %s", len(issues), repo)
        return issues

    def get_issue(self, repo: str, issue_number: int) -> RemoteIssue:
        """Get a single issue."""
        owner, name = parse_repo_ref(repo)
        response = self._request("GET", f"/repos/{owner}/{name}/issues/{issue_number}")
        return self._parse(RemoteIssue, self._json(response))

    def create_issue(
        self,
        repo: str,
        title: str,
        body: str | None = None,
        labels: list[str] | None = None,
    ) -> RemoteIssue:
        """Create an issue. GitHub assigns the issue number."""
        owner, name = parse_repo_ref(repo)
        payload: dict[str, Any] = {"title": title}
        if body is not None:
            payload["body"] = body
        if labels is not None:
            payload["labels"] = labels

        response = self._request("POST", f"/repos/{owner}/{name}/issues", json=payload)
        issue = self._parse(RemoteIssue, self._json(response))
        logger.info("Created issue #%d in %s", issue.number, repo)
        return issue

    def update_issue(self, repo: str, issue_number: int, update: IssueUpdate) -> RemoteIssue:
        """Partially update an issue; only fields set on `update` change."""
        owner, name = parse_repo_ref(repo)
        response = self._request(
            "PATCH",
            f"/repos/{owner}/{name}/issues/{issue_number}",
            json=update.to_payload(),
        )
        issue = self._parse(RemoteIssue, self._json(response))
        logger.info("Updated issue #%d in %s", issue_number, repo)
        return issue

    # --- Labels ---

    def list_labels(self, repo: str) -> list[RemoteLabel]:
        """List all labels defined in a repository."""
        owner, name = parse_repo_ref(repo)
        raw = self._get_all(f"/repos/{owner}/{name}/labels")
        return [self._parse(RemoteLabel, item) for item in raw]

    def create_label(
        self,
        repo: str,
        name: str,
        color: str,
        description: str | None = None,
    ) -> RemoteLabel:
        """Create a label. `color` is a hex code without the leading '#'."""
        owner, repo_name = parse_repo_ref(repo)
        payload: dict[str, Any] = {"name": name, "color": color.lstrip("#")}
        if description is not None:
            payload["description"] = description

        response = self._request("POST", f"/repos/{owner}/{repo_name}/labels", json=payload)
        label = self._parse(RemoteLabel, self._json(response))
        logger.info("Created label '%s' in %s", label.name, repo)
        return label

    # --- Repositories ---

    def get_repo(self, repo: str) -> RemoteRepository:
        """Look up a repository by "owner/name"."""
        owner, name = parse_repo_ref(repo)
        response = self._request("GET", f"/repos/{owner}/{name}")
        return self._parse(RemoteRepository, self._json(response))

    def list_repos(self) -> list[RemoteRepository]:
        """List repositories of the authenticated user, most recently updated first."""
        raw = self._get_all("/user/repos", {"sort": "updated"})
        return [self._parse(RemoteRepository, item) for item in raw]

    def create_repo(
        self,
        name: str,
        description: str | None = None,
        private: bool = True,
        auto_init: bool = True,
    ) -> RemoteRepository:
        """Create a repository owned by the authenticated user."""
        payload: dict[str, Any] = {"name": name, "private": private, "auto_init": auto_init}
        if description is not None:
            payload["description"] = description

        response = self._request("POST", "/user/repos", json=payload)
        created = self._parse(RemoteRepository, self._json(response))
        logger.info("Created repository %s", created.full_name)
        return created
