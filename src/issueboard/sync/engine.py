"""Sync engine between the local project store and GitHub issues.

This module provides the SyncEngine class which handles:
- Pull: fetch issues changed since the last sync and upsert them as tasks
- Push: move, create and edit tasks by mutating the issue first, then
  mirroring GitHub's response into the store
- Linking repositories as projects and provisioning status labels
- Error policy: rate-limit back-off, user-facing error state

GitHub is the source of truth. A push that fails changes nothing locally;
a pull overwrites whatever local state disagrees with the remote.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from ..github.client import (
    GitHubAuthError,
    GitHubClient,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    parse_repo_ref,
)
from ..models import (
    IssueUpdate,
    Project,
    PullResult,
    RemoteIssue,
    RemoteRepository,
    SyncConfig,
    Task,
    TaskStatus,
)
from ..repositories import LocalStore, StoreError
from ..utils import now_utc
from .backoff import RateLimitGate
from .status import (
    STATUS_LABELS,
    STATE_CLOSED,
    apply_status_labels,
    derive_status,
    status_label,
    status_label_color,
    transition_state,
)

logger = logging.getLogger(__name__)


class UnknownProjectError(LookupError):
    """No project with the given id is tracked."""

    pass


class UnknownTaskError(LookupError):
    """The project has no cached task with the given issue number."""

    pass


def describe_error(error: BaseException) -> str:
    """Translate an error into the message shown to the user."""
    if isinstance(error, GitHubAuthError):
        return (
            "GitHub authentication expired or was rejected. "
            "Sign in again; pending changes will be retried."
        )
    if isinstance(error, GitHubRateLimitError):
        return f"GitHub rate limit reached. Syncing resumes in {error.retry_after:.0f}s."
    if isinstance(error, GitHubForbiddenError):
        return f"GitHub denied access: {error}"
    if isinstance(error, GitHubNotFoundError):
        return f"Not found on GitHub (it may have been deleted): {error}"
    if isinstance(error, GitHubNetworkError):
        return f"Could not reach GitHub: {error}. Will retry on the next sync."
    if isinstance(error, GitHubClientError):
        return f"GitHub error: {error}"
    if isinstance(error, StoreError):
        return f"Local storage error: {error}"
    if isinstance(error, (ValueError, LookupError)):
        return str(error)
    return f"Unexpected error: {error}"


def task_from_issue(project_id: str, issue: RemoteIssue, status: TaskStatus | None = None) -> Task:
    """Build the cached task for an issue, deriving status unless one is given."""
    labels = issue.label_names
    return Task(
        project_id=project_id,
        issue_number=issue.number,
        title=issue.title,
        body=issue.body,
        status=status if status is not None else derive_status(issue.state, labels),
        labels=labels,
        url=issue.html_url,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
    )


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValueError("Task title cannot be empty")
    return cleaned


class SyncEngine:
    """Engine for keeping the local store consistent with GitHub issues.

    Handles the workflow of:
    1. Linking repositories as projects (optionally creating them)
    2. Provisioning the five status labels on linked repositories
    3. Delta pulls (full on first sync) merged into the store
    4. Pushing moves, creations and edits as single issue mutations
    5. Holding off after rate limits and recording user-visible errors

    Every method is synchronous; SyncWorker runs them off the caller's
    thread. The store serializes its own access, so methods may run
    concurrently.
    """

    def __init__(
        self,
        client: GitHubClient,
        store: LocalStore,
        config: SyncConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the sync engine.

        Args:
            client: Authenticated GitHub client
            store: Local project/task store
            config: Sync settings (defaults if omitted)
            clock: Monotonic clock, injectable for tests
        """
        self._client = client
        self._store = store
        self._config = config or SyncConfig()
        self._gate = RateLimitGate(clock)

        # Set by SyncWorker while its timer drives pulls
        self.cycle_driven = False

        self._state_lock = threading.Lock()
        self._errors: dict[str, str] = {}  # project id (or repo ref) -> message
        self._removal_candidates: dict[str, set[int]] = {}

    @property
    def config(self) -> SyncConfig:
        return self._config

    # --- Error state ---

    def error_for(self, key: str) -> str | None:
        """Current error message for a project id (or repo ref for links)."""
        with self._state_lock:
            return self._errors.get(key)

    def dismiss_error(self, key: str) -> None:
        with self._state_lock:
            self._errors.pop(key, None)

    def removal_candidates(self, project_id: str) -> list[int]:
        """Issue numbers GitHub reported as missing when we pushed to them."""
        with self._state_lock:
            return sorted(self._removal_candidates.get(project_id, set()))

    def _record_failure(
        self,
        key: str,
        error: BaseException,
        issue_number: int | None = None,
    ) -> str:
        message = describe_error(error)
        if isinstance(error, GitHubRateLimitError):
            self._gate.block(key, error.retry_after, await_cycle=self.cycle_driven)
        with self._state_lock:
            self._errors[key] = message
            if isinstance(error, GitHubNotFoundError) and issue_number is not None:
                self._removal_candidates.setdefault(key, set()).add(issue_number)
        logger.error("%s: %s", key, message)
        return message

    def _record_success(self, key: str) -> None:
        with self._state_lock:
            self._errors.pop(key, None)

    def _check_gate(self, project: Project, scheduled: bool = False) -> None:
        left = self._gate.remaining(project.id, scheduled)
        if left is None:
            return
        error = GitHubRateLimitError(
            f"Rate limited on {project.repo_ref}; waiting {left:.0f}s"
            + (" and for the next scheduled sync" if self.cycle_driven else ""),
            retry_after=left,
        )
        with self._state_lock:
            self._errors[project.id] = describe_error(error)
        raise error

    @contextmanager
    def _guard(self, project: Project, issue_number: int | None = None) -> Iterator[None]:
        """Run one remote operation for a project under the error policy."""
        self._check_gate(project)
        try:
            yield
        except (GitHubClientError, StoreError) as e:
            self._record_failure(project.id, e, issue_number)
            raise
        self._record_success(project.id)

    # --- Lookups ---

    def _require_project(self, project_id: str) -> Project:
        project = self._store.get_project(project_id)
        if project is None:
            raise UnknownProjectError(f"Project not found: {project_id}")
        return project

    def _require_task(self, project: Project, issue_number: int) -> Task:
        task = self._store.get_task(project.id, issue_number)
        if task is None:
            raise UnknownTaskError(f"Task #{issue_number} not found in {project.repo_ref}")
        return task

    # --- Projects ---

    def link_project(self, repo_ref: str, description: str | None = None) -> Project:
        """Track an existing repository as a project.

        Linking the same repository twice updates the existing project.

        Raises:
            ValueError: If repo_ref is not "owner/repo"
            GitHubClientError: If the repository lookup fails
        """
        owner, name = parse_repo_ref(repo_ref)
        key = f"{owner}/{name}"
        try:
            repo = self._client.get_repo(key)
        except GitHubClientError as e:
            self._record_failure(key, e)
            raise
        self._record_success(key)
        return self._adopt_repo(repo, description)

    def create_project(
        self,
        name: str,
        description: str | None = None,
        private: bool = True,
    ) -> Project:
        """Create a new repository for the authenticated user and track it."""
        name = name.strip()
        if not name or "/" in name:
            raise ValueError(f"Invalid repository name '{name}'")
        try:
            repo = self._client.create_repo(name, description=description, private=private)
        except GitHubClientError as e:
            self._record_failure(name, e)
            raise
        self._record_success(name)
        return self._adopt_repo(repo, description)

    def _adopt_repo(self, repo: RemoteRepository, description: str | None) -> Project:
        existing = self._store.get_project_by_repo(repo.full_name)
        if existing is not None:
            project = existing.model_copy(
                update={"description": description or repo.description or existing.description}
            )
        else:
            project = Project(repo_ref=repo.full_name, description=description or repo.description)

        stored = self._store.upsert_project(project)
        logger.info("Linked project %s (%s)", stored.repo_ref, stored.id)

        if self._config.auto_create_labels:
            try:
                self.ensure_status_labels(stored)
            except GitHubClientError as e:
                # The project is linked; the label failure stays visible as its error
                logger.warning("Could not provision status labels on %s: %s", stored.repo_ref, e)
        return stored

    def ensure_status_labels(self, project: Project) -> list[str]:
        """Create any of the five status labels the repository is missing.

        Returns:
            Names of the labels created
        """
        created: list[str] = []
        with self._guard(project):
            existing = {label.name.lower() for label in self._client.list_labels(project.repo_ref)}
            for status, token in STATUS_LABELS.items():
                if token.lower() in existing:
                    continue
                self._client.create_label(
                    project.repo_ref,
                    token,
                    status_label_color(status),
                    description=f"Kanban column: {status.display_name}",
                )
                created.append(token)

        if created:
            logger.info("Created status labels on %s: %s", project.repo_ref, ", ".join(created))
        return created

    def remove_project(self, project_id: str) -> None:
        """Stop tracking a project. Its cached tasks are deleted; GitHub is untouched."""
        project = self._require_project(project_id)
        self._store.delete_project(project.id)
        self._gate.clear(project.id)
        with self._state_lock:
            self._errors.pop(project.id, None)
            self._removal_candidates.pop(project.id, None)
        logger.info("Removed project %s", project.repo_ref)

    # --- Pull ---

    def pull_all(self, scheduled: bool = False) -> list[PullResult]:
        """Pull every tracked project. A failing project does not stop the rest."""
        results = [self._pull(project, scheduled) for project in self._store.list_projects()]
        pulled = sum(r.pulled for r in results)
        failed = sum(1 for r in results if r.has_errors)
        logger.info(
            "Pulled %d task(s) across %d project(s), %d failed",
            pulled,
            len(results),
            failed,
        )
        return results

    def pull_project(self, project_id: str, scheduled: bool = False) -> PullResult:
        """Pull issues changed since the project's last sync.

        The first pull of a project (no last_synced) fetches everything.
        """
        return self._pull(self._require_project(project_id), scheduled)

    def reconcile_project(self, project_id: str) -> PullResult:
        """Full pull that also deletes tasks whose issue no longer exists.

        Delta pulls cannot see deleted issues; this is the explicit way to
        drop them. It is never run automatically.
        """
        return self._pull(self._require_project(project_id), reconcile=True)

    def _pull(self, project: Project, scheduled: bool = False, reconcile: bool = False) -> PullResult:
        result = PullResult(project_id=project.id, repo_ref=project.repo_ref)

        left = self._gate.remaining(project.id, scheduled)
        if left is not None:
            result.skipped = True
            if scheduled:
                logger.info("Skipping scheduled pull of %s: rate limited", project.repo_ref)
            else:
                result.errors.append(
                    f"Rate limited on {project.repo_ref}; try again in {max(left, 0):.0f}s"
                )
            return result

        started = now_utc()
        result.full = reconcile or project.last_synced is None

        try:
            if result.full:
                issues = self._client.list_issues(project.repo_ref)
            else:
                issues = self._client.list_issues_since(project.repo_ref, project.last_synced)

            for issue in issues:
                self._store.upsert_task(task_from_issue(project.id, issue))
                result.pulled += 1

            if reconcile:
                remote_numbers = {issue.number for issue in issues}
                for task in self._store.list_tasks(project.id):
                    if task.issue_number not in remote_numbers:
                        self._store.delete_task(project.id, task.issue_number)
                        result.removed += 1
                with self._state_lock:
                    self._removal_candidates.pop(project.id, None)

            self._store.upsert_project(project.model_copy(update={"last_synced": started}))
        except (GitHubClientError, StoreError) as e:
            result.errors.append(self._record_failure(project.id, e))
            return result

        self._record_success(project.id)
        logger.info(
            "Pulled %s: %d task(s)%s%s",
            project.repo_ref,
            result.pulled,
            " (full)" if result.full else "",
            f", removed {result.removed}" if result.removed else "",
        )
        return result

    # --- Push ---

    def move_task(self, project_id: str, issue_number: int, status: TaskStatus) -> Task:
        """Move a task to another column.

        Rewrites the issue's status label and, when entering or leaving
        Done, closes or reopens it, in a single update. The stored task
        takes the requested status directly; the next pull re-derives it.
        """
        project = self._require_project(project_id)
        task = self._require_task(project, issue_number)
        if task.status == status:
            return task

        update = IssueUpdate(
            labels=apply_status_labels(task.labels, status),
            state=transition_state(task.status, status),
        )
        with self._guard(project, issue_number):
            issue = self._client.update_issue(project.repo_ref, issue_number, update)
            stored = self._store.upsert_task(task_from_issue(project.id, issue, status=status))

        logger.info(
            "Task moved: %s#%d (%s -> %s)",
            project.repo_ref,
            issue_number,
            task.status.value,
            status.value,
        )
        return stored

    def create_task(
        self,
        project_id: str,
        title: str,
        body: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
    ) -> Task:
        """Create an issue for a new task; GitHub assigns its number.

        Creating straight into Done needs a second call to close the issue.
        The store is only written once both have succeeded.
        """
        title = _clean_title(title)
        project = self._require_project(project_id)
        token = status_label(status)

        with self._guard(project):
            issue = self._client.create_issue(
                project.repo_ref,
                title,
                body=body or None,
                labels=[token] if token else None,
            )
            if status == TaskStatus.DONE:
                issue = self._client.update_issue(
                    project.repo_ref, issue.number, IssueUpdate(state=STATE_CLOSED)
                )
            stored = self._store.upsert_task(task_from_issue(project.id, issue, status=status))

        logger.info("Task created: %s#%d in %s", project.repo_ref, stored.issue_number, status.value)
        return stored

    def edit_task(
        self,
        project_id: str,
        issue_number: int,
        title: str,
        body: str | None = None,
    ) -> Task:
        """Change a task's title, and its body when one is given.

        The body is sent as typed. None leaves it untouched on GitHub; an
        empty string clears it. Labels and state are never sent.
        """
        title = _clean_title(title)
        project = self._require_project(project_id)
        task = self._require_task(project, issue_number)

        update = IssueUpdate(title=title, body=body)
        with self._guard(project, issue_number):
            issue = self._client.update_issue(project.repo_ref, issue_number, update)
            stored = self._store.upsert_task(task_from_issue(project.id, issue, status=task.status))

        logger.info("Task edited: %s#%d", project.repo_ref, issue_number)
        return stored
