"""Background execution of sync operations.

The engine's methods block on the network. SyncWorker runs them on a
thread pool so callers never wait, posts a completion message for every
request to a queue the caller drains, and drives the periodic pull from
a timer thread.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from ..github.client import GitHubAuthError
from ..models import (
    LinkDone,
    Project,
    PullDone,
    PullResult,
    PushAction,
    PushDone,
    SyncMessage,
    Task,
    TaskStatus,
)
from .engine import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class _PendingPush:
    action: PushAction
    project_id: str
    call: Callable[[], Task]


class SyncWorker:
    """Runs SyncEngine operations off the caller's thread.

    Every request returns a Future and also posts exactly one SyncMessage
    to `messages` when it finishes, successfully or not. Pushes that fail
    because authentication was rejected are kept and can be replayed with
    resume_pending() once the user has signed in again.
    """

    def __init__(
        self,
        engine: SyncEngine,
        interval_seconds: float | None = None,
        max_workers: int = 4,
    ) -> None:
        self.engine = engine
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else engine.config.interval_seconds
        )
        self.messages: queue.Queue[SyncMessage] = queue.Queue()

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync")
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None
        self._pending: list[_PendingPush] = []
        self._pending_lock = threading.Lock()

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the timer thread that pulls every project each interval."""
        if self._timer is not None:
            return
        self.engine.cycle_driven = True
        self._stop.clear()
        self._timer = threading.Thread(target=self._run_timer, name="sync-timer", daemon=True)
        self._timer.start()
        logger.info("Background sync every %.0fs", self.interval_seconds)

    def stop(self, wait: bool = True) -> None:
        """Stop the timer and shut the pool down."""
        self._stop.set()
        if self._timer is not None:
            self._timer.join(timeout=5)
            self._timer = None
        self.engine.cycle_driven = False
        self._executor.shutdown(wait=wait)
        logger.debug("Sync worker stopped")

    def __enter__(self) -> SyncWorker:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def _run_timer(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            logger.debug("Scheduled pull")
            self.request_pull(scheduled=True)

    # --- Requests ---

    def request_move(self, project_id: str, issue_number: int, status: TaskStatus) -> Future:
        return self._submit_push(
            "move",
            project_id,
            lambda: self.engine.move_task(project_id, issue_number, status),
        )

    def request_create(
        self,
        project_id: str,
        title: str,
        body: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
    ) -> Future:
        return self._submit_push(
            "create",
            project_id,
            lambda: self.engine.create_task(project_id, title, body, status),
        )

    def request_edit(
        self,
        project_id: str,
        issue_number: int,
        title: str,
        body: str | None = None,
    ) -> Future:
        return self._submit_push(
            "edit",
            project_id,
            lambda: self.engine.edit_task(project_id, issue_number, title, body),
        )

    def request_pull(self, project_id: str | None = None, scheduled: bool = False) -> Future:
        """Pull one project, or every project when project_id is None."""
        return self._executor.submit(self._run_pull, project_id, scheduled)

    def request_link(self, repo_ref: str, description: str | None = None) -> Future:
        return self._executor.submit(self._run_link, repo_ref, description)

    def _submit_push(self, action: PushAction, project_id: str, call: Callable[[], Task]) -> Future:
        return self._executor.submit(self._run_push, _PendingPush(action, project_id, call))

    # --- Execution ---

    def _run_push(self, push: _PendingPush) -> Task:
        try:
            task = push.call()
        except Exception as e:
            if isinstance(e, GitHubAuthError):
                with self._pending_lock:
                    self._pending.append(push)
                logger.warning("Keeping %s on %s until sign-in", push.action, push.project_id)
            self.messages.put(PushDone(push.action, push.project_id, error=e))
            raise
        self.messages.put(PushDone(push.action, push.project_id, task=task))
        return task

    def _run_pull(self, project_id: str | None, scheduled: bool) -> list[PullResult]:
        try:
            if project_id is None:
                results = self.engine.pull_all(scheduled=scheduled)
            else:
                results = [self.engine.pull_project(project_id, scheduled=scheduled)]
        except Exception as e:
            logger.error("Pull failed: %s", e)
            self.messages.put(PullDone(scheduled=scheduled, error=e))
            raise
        self.messages.put(PullDone(results=results, scheduled=scheduled))
        return results

    def _run_link(self, repo_ref: str, description: str | None) -> Project:
        try:
            project = self.engine.link_project(repo_ref, description)
        except Exception as e:
            self.messages.put(LinkDone(repo_ref, error=e))
            raise
        self.messages.put(LinkDone(repo_ref, project=project))
        return project

    # --- Messages and retries ---

    def drain_messages(self) -> list[SyncMessage]:
        """Return every message posted so far without blocking."""
        drained: list[SyncMessage] = []
        while True:
            try:
                drained.append(self.messages.get_nowait())
            except queue.Empty:
                return drained

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def resume_pending(self) -> list[Future]:
        """Resubmit pushes that failed on authentication, in their original order."""
        with self._pending_lock:
            pending, self._pending = self._pending, []
        if pending:
            logger.info("Retrying %d pending push(es)", len(pending))
        return [self._executor.submit(self._run_push, push) for push in pending]
