"""Tests for SyncWorker background execution."""

from unittest.mock import MagicMock

import pytest

from issueboard.github.client import GitHubAuthError, GitHubNetworkError
from issueboard.models import (
    LinkDone,
    Project,
    PullDone,
    PullResult,
    PushDone,
    SyncConfig,
    Task,
    TaskStatus,
)
from issueboard.sync import SyncEngine, SyncWorker


@pytest.fixture
def engine():
    engine = MagicMock(spec=SyncEngine)
    engine.config = SyncConfig()
    engine.cycle_driven = False
    return engine


@pytest.fixture
def worker(engine):
    w = SyncWorker(engine, interval_seconds=3600)
    yield w
    w.stop()


def make_task(number: int = 1, status: TaskStatus = TaskStatus.TODO) -> Task:
    return Task(project_id="p1", issue_number=number, title="Task", status=status)


class TestRequests:
    """Tests for request methods and completion messages."""

    def test_move_posts_push_done(self, worker, engine):
        engine.move_task.return_value = make_task(status=TaskStatus.REVIEW)

        task = worker.request_move("p1", 1, TaskStatus.REVIEW).result(timeout=5)

        engine.move_task.assert_called_once_with("p1", 1, TaskStatus.REVIEW)
        assert task.status == TaskStatus.REVIEW
        message = worker.messages.get(timeout=5)
        assert isinstance(message, PushDone)
        assert message.action == "move"
        assert message.ok

    def test_failed_push_posts_error(self, worker, engine):
        engine.create_task.side_effect = GitHubNetworkError("down")

        future = worker.request_create("p1", "Title")

        with pytest.raises(GitHubNetworkError):
            future.result(timeout=5)
        message = worker.messages.get(timeout=5)
        assert isinstance(message, PushDone)
        assert message.action == "create"
        assert isinstance(message.error, GitHubNetworkError)
        assert worker.pending_count == 0

    def test_edit(self, worker, engine):
        engine.edit_task.return_value = make_task()

        worker.request_edit("p1", 1, "New title", "Body").result(timeout=5)

        engine.edit_task.assert_called_once_with("p1", 1, "New title", "Body")

    def test_pull_all(self, worker, engine):
        engine.pull_all.return_value = [PullResult(project_id="p1", repo_ref="a/b", pulled=2)]

        results = worker.request_pull().result(timeout=5)

        engine.pull_all.assert_called_once_with(scheduled=False)
        assert results[0].pulled == 2
        message = worker.messages.get(timeout=5)
        assert isinstance(message, PullDone)
        assert message.ok

    def test_pull_one_project(self, worker, engine):
        engine.pull_project.return_value = PullResult(project_id="p1", repo_ref="a/b")

        worker.request_pull("p1").result(timeout=5)

        engine.pull_project.assert_called_once_with("p1", scheduled=False)

    def test_link(self, worker, engine):
        engine.link_project.return_value = Project(repo_ref="acme/widgets")

        worker.request_link("acme/widgets").result(timeout=5)

        message = worker.messages.get(timeout=5)
        assert isinstance(message, LinkDone)
        assert message.project.repo_ref == "acme/widgets"

    def test_drain_messages(self, worker, engine):
        engine.move_task.return_value = make_task()
        worker.request_move("p1", 1, TaskStatus.TODO).result(timeout=5)
        worker.request_move("p1", 1, TaskStatus.TODO).result(timeout=5)

        assert len(worker.drain_messages()) == 2
        assert worker.drain_messages() == []


class TestAuthRetry:
    """Tests for keeping pushes across re-authentication."""

    def test_auth_failure_kept_and_resumed(self, worker, engine):
        engine.move_task.side_effect = [GitHubAuthError("expired"), make_task(status=TaskStatus.DONE)]

        with pytest.raises(GitHubAuthError):
            worker.request_move("p1", 1, TaskStatus.DONE).result(timeout=5)
        assert worker.pending_count == 1

        futures = worker.resume_pending()
        task = futures[0].result(timeout=5)

        assert task.status == TaskStatus.DONE
        assert worker.pending_count == 0
        assert engine.move_task.call_count == 2


class TestTimer:
    """Tests for the scheduled pull."""

    def test_start_marks_engine_cycle_driven(self, engine):
        worker = SyncWorker(engine, interval_seconds=3600)
        worker.start()
        assert engine.cycle_driven is True
        worker.stop()
        assert engine.cycle_driven is False

    def test_timer_requests_scheduled_pull(self, engine):
        engine.pull_all.return_value = []
        worker = SyncWorker(engine, interval_seconds=0.01)
        worker.start()
        try:
            message = worker.messages.get(timeout=5)
        finally:
            worker.stop()

        assert isinstance(message, PullDone)
        assert message.scheduled
        engine.pull_all.assert_any_call(scheduled=True)

    def test_default_interval_from_config(self, engine):
        engine.config = SyncConfig(interval_minutes=2)
        worker = SyncWorker(engine)
        assert worker.interval_seconds == 120
        worker.stop()
