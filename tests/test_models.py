"""Tests for data models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from issueboard.models import (
    IssueUpdate,
    Project,
    PullDone,
    PullResult,
    RemoteIssue,
    SyncConfig,
    Task,
    TaskCounts,
    TaskStatus,
)
from issueboard.utils import from_iso, to_github_timestamp


class TestTaskStatus:
    """Tests for TaskStatus enum."""

    def test_column_order(self):
        assert [s.value for s in TaskStatus] == [
            "backlog",
            "todo",
            "in_progress",
            "blocked",
            "review",
            "done",
        ]

    def test_display_name(self):
        assert TaskStatus.IN_PROGRESS.display_name == "In Progress"
        assert TaskStatus.TODO.display_name == "Todo"


class TestTask:
    """Tests for Task model."""

    def test_defaults(self):
        task = Task(project_id="p1", issue_number=3, title="Fix")

        assert task.status == TaskStatus.TODO
        assert task.labels == []
        assert task.natural_key == ("p1", 3)
        assert task.display_title == "#3 Fix"

    def test_ids_are_unique(self):
        a = Task(project_id="p1", issue_number=1, title="a")
        b = Task(project_id="p1", issue_number=1, title="a")
        assert a.id != b.id


class TestProject:
    """Tests for Project model."""

    def test_owner_and_name(self):
        project = Project(repo_ref="acme/widgets")
        assert project.owner == "acme"
        assert project.name == "widgets"
        assert project.last_synced is None


class TestRemoteIssue:
    """Tests for parsing GitHub issue payloads."""

    def test_parse_payload(self):
        issue = RemoteIssue.model_validate(
            {
                "number": 12,
                "title": "Broken",
                "state": "open",
                "labels": [{"name": "bug", "color": "d73a4a"}, {"name": "review"}],
                "created_at": "2026-01-01T00:00:00Z",
                "updated_at": "2026-01-02T00:00:00Z",
                "user": {"login": "someone"},
            }
        )

        assert issue.label_names == ["bug", "review"]
        assert not issue.is_pull_request
        assert issue.updated_at == datetime(2026, 1, 2, tzinfo=UTC)

    def test_pull_request_detected(self):
        issue = RemoteIssue(
            number=1,
            title="PR",
            state="open",
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
            updated_at=datetime(2026, 1, 1, tzinfo=UTC),
            pull_request={"url": "https://example"},
        )
        assert issue.is_pull_request


class TestIssueUpdate:
    """Tests for partial update payloads."""

    def test_only_set_fields(self):
        assert IssueUpdate(labels=[]).to_payload() == {"labels": []}
        assert IssueUpdate(title="x", state="open").to_payload() == {"title": "x", "state": "open"}

    def test_empty(self):
        assert IssueUpdate().is_empty

    def test_invalid_state(self):
        with pytest.raises(ValidationError):
            IssueUpdate(state="merged")


class TestCounts:
    """Tests for TaskCounts."""

    def test_from_pairs(self):
        counts = TaskCounts.from_status_counts([(TaskStatus.REVIEW, 2), (TaskStatus.DONE, 1)])
        assert counts.get(TaskStatus.REVIEW) == 2
        assert counts.total == 3
        assert counts.items()[0] == (TaskStatus.BACKLOG, 0)


class TestSyncResults:
    """Tests for result dataclasses."""

    def test_pull_result_errors(self):
        result = PullResult(project_id="p", repo_ref="a/b")
        assert not result.has_errors
        result.errors.append("boom")
        assert result.has_errors

    def test_pull_done_ok(self):
        assert PullDone(results=[PullResult(project_id="p", repo_ref="a/b")]).ok
        assert not PullDone(error=RuntimeError("x")).ok


class TestSyncConfig:
    """Tests for SyncConfig validation."""

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncConfig(interval_minutes=0)


class TestDatetimeUtils:
    """Tests for timestamp helpers."""

    def test_github_timestamp_converts_to_utc(self):
        local = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_github_timestamp(local) == "2026-01-01T10:00:00Z"

    def test_from_iso_handles_z(self):
        assert from_iso("2026-01-01T00:00:00Z") == datetime(2026, 1, 1, tzinfo=UTC)

    def test_from_iso_naive_is_utc(self):
        assert from_iso("2026-01-01T00:00:00").tzinfo is not None
