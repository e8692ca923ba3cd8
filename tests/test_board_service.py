"""Tests for BoardService."""

from pathlib import Path

import pytest

from issueboard.models import Board, Project, Task, TaskStatus
from issueboard.repositories import LocalStore
from issueboard.services import BoardService


@pytest.fixture
def store(tmp_path: Path):
    with LocalStore(tmp_path / "projects.db") as s:
        yield s


@pytest.fixture
def project(store: LocalStore) -> Project:
    return store.upsert_project(Project(repo_ref="acme/widgets"))


@pytest.fixture
def board_service(store: LocalStore) -> BoardService:
    return BoardService(store)


def add(store: LocalStore, project: Project, number: int, status: TaskStatus) -> None:
    store.upsert_task(
        Task(project_id=project.id, issue_number=number, title=f"Issue {number}", status=status)
    )


class TestLoadBoard:
    """Tests for projecting tasks into columns."""

    def test_empty_project_has_every_column(self, board_service, project):
        board = board_service.load_board(project.id)

        assert set(board.columns) == set(TaskStatus)
        assert board.total == 0

    def test_groups_and_orders_by_issue_number(self, board_service, store, project):
        add(store, project, 9, TaskStatus.TODO)
        add(store, project, 2, TaskStatus.TODO)
        add(store, project, 5, TaskStatus.DONE)

        board = board_service.load_board(project.id)

        assert [t.issue_number for t in board.tasks_for(TaskStatus.TODO)] == [2, 9]
        assert [t.issue_number for t in board.tasks_for(TaskStatus.DONE)] == [5]
        assert board.tasks_for(TaskStatus.REVIEW) == []

    def test_board_reflects_store_changes(self, board_service, store, project):
        """Each load is recomputed from the store."""
        add(store, project, 1, TaskStatus.TODO)
        assert board_service.load_board(project.id).count(TaskStatus.TODO) == 1

        add(store, project, 1, TaskStatus.REVIEW)
        board = board_service.load_board(project.id)
        assert board.count(TaskStatus.TODO) == 0
        assert board.count(TaskStatus.REVIEW) == 1

    def test_get_tasks_by_status(self, board_service, store, project):
        add(store, project, 1, TaskStatus.BLOCKED)
        tasks = board_service.get_tasks_by_status(project.id, TaskStatus.BLOCKED)
        assert [t.issue_number for t in tasks] == [1]


class TestTaskCounts:
    """Tests for per-status counts."""

    def test_zero_filled(self, board_service, store, project):
        add(store, project, 1, TaskStatus.TODO)
        add(store, project, 2, TaskStatus.TODO)
        add(store, project, 3, TaskStatus.DONE)

        counts = board_service.task_counts(project.id)

        assert counts.todo == 2
        assert counts.done == 1
        assert counts.backlog == 0
        assert counts.in_progress == 0
        assert counts.total == 3

    def test_matches_board(self, board_service, store, project):
        for number, status in enumerate(TaskStatus, start=1):
            add(store, project, number, status)

        assert board_service.task_counts(project.id) == board_service.load_board(project.id).counts


class TestBoardModel:
    """Tests for the Board model itself."""

    def test_find(self):
        task = Task(project_id="p", issue_number=4, title="x", status=TaskStatus.REVIEW)
        board = Board.from_tasks("p", [task])

        assert board.find(4) == task
        assert board.find(5) is None
