"""Service for board projection."""

from ..models import Board, Task, TaskCounts, TaskStatus
from ..repositories import LocalStore


class BoardService:
    """Read-only view of a project's tasks as kanban columns.

    Boards are recomputed from the store on every call, so a completed
    push or pull shows up the next time the board is loaded.
    """

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    def load_board(self, project_id: str) -> Board:
        """Load the board with every column present, tasks by issue number."""
        return Board.from_tasks(project_id, self.store.list_tasks(project_id))

    def get_tasks_by_status(self, project_id: str, status: TaskStatus) -> list[Task]:
        return self.load_board(project_id).tasks_for(status)

    def task_counts(self, project_id: str) -> TaskCounts:
        """Per-status totals, zero for empty columns."""
        return TaskCounts.from_status_counts(self.store.count_tasks_by_status(project_id))
