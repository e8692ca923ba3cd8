"""Board state models."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from .task import Task, TaskStatus


class TaskCounts(BaseModel):
    """Per-column task counts for a project, zero-filled."""

    backlog: int = 0
    todo: int = 0
    in_progress: int = 0
    blocked: int = 0
    review: int = 0
    done: int = 0

    @classmethod
    def from_status_counts(cls, counts: Iterable[tuple[TaskStatus, int]]) -> TaskCounts:
        """Build from ``(status, count)`` pairs; missing statuses stay at zero."""
        values: dict[str, int] = {}
        for status, count in counts:
            values[status.value] = values.get(status.value, 0) + count
        return cls(**values)

    def get(self, status: TaskStatus) -> int:
        return getattr(self, status.value)

    @property
    def total(self) -> int:
        return sum(self.get(status) for status in TaskStatus)

    def items(self) -> list[tuple[TaskStatus, int]]:
        """One entry per status, in column order."""
        return [(status, self.get(status)) for status in TaskStatus]


class Board(BaseModel):
    """Full board state for one project with tasks grouped by column."""

    project_id: str
    columns: dict[TaskStatus, list[Task]] = Field(default_factory=dict)

    @classmethod
    def from_tasks(cls, project_id: str, tasks: Iterable[Task]) -> Board:
        """Group tasks by status. Every column is present, even when empty.

        Tasks within a column are ordered by issue number ascending.
        """
        columns: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
        for task in tasks:
            columns[task.status].append(task)
        for column in columns.values():
            column.sort(key=lambda t: t.issue_number)
        return cls(project_id=project_id, columns=columns)

    def tasks_for(self, status: TaskStatus) -> list[Task]:
        return self.columns.get(status, [])

    def count(self, status: TaskStatus) -> int:
        return len(self.tasks_for(status))

    @property
    def counts(self) -> TaskCounts:
        return TaskCounts.from_status_counts(
            (status, len(tasks)) for status, tasks in self.columns.items()
        )

    @property
    def total(self) -> int:
        return sum(len(tasks) for tasks in self.columns.values())

    def find(self, issue_number: int) -> Task | None:
        """Find a task on the board by issue number."""
        for tasks in self.columns.values():
            for task in tasks:
                if task.issue_number == issue_number:
                    return task
        return None
