"""Task domain model."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from ..utils import now_utc


class TaskStatus(str, Enum):
    """Kanban column a task belongs to.

    The column set is fixed. Values are what the local cache stores; the
    remote tracker has no status field, so these are derived from issue
    state and labels (see ``issueboard.sync.status``).
    """

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    REVIEW = "review"
    DONE = "done"

    @property
    def display_name(self) -> str:
        """Human readable column name (e.g. "In Progress")."""
        return self.value.replace("_", " ").title()


def _new_id() -> str:
    return str(uuid4())


class Task(BaseModel):
    """A kanban card mirroring one remote issue.

    The natural key is ``(project_id, issue_number)``; ``id`` is a local
    surrogate that survives upserts.
    """

    id: str = Field(default_factory=_new_id)
    project_id: str
    issue_number: int

    title: str
    body: str | None = None
    status: TaskStatus = TaskStatus.TODO
    labels: list[str] = Field(default_factory=list)  # Cached; remote copy is authoritative
    url: str = ""

    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @property
    def natural_key(self) -> tuple[str, int]:
        """Key the store upserts on."""
        return (self.project_id, self.issue_number)

    @property
    def display_title(self) -> str:
        """Title prefixed with the issue number, for lists."""
        return f"#{self.issue_number} {self.title}"
