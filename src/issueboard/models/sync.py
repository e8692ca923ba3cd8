"""Sync-related data models: operation results and worker messages."""

from dataclasses import dataclass, field
from typing import Literal

from .project import Project
from .task import Task

PushAction = Literal["move", "create", "edit"]


@dataclass
class PullResult:
    """Result of pulling one project."""

    project_id: str
    repo_ref: str
    pulled: int = 0  # Tasks upserted from remote issues
    removed: int = 0  # Local tasks deleted (reconcile only)
    full: bool = False  # Full listing instead of a delta
    skipped: bool = False  # Not attempted, e.g. still rate limited
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred."""
        return len(self.errors) > 0


@dataclass
class PushDone:
    """Completion message for a move, create or edit request."""

    action: PushAction
    project_id: str
    task: Task | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PullDone:
    """Completion message for a pull request (manual or timer-driven)."""

    results: list[PullResult] = field(default_factory=list)
    scheduled: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not any(r.has_errors for r in self.results)


@dataclass
class LinkDone:
    """Completion message for linking or creating a repository."""

    repo_ref: str
    project: Project | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


SyncMessage = PushDone | PullDone | LinkDone
