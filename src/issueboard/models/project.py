"""Project domain model."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from ..utils import now_utc


def _new_id() -> str:
    return str(uuid4())


class Project(BaseModel):
    """A remote repository tracked as a kanban board.

    ``repo_ref`` ("owner/name") is unique across projects. ``last_synced``
    stays None until the first successful pull, which makes that pull a full
    one.
    """

    id: str = Field(default_factory=_new_id)
    repo_ref: str
    description: str | None = None
    created_at: datetime = Field(default_factory=now_utc)
    last_synced: datetime | None = None

    @property
    def owner(self) -> str:
        return self.repo_ref.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.repo_ref.split("/", 1)[-1]
