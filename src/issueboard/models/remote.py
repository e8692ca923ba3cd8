"""Models for payloads exchanged with the GitHub REST API.

Only the fields the sync engine needs are declared; pydantic ignores the
rest of each response.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

IssueState = Literal["open", "closed"]


class RemoteLabel(BaseModel):
    """A label as returned by the issues and labels endpoints."""

    name: str
    color: str = ""
    description: str | None = None


class RemoteIssue(BaseModel):
    """An issue as returned by GET/POST/PATCH on the issues endpoints."""

    number: int
    title: str
    body: str | None = None
    state: str
    html_url: str = ""
    labels: list[RemoteLabel] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    # Present only when the "issue" is a pull request
    pull_request: dict[str, Any] | None = None

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None


class RemoteRepository(BaseModel):
    """A repository as returned by the repos endpoints."""

    full_name: str
    name: str
    description: str | None = None
    html_url: str = ""
    private: bool = False
    default_branch: str = "main"
    open_issues_count: int = 0
    updated_at: datetime | None = None


class IssueUpdate(BaseModel):
    """Partial issue update. Fields left as None are not sent."""

    title: str | None = None
    body: str | None = None
    state: IssueState | None = None
    labels: list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the PATCH request."""
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.to_payload()
