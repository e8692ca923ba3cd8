"""Data models."""

from .board import Board, TaskCounts
from .config import GitHubConfig, IssueboardConfig, SyncConfig
from .project import Project
from .remote import IssueUpdate, RemoteIssue, RemoteLabel, RemoteRepository
from .sync import LinkDone, PullDone, PullResult, PushAction, PushDone, SyncMessage
from .task import Task, TaskStatus

__all__ = [
    "Board",
    "GitHubConfig",
    "IssueUpdate",
    "IssueboardConfig",
    "LinkDone",
    "Project",
    "PullDone",
    "PullResult",
    "PushAction",
    "PushDone",
    "RemoteIssue",
    "RemoteLabel",
    "RemoteRepository",
    "SyncConfig",
    "SyncMessage",
    "Task",
    "TaskCounts",
    "TaskStatus",
]
