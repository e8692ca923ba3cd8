"""Sync between the local store and GitHub issues."""

from .backoff import RateLimitGate
from .engine import (
    SyncEngine,
    UnknownProjectError,
    UnknownTaskError,
    describe_error,
    task_from_issue,
)
from .status import (
    STATUS_LABEL_COLORS,
    STATUS_LABELS,
    apply_status_labels,
    derive_status,
    parse_status,
    status_label,
    status_remote_state,
    transition_state,
)
from .worker import SyncWorker

__all__ = [
    "RateLimitGate",
    "STATUS_LABELS",
    "STATUS_LABEL_COLORS",
    "SyncEngine",
    "SyncWorker",
    "UnknownProjectError",
    "UnknownTaskError",
    "apply_status_labels",
    "derive_status",
    "describe_error",
    "parse_status",
    "status_label",
    "status_remote_state",
    "task_from_issue",
]
