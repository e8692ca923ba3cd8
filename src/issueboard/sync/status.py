"""Mapping between GitHub issue state/labels and kanban TaskStatus.

GitHub issues have no status field. A task's column is encoded as one of
five status labels on an open issue; closed issues are always Done.
Everything here is pure.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..models.task import TaskStatus

STATE_OPEN = "open"
STATE_CLOSED = "closed"

# Label token per status. Done is represented by the closed state instead.
STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.BACKLOG: "backlog",
    TaskStatus.TODO: "todo",
    TaskStatus.IN_PROGRESS: "in-progress",
    TaskStatus.BLOCKED: "blocked",
    TaskStatus.REVIEW: "review",
}

STATUS_LABEL_COLORS: dict[TaskStatus, str] = {
    TaskStatus.BACKLOG: "e0e0e0",
    TaskStatus.TODO: "0366d6",
    TaskStatus.IN_PROGRESS: "fbca04",
    TaskStatus.BLOCKED: "d93f0b",
    TaskStatus.REVIEW: "6f42c1",
    TaskStatus.DONE: "0e8a16",
}

# Highest priority first; consulted when an open issue carries several
DERIVATION_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.BLOCKED,
    TaskStatus.REVIEW,
    TaskStatus.IN_PROGRESS,
    TaskStatus.BACKLOG,
    TaskStatus.TODO,
)

_STATUS_TOKENS = frozenset(STATUS_LABELS.values())

_STATUS_ALIASES: dict[str, TaskStatus] = {
    "in-progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
}


def derive_status(state: str, labels: Iterable[str]) -> TaskStatus:
    """Derive the kanban status of an issue.

    Closed issues are Done whatever their labels. Open issues take the
    highest-priority status label present (blocked > review > in-progress >
    backlog > todo), defaulting to Todo. Never raises.
    """
    if state == STATE_CLOSED:
        return TaskStatus.DONE

    present = set(labels)
    for status in DERIVATION_ORDER:
        if STATUS_LABELS[status] in present:
            return status
    return TaskStatus.TODO


def status_label(status: TaskStatus) -> str | None:
    """Label token for a status, or None for Done."""
    return STATUS_LABELS.get(status)


def status_remote_state(status: TaskStatus) -> str:
    """Issue state a status requires: "closed" for Done, else "open"."""
    return STATE_CLOSED if status == TaskStatus.DONE else STATE_OPEN


def status_label_color(status: TaskStatus) -> str:
    """Hex color (no '#') used when provisioning the status label."""
    return STATUS_LABEL_COLORS[status]


def is_status_label(label: str) -> bool:
    return label in _STATUS_TOKENS


def apply_status_labels(labels: Iterable[str], status: TaskStatus) -> list[str]:
    """Replace whatever status labels are present with the one for `status`.

    Non-status labels keep their order; the new token (if any) goes last.
    """
    result = [label for label in labels if not is_status_label(label)]
    token = status_label(status)
    if token is not None:
        result.append(token)
    return result


def transition_state(old: TaskStatus, new: TaskStatus) -> str | None:
    """State change a move requires, or None when the issue stays as it is."""
    if new == TaskStatus.DONE and old != TaskStatus.DONE:
        return STATE_CLOSED
    if old == TaskStatus.DONE and new != TaskStatus.DONE:
        return STATE_OPEN
    return None


def parse_status(text: str) -> TaskStatus:
    """Parse a status typed by a user ("in-progress", "Review", "done", ...).

    Raises:
        ValueError: If the text names no status
    """
    key = text.strip().lower()
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]
    try:
        return TaskStatus(key)
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        raise ValueError(f"Unknown status '{text}'. Valid: {valid}") from None
