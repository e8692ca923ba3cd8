"""Task commands: show a board, add, move and edit tasks."""

import logging

from ..app import find_project, open_store
from ..config import Settings
from ..github import GitHubClientError
from ..models import TaskStatus
from ..repositories import StoreError
from ..services import BoardService
from ..sync import UnknownProjectError, UnknownTaskError, describe_error, parse_status
from ..sync.status import is_status_label
from .context import connect
from .output import error, header, info, muted, success

logger = logging.getLogger(__name__)

_PUSH_ERRORS = (ValueError, LookupError, GitHubClientError, StoreError)


def run_board(settings: Settings, ref: str) -> int:
    """Print a project's board from the local cache. Works offline."""
    try:
        with open_store(settings) as store:
            project = find_project(store, ref)
            board = BoardService(store).load_board(project.id)
    except (UnknownProjectError, StoreError) as e:
        error(describe_error(e))
        return 1

    synced = project.last_synced.strftime("%Y-%m-%d %H:%M UTC") if project.last_synced else "never"
    header(f"{project.repo_ref}  ({board.total} tasks, synced {synced})")
    for status in TaskStatus:
        tasks = board.tasks_for(status)
        print()
        header(f"{status.display_name} ({len(tasks)})")
        if not tasks:
            muted("  (empty)")
        for task in tasks:
            extra = [label for label in task.labels if not is_status_label(label)]
            suffix = f"  [{', '.join(extra)}]" if extra else ""
            print(f"  {task.display_title}{suffix}")
    return 0


def run_add(
    settings: Settings,
    ref: str,
    title: str,
    body: str | None = None,
    status: str = "todo",
) -> int:
    """Create an issue in a project and cache it as a task."""
    try:
        target = parse_status(status)
    except ValueError as e:
        error(str(e))
        return 1

    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            project = find_project(context.store, ref)
            task = context.engine.create_task(project.id, title, body, target)
        except _PUSH_ERRORS as e:
            error(describe_error(e))
            return 1

    success(f"Created {task.display_title} in {target.display_name}")
    if task.url:
        info(task.url)
    return 0


def run_move(settings: Settings, ref: str, issue_number: int, status: str) -> int:
    """Move a task to another column on GitHub and locally."""
    try:
        target = parse_status(status)
    except ValueError as e:
        error(str(e))
        return 1

    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            project = find_project(context.store, ref)
            task = context.engine.move_task(project.id, issue_number, target)
        except UnknownTaskError as e:
            error(describe_error(e))
            info("Run 'issueboard sync' to fetch new issues first")
            return 1
        except _PUSH_ERRORS as e:
            error(describe_error(e))
            return 1

    success(f"Moved {task.display_title} to {target.display_name}")
    return 0


def run_edit(
    settings: Settings,
    ref: str,
    issue_number: int,
    title: str,
    body: str | None = None,
) -> int:
    """Change a task's title and body."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            project = find_project(context.store, ref)
            task = context.engine.edit_task(project.id, issue_number, title, body)
        except _PUSH_ERRORS as e:
            error(describe_error(e))
            return 1

    success(f"Updated {task.display_title}")
    return 0
