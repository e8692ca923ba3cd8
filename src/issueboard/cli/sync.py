"""Sync commands: one-off pull and the background watch loop."""

import logging
import time

from ..app import find_project
from ..config import Settings
from ..models import LinkDone, PullDone, PullResult, PushDone, SyncMessage
from ..repositories import StoreError
from ..sync import UnknownProjectError, describe_error
from .context import connect
from .output import error, header, info, success

logger = logging.getLogger(__name__)


def run_sync(settings: Settings, ref: str | None = None, reconcile: bool = False) -> int:
    """Pull one project, or all of them.

    Args:
        settings: Resolved settings
        ref: Project id or owner/repo; every project when None
        reconcile: Full pull that also drops tasks whose issue is gone

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            if ref is None:
                if reconcile:
                    results = [
                        context.engine.reconcile_project(p.id) for p in context.store.list_projects()
                    ]
                else:
                    results = context.engine.pull_all()
            else:
                project = find_project(context.store, ref)
                header(f"Syncing {project.repo_ref}...")
                if reconcile:
                    results = [context.engine.reconcile_project(project.id)]
                else:
                    results = [context.engine.pull_project(project.id)]
        except (UnknownProjectError, StoreError) as e:
            error(describe_error(e))
            return 1

    if not results:
        info("No projects to sync")
        return 0

    for result in results:
        _print_result(result)
    return 1 if any(r.has_errors for r in results) else 0


def _print_result(result: PullResult) -> None:
    if result.has_errors:
        for message in result.errors:
            error(f"{result.repo_ref}: {message}")
        return
    if result.skipped:
        info(f"{result.repo_ref}: skipped (rate limited)")
        return

    detail = f"{result.pulled} task(s) updated"
    if result.full:
        detail += ", full refresh"
    if result.removed:
        detail += f", {result.removed} removed"
    success(f"{result.repo_ref}: {detail}")


def run_watch(settings: Settings, poll_seconds: float = 1.0) -> int:
    """Pull everything now and then on the configured interval until interrupted."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        worker = context.worker
        header(
            f"Watching {len(context.store.list_projects())} project(s), "
            f"pulling every {context.config.sync.interval_minutes} min (Ctrl+C to stop)"
        )
        worker.start()
        worker.request_pull()
        try:
            while True:
                for message in worker.drain_messages():
                    _print_message(message)
                time.sleep(poll_seconds)
        except KeyboardInterrupt:
            info("Stopping...")
    return 0


def _print_message(message: SyncMessage) -> None:
    if isinstance(message, PullDone):
        if message.error is not None:
            error(describe_error(message.error))
        for result in message.results:
            if result.pulled or result.has_errors or result.removed:
                _print_result(result)
    elif isinstance(message, PushDone):
        if message.ok and message.task is not None:
            success(f"{message.action}: {message.task.display_title}")
        elif message.error is not None:
            error(f"{message.action} failed: {describe_error(message.error)}")
    elif isinstance(message, LinkDone):
        if message.ok and message.project is not None:
            success(f"Linked {message.project.repo_ref}")
        elif message.error is not None:
            error(f"Linking {message.repo_ref} failed: {describe_error(message.error)}")
