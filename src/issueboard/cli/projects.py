"""Project commands: list, link, create and remove tracked repositories."""

import logging

from ..app import find_project, open_store
from ..config import Settings
from ..github import GitHubClientError
from ..repositories import StoreError
from ..services import BoardService
from ..sync import UnknownProjectError, describe_error
from .context import connect
from .output import error, header, info, muted, success

logger = logging.getLogger(__name__)


def run_projects(settings: Settings) -> int:
    """List tracked projects with their per-column counts. Works offline."""
    try:
        with open_store(settings) as store:
            projects = store.list_projects()
            board_service = BoardService(store)
            if not projects:
                info("No projects yet. Link one with 'issueboard link OWNER/REPO'")
                return 0

            header(f"{len(projects)} project(s)")
            for project in projects:
                counts = board_service.task_counts(project.id)
                synced = (
                    project.last_synced.strftime("%Y-%m-%d %H:%M UTC")
                    if project.last_synced
                    else "never"
                )
                print(f"  {project.repo_ref}  ({counts.total} tasks, synced {synced})")
                summary = ", ".join(
                    f"{status.display_name} {count}" for status, count in counts.items() if count
                )
                if summary:
                    muted(f"    {summary}")
                muted(f"    id {project.id}")
    except StoreError as e:
        error(describe_error(e))
        return 1
    return 0


def run_link(settings: Settings, repo_ref: str, description: str | None = None) -> int:
    """Link an existing repository and pull its issues."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        header(f"Linking {repo_ref}...")
        try:
            project = context.engine.link_project(repo_ref, description)
        except (ValueError, GitHubClientError, StoreError) as e:
            error(describe_error(e))
            return 1

        success(f"Linked {project.repo_ref}")
        label_error = context.engine.error_for(project.id)
        if label_error:
            info(label_error)

        result = context.engine.pull_project(project.id)
        for message in result.errors:
            error(message)
        if result.has_errors:
            return 1
        success(f"Pulled {result.pulled} task(s)")
    return 0


def run_new_repo(
    settings: Settings,
    name: str,
    description: str | None = None,
    public: bool = False,
) -> int:
    """Create a repository on GitHub and track it."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        header(f"Creating repository {name}...")
        try:
            project = context.engine.create_project(name, description, private=not public)
        except (ValueError, GitHubClientError, StoreError) as e:
            error(describe_error(e))
            return 1
        success(f"Created and linked {project.repo_ref}")
    return 0


def run_remove(settings: Settings, ref: str) -> int:
    """Stop tracking a project. Nothing is deleted on GitHub."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            project = find_project(context.store, ref)
            context.engine.remove_project(project.id)
        except (UnknownProjectError, StoreError) as e:
            error(describe_error(e))
            return 1

    success(f"Removed {project.repo_ref} (the repository on GitHub is unchanged)")
    return 0


def run_repos(settings: Settings) -> int:
    """List the authenticated user's repositories, marking tracked ones."""
    context = connect(settings)
    if context is None:
        return 1

    with context:
        try:
            repos = context.client.list_repos()
            tracked = {p.repo_ref.lower() for p in context.store.list_projects()}
        except (GitHubClientError, StoreError) as e:
            error(describe_error(e))
            return 1

    header(f"{len(repos)} repositories")
    for repo in repos:
        marker = "*" if repo.full_name.lower() in tracked else " "
        visibility = "private" if repo.private else "public"
        print(f" {marker} {repo.full_name}  ({visibility}, {repo.open_issues_count} open)")
    muted("* tracked")
    return 0
