"""Application wiring.

Every collaborator is built once here and handed to the ones that need it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Settings
from .github import GitHubClient
from .models import IssueboardConfig, Project
from .repositories import LocalStore
from .services import BoardService, ConfigService
from .sync import SyncEngine, SyncWorker, UnknownProjectError

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """The wired application: store, client, engine and their consumers."""

    settings: Settings
    config: IssueboardConfig
    config_error: str | None
    store: LocalStore
    client: GitHubClient
    engine: SyncEngine
    board_service: BoardService
    worker: SyncWorker

    def close(self) -> None:
        self.worker.stop()
        self.client.close()
        self.store.close()

    def __enter__(self) -> AppContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def load_config(settings: Settings) -> ConfigService:
    service = ConfigService(settings.config_dir)
    service.get_config()
    return service


def open_store(settings: Settings) -> LocalStore:
    return LocalStore(settings.database)


def build_context(settings: Settings, client: GitHubClient | None = None) -> AppContext:
    """Wire the application.

    Args:
        settings: Resolved settings
        client: Client to use; by default one is created from GITHUB_TOKEN or
            the gh CLI

    Raises:
        GitHubAuthError: If no client is given and no token is available
        StoreError: If the database cannot be opened
    """
    config_service = load_config(settings)
    config = config_service.get_config()

    if client is None:
        client = GitHubClient.from_environment(
            config.github.base_url, timeout=config.sync.request_timeout
        )

    store = open_store(settings)
    engine = SyncEngine(client, store, config.sync)
    worker = SyncWorker(engine, config.sync.interval_seconds)
    logger.debug("Context ready (database %s)", settings.database)

    return AppContext(
        settings=settings,
        config=config,
        config_error=config_service.config_error,
        store=store,
        client=client,
        engine=engine,
        board_service=BoardService(store),
        worker=worker,
    )


def find_project(store: LocalStore, ref: str) -> Project:
    """Look a project up by id or by "owner/repo".

    Raises:
        UnknownProjectError: If neither matches
    """
    project = store.get_project(ref) or store.get_project_by_repo(ref)
    if project is None:
        # repo_ref is stored as GitHub spells it; allow other casing
        for candidate in store.list_projects():
            if candidate.repo_ref.lower() == ref.lower():
                return candidate
        raise UnknownProjectError(f"Project not found: {ref}")
    return project
