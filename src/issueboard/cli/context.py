"""Shared setup for CLI commands that talk to GitHub."""

from ..app import AppContext, build_context
from ..config import Settings
from ..github import GitHubAuthError
from ..repositories import StoreError
from .output import error, info


def connect(settings: Settings) -> AppContext | None:
    """Build the application context, printing why when that is impossible."""
    try:
        context = build_context(settings)
    except GitHubAuthError as e:
        error(f"GitHub authentication failed: {e}")
        info("Set GITHUB_TOKEN environment variable or run 'gh auth login'")
        return None
    except StoreError as e:
        error(f"Cannot open project database: {e}")
        return None

    if context.config_error:
        info(f"Using default settings: {context.config_error}")
    return context
