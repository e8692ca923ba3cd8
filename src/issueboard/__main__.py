"""CLI entry point for issueboard."""

import argparse
from pathlib import Path

from . import __version__
from .config import Settings
from .logging import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="issueboard",
        description="Kanban board for GitHub repositories, backed by issues and labels",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding issueboard.yml and projects.db (default: ~/.config/issueboard)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    commands.add_parser("projects", help="List tracked projects")
    commands.add_parser("repos", help="List your GitHub repositories")

    link = commands.add_parser("link", help="Track an existing repository")
    link.add_argument("repo", metavar="OWNER/REPO")
    link.add_argument("--description", default=None)

    new_repo = commands.add_parser("new-repo", help="Create a repository and track it")
    new_repo.add_argument("name")
    new_repo.add_argument("--description", default=None)
    new_repo.add_argument("--public", action="store_true", help="Create a public repository")

    remove = commands.add_parser("remove", help="Stop tracking a project")
    remove.add_argument("project", metavar="PROJECT")

    sync = commands.add_parser("sync", help="Pull issues from GitHub")
    sync.add_argument("project", metavar="PROJECT", nargs="?", default=None)
    sync.add_argument(
        "--reconcile",
        action="store_true",
        help="Full pull that also removes tasks whose issue no longer exists",
    )

    board = commands.add_parser("board", help="Show a project's board")
    board.add_argument("project", metavar="PROJECT")

    add = commands.add_parser("add", help="Create a task (a new issue)")
    add.add_argument("project", metavar="PROJECT")
    add.add_argument("title")
    add.add_argument("--body", default=None)
    add.add_argument("--status", default="todo")

    move = commands.add_parser("move", help="Move a task to another column")
    move.add_argument("project", metavar="PROJECT")
    move.add_argument("number", type=int)
    move.add_argument("status")

    edit = commands.add_parser("edit", help="Change a task's title and body")
    edit.add_argument("project", metavar="PROJECT")
    edit.add_argument("number", type=int)
    edit.add_argument("--title", required=True)
    edit.add_argument(
        "--body",
        default=None,
        help="New body (omit to keep the current one, pass \"\" to clear it)",
    )

    commands.add_parser("watch", help="Pull every project on the configured interval")

    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch a parsed command. Returns the exit code."""
    # Import here to keep --help fast
    from .cli.projects import run_link, run_new_repo, run_projects, run_remove, run_repos
    from .cli.sync import run_sync, run_watch
    from .cli.tasks import run_add, run_board, run_edit, run_move

    if args.command == "projects":
        return run_projects(settings)
    if args.command == "repos":
        return run_repos(settings)
    if args.command == "link":
        return run_link(settings, args.repo, args.description)
    if args.command == "new-repo":
        return run_new_repo(settings, args.name, args.description, public=args.public)
    if args.command == "remove":
        return run_remove(settings, args.project)
    if args.command == "sync":
        return run_sync(settings, args.project, reconcile=args.reconcile)
    if args.command == "board":
        return run_board(settings, args.project)
    if args.command == "add":
        return run_add(settings, args.project, args.title, args.body, args.status)
    if args.command == "move":
        return run_move(settings, args.project, args.number, args.status)
    if args.command == "edit":
        return run_edit(settings, args.project, args.number, args.title, args.body)
    if args.command == "watch":
        return run_watch(settings)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.config_dir:
        settings_kwargs["config_dir"] = args.config_dir
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)

    setup_logging(settings.verbose, settings.log_file)

    raise SystemExit(run_command(args, settings))


if __name__ == "__main__":
    main()
