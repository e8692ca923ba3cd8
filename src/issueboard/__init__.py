"""issueboard - Kanban board backed by GitHub issues."""

__version__ = "0.1.0"
