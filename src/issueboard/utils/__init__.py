"""Shared utilities."""

from .datetime import from_iso, now_utc, to_github_timestamp, to_iso

__all__ = [
    "from_iso",
    "now_utc",
    "to_github_timestamp",
    "to_iso",
]
