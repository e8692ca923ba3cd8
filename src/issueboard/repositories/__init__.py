"""Repository layer for data access."""

from .local_store import LocalStore, StoreError

__all__ = [
    "LocalStore",
    "StoreError",
]
