"""Services."""

from .board_service import BoardService
from .config_service import ConfigService

__all__ = ["BoardService", "ConfigService"]
