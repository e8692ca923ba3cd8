"""Application settings."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DATABASE_FILE = "projects.db"


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "issueboard"


class Settings(BaseSettings):
    """Application settings."""

    config_dir: Path = Field(
        default_factory=_default_config_dir,
        description="Directory holding issueboard.yml and the project database",
    )

    database: Path | None = Field(
        default=None,
        description="SQLite database path (default: <config_dir>/projects.db)",
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    model_config = {
        "env_prefix": "ISSUEBOARD_",
    }

    @model_validator(mode="after")
    def default_database(self) -> "Settings":
        if self.database is None:
            self.database = self.config_dir / DATABASE_FILE
        return self
