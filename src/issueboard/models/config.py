"""Configuration models for issueboard.yml."""

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_URL = "https://api.github.com"


class SyncConfig(BaseModel):
    """Settings for the pull/push sync engine."""

    interval_minutes: int = Field(default=5, ge=1, description="Minutes between background pulls")
    auto_create_labels: bool = Field(
        default=True,
        description="Create missing status labels when a repository is linked",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds before a GitHub request is abandoned",
    )

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60.0


class GitHubConfig(BaseModel):
    """Settings for the GitHub API connection."""

    base_url: str = Field(
        default=DEFAULT_API_URL,
        description="REST API root (use a custom URL for GitHub Enterprise)",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"base_url must start with https:// or http://, got '{v}'")
        return v.rstrip("/")


class IssueboardConfig(BaseModel):
    """Root configuration model for issueboard.yml."""

    sync: SyncConfig = Field(default_factory=SyncConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)

    @classmethod
    def default(cls) -> "IssueboardConfig":
        """Configuration used when no file exists."""
        return cls()
