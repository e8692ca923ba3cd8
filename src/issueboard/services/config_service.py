"""Configuration service for loading issueboard.yml."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..models import IssueboardConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Service for loading and caching application configuration."""

    CONFIG_FILE = "issueboard.yml"

    def __init__(self, config_dir: Path) -> None:
        """Initialize the config service.

        Args:
            config_dir: Directory that may contain issueboard.yml
        """
        self.config_dir = config_dir
        self._config: IssueboardConfig | None = None
        self._config_error: str | None = None

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.CONFIG_FILE

    @property
    def has_config_error(self) -> bool:
        """Check if there was an error loading config."""
        return self._config_error is not None

    @property
    def config_error(self) -> str | None:
        """Get the config error message if any."""
        return self._config_error

    def get_config(self) -> IssueboardConfig:
        """Get configuration, loading from file if not cached."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def reload(self) -> None:
        """Clear cached configuration, forcing reload on next access."""
        self._config = None
        self._config_error = None

    def _load_config(self) -> IssueboardConfig:
        """Load configuration from file or return defaults.

        A broken file never stops the application: the defaults are used
        and the problem is kept in `config_error` for display.
        """
        self._config_error = None

        if not self.config_path.exists():
            logger.debug("No %s found in %s, using defaults", self.CONFIG_FILE, self.config_dir)
            return IssueboardConfig.default()

        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            return self._fallback(f"Invalid YAML in {self.CONFIG_FILE}: {e}")
        except OSError as e:
            return self._fallback(f"Cannot read {self.CONFIG_FILE}: {e}")

        if data is None:
            return self._fallback(f"{self.CONFIG_FILE} is empty")
        if not isinstance(data, dict):
            return self._fallback(f"{self.CONFIG_FILE} must contain a mapping")

        try:
            config = IssueboardConfig(**data)
        except ValidationError as e:
            return self._fallback(f"Invalid settings in {self.CONFIG_FILE}: {e}")

        logger.info(
            "Loaded %s (sync every %d min, api %s)",
            self.CONFIG_FILE,
            config.sync.interval_minutes,
            config.github.base_url,
        )
        return config

    def _fallback(self, message: str) -> IssueboardConfig:
        self._config_error = message
        logger.warning(message)
        return IssueboardConfig.default()
