"""JSON persistence for the application configuration."""

from pathlib import Path

from pydantic import ValidationError

from core.log import get_logger
from core.models.domain.slot import AppConfig, normalize_app_config

logger = get_logger(__name__)


class SettingsError(Exception):
    """Raised when the settings file cannot be read, parsed or written."""

    pass


class SettingsStore:
    """Loads and saves :class:`AppConfig` as a pretty-printed JSON file."""

    def __init__(self, path: Path | str, allow_http: bool = False) -> None:
        """Initialize the store.

        Args:
            path: Location of the settings file
            allow_http: Accept plain http:// URLs during validation
        """
        self.path = Path(path)
        self.allow_http = allow_http

    def validate(self, config: AppConfig) -> AppConfig:
        """Return a clamped and sanitised copy of the configuration."""
        return normalize_app_config(config, allow_http=self.allow_http)

    def load(self) -> AppConfig:
        """Load the settings file, falling back to defaults when missing.

        Raises:
            SettingsError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.info(f"No settings file at {self.path}, using defaults")
            return self.validate(AppConfig())

        logger.debug(f"Loading settings from {self.path}")
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SettingsError(f"Failed to read settings: {e}") from e

        try:
            config = AppConfig.model_validate_json(content)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings file {self.path}: {e}") from e

        return self.validate(config)

    def save(self, config: AppConfig) -> AppConfig:
        """Validate and persist the configuration.

        Returns:
            The configuration as written

        Raises:
            SettingsError: If the file cannot be written
        """
        validated = self.validate(config)
        logger.info(f"Saving settings to {self.path}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                validated.model_dump_json(indent=2) + "\n", encoding="utf-8"
            )
        except OSError as e:
            raise SettingsError(f"Failed to write settings: {e}") from e
        return validated
