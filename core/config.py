"""Configuration management for the quotawake service."""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .types import Environment

TRUTHY_VALUES = ("true", "1", "yes", "on")


class Settings(BaseModel):
    """Process-level settings read from the environment."""

    # Environment
    version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production/testing)",
    )

    # API Settings
    api_title: str = Field(default="Quotawake API", description="API title")
    api_version: str = Field(default="1.0.0", description="API version")
    cors_allow_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Bind address for the API")
    port: int = Field(default=8000, description="Port for the API")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    enable_file_logging: bool = Field(
        default=True, description="Whether to write rotating log files"
    )

    # Slot settings file
    settings_path: Path = Field(
        default=Path("settings.json"),
        description="JSON file holding slot configuration and policy",
    )

    # Monitoring
    autostart: bool = Field(
        default=True, description="Start monitoring when the API boots"
    )
    debug: bool = Field(
        default=False, description="Allow plain http:// upstream URLs"
    )

    # Upstream HTTP client
    http_connect_timeout: float = Field(
        default=5.0, description="Connect timeout for upstream requests in seconds"
    )
    http_timeout: float = Field(
        default=15.0, description="Total timeout for upstream requests in seconds"
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        # Tests drive monitoring explicitly
        if self.environment == Environment.TESTING:
            self.autostart = False
            self.enable_file_logging = False

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == Environment.TESTING


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in TRUTHY_VALUES


def load_settings() -> Settings:
    """Load settings from environment variables."""

    # Load .env file if it exists
    load_dotenv()

    # Parse CORS origins from comma-separated string
    cors_origins_str = os.getenv("QUOTAWAKE_CORS_ORIGINS", "*")
    if cors_origins_str == "*":
        cors_origins = ["*"]
    else:
        cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

    return Settings(
        environment=Environment(os.getenv("QUOTAWAKE_ENV", "development")),
        api_title=os.getenv("QUOTAWAKE_API_TITLE", "Quotawake API"),
        api_version=os.getenv("QUOTAWAKE_API_VERSION", "1.0.0"),
        cors_allow_origins=cors_origins,
        host=os.getenv("QUOTAWAKE_HOST", "127.0.0.1"),
        port=int(os.getenv("QUOTAWAKE_PORT", "8000")),
        log_level=os.getenv("QUOTAWAKE_LOG_LEVEL", "INFO").upper(),
        enable_file_logging=_env_flag("QUOTAWAKE_FILE_LOGGING", "true"),
        settings_path=Path(os.getenv("QUOTAWAKE_SETTINGS_PATH", "settings.json")),
        autostart=_env_flag("QUOTAWAKE_AUTOSTART", "true"),
        debug=_env_flag("QUOTAWAKE_DEBUG", "false"),
        http_connect_timeout=float(os.getenv("QUOTAWAKE_HTTP_CONNECT_TIMEOUT", "5.0")),
        http_timeout=float(os.getenv("QUOTAWAKE_HTTP_TIMEOUT", "15.0")),
    )


settings = load_settings()
