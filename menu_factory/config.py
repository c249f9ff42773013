"""Configuration management using Pydantic settings."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Every value here is only a default. Menus, handlers and session stores
    accept explicit overrides in their constructors.
    """

    model_config = SettingsConfigDict(
        env_prefix="MENU_FACTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""  # Empty = console only
    configure_logging: bool = True

    # State machine
    start_state_name: str = "__START__"
    max_redirect_depth: int = 25
    handle_timeout_seconds: Optional[float] = None  # None = no deadline

    # Session storage
    session_lock_shards: int = 16

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


# Global settings instance
settings = Settings()
