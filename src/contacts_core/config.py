"""Application settings loaded from the environment."""
from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the contact manager.

    Every field can be overridden with a ``CONTACTS_`` prefixed environment
    variable (e.g. ``CONTACTS_DATABASE_URL``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTACTS_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite:///contacts.db"

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    # Validation limits
    min_password_length: int = 3
    birth_year_min: int = 1900
    birth_year_max: int = 2025

    # Console
    page_size: int = 5

    # Account created by init_db() when the users table is empty
    bootstrap_manager_username: str = "admin"
    bootstrap_manager_password: str = "admin"

    @model_validator(mode="after")
    def check_birth_year_range(self) -> "Settings":
        if self.birth_year_min > self.birth_year_max:
            raise ValueError("birth_year_min must not exceed birth_year_max")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
