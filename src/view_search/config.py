"""Centralized configuration for view-search using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Search requests can override every search-related value here; the settings
    only provide defaults for options the caller leaves out.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Search defaults
    search_default_language: str = Field(default="en", description="Analyzer language used when none is requested")
    search_default_mm: str = Field(default="100%", description="Default minimum-should-match percentage")
    highlighting_pre: str = Field(default="<strong>", description="Marker inserted before highlighted terms")
    highlighting_post: str = Field(default="</strong>", description="Marker inserted after highlighted terms")

    # Persisted index settings
    index_name_prefix: str = Field(default="search-", description="Prefix of persisted index identities")
    view_db_path: str = Field(default=":memory:", description="SQLite database backing the reference view engine")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("search_default_mm")
    @classmethod
    def _check_mm(cls, value: str) -> str:
        try:
            float(value.strip().rstrip("%"))
        except ValueError as exc:
            raise ValueError(f"search_default_mm must be a percentage such as '75%', got {value!r}") from exc
        return value

    @field_validator("index_name_prefix")
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        if not value:
            raise ValueError("index_name_prefix must not be empty")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
