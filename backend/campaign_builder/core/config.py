"""
Campaign Builder - Configuration
=================================

All builder settings loaded from environment variables.
Uses pydantic-settings for validation and type conversion.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Builder settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    APP_NAME: str = "Campaign Builder"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ==========================================================================
    # Backend API
    # ==========================================================================
    API_BASE_URL: str = "http://localhost:3000"
    API_V1_PREFIX: str = "/api/v1"
    API_TIMEOUT_SECONDS: float = 30.0

    # Session auth headers (X-Auth-Token / X-User-Email / X-Company-Id)
    API_AUTH_TOKEN: Optional[str] = None
    API_USER_EMAIL: Optional[str] = None
    API_COMPANY_ID: Optional[str] = None

    # ==========================================================================
    # Builder
    # ==========================================================================
    DEFAULT_PHASE_NAME: str = "Untitled"

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @computed_field  # type: ignore[misc]
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @computed_field  # type: ignore[misc]
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @computed_field  # type: ignore[misc]
    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
