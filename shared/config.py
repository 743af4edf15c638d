"""
Shared configuration management for the client icons back office.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ICONS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Condition authoring limits
    max_condition_depth: int = Field(default=10, ge=1)
    max_group_size: int = Field(default=50, ge=1)

    # Bulk recompute
    recompute_concurrency: int = Field(default=8, ge=1)

    # Observability
    metrics_enabled: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "client_icons"


@lru_cache(maxsize=1)
def get_config() -> ServiceConfig:
    """Get configuration for the client icons service."""
    return ServiceConfig()
