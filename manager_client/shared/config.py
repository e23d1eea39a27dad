"""
Shared configuration management for the JWT revocation manager client.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ManagerClientConfig(BaseSettings):
    """Settings for reaching a revocation manager, read from JRM_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="JRM_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Manager service
    manager_url: str = Field(default="http://localhost:8080")
    access_token: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default=10.0, gt=0)

    # HTTP cache
    cache_enabled: bool = Field(default=True)
    cache_max_entries: int = Field(default=256, ge=1)

    # Observability
    log_level: str = Field(default="info")


def get_config(**overrides) -> ManagerClientConfig:
    """Get client configuration, environment first, then explicit overrides."""
    return ManagerClientConfig(**overrides)
