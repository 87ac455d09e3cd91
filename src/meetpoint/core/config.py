"""Application configuration via Pydantic Settings.

All configuration is loaded from ``MEETPOINT_``-prefixed environment
variables (or a ``.env`` file) following 12-factor principles.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEETPOINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Resolver: Nominatim (OpenStreetMap)
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim base URL (public instance or self-hosted)",
    )
    nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    user_agent: str = Field(
        default="meetpoint/1.0",
        min_length=1,
        description="Identifying User-Agent sent with every resolver request",
    )
    resolver_timeout: float = Field(
        default=10.0,
        description="Resolver request timeout in seconds",
        gt=0,
    )
    reverse_fine_zoom: int = Field(
        default=10,
        description="Nominatim zoom for direct reverse lookups (city level)",
        ge=0,
        le=18,
    )
    reverse_coarse_zoom: int = Field(
        default=5,
        description="Nominatim zoom for fallback reverse lookups (state level)",
        ge=0,
        le=18,
    )
    settlement_search_span: float = Field(
        default=1.0,
        description="Half-width in degrees of the box searched for a nearest settlement",
        gt=0,
        le=45,
    )

    # Resolution queue
    pacing_interval: float = Field(
        default=0.3,
        description="Seconds to wait between consecutive forward lookups",
        ge=0,
    )

    # Persistence
    state_dir: str = Field(
        default="./.meetpoint",
        description="Directory for persisted session snapshots",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Write log records as JSON lines instead of formatted text",
    )

    @field_validator("nominatim_base_url")
    @classmethod
    def validate_nominatim_base_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            msg = "nominatim_base_url must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
