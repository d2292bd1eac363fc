"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (e.g. postgresql+asyncpg://...)",
    )

    # Addresses
    default_country_code: str = Field(
        default="BR",
        description="ISO 3166-1 alpha-2 country code applied when an address omits one",
    )

    @field_validator("default_country_code")
    @classmethod
    def validate_default_country_code(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            msg = "default_country_code must be a two-letter ISO 3166-1 code"
            raise ValueError(msg)
        return v

    # Geocoding: general
    geocoder_provider: str = Field(
        default="google",
        description="Primary geocoding provider name",
    )
    geocoder_fallback_provider: str | None = Field(
        default=None,
        description="Provider tried when the primary provider finds no coordinates",
    )
    geocoder_timeout: float = Field(
        default=10.0,
        description="Per-request timeout for geocoding API calls, in seconds",
        gt=0,
    )
    geocoder_retry_times: int = Field(
        default=3,
        description="Attempts per geocoding job before the failure becomes terminal",
        gt=0,
    )
    geocoder_retry_sleep: float = Field(
        default=60.0,
        description="Fixed backoff between geocoding job attempts, in seconds",
        ge=0,
    )
    geocoder_failure_cooldown_hours: float = Field(
        default=24.0,
        description="Hours after a failed geocode during which jobs skip the address",
        ge=0,
    )
    geocoder_unique_for: int = Field(
        default=3600,
        description="Seconds a pending geocoding job holds its per-address uniqueness lock",
        gt=0,
    )

    @field_validator("geocoder_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("geocoder_fallback_provider")
    @classmethod
    def normalize_fallback_provider(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().lower()

    # Geocoding: queue
    geocoder_queue_connection: str | None = Field(
        default=None,
        description="Job queue backend; None or 'in-process' uses the asyncio runner",
    )
    geocoder_queue_name: str = Field(
        default="default",
        description="Queue name geocoding jobs are submitted to",
    )

    # Geocoding: Google Maps
    geocoder_google_api_key: str | None = Field(
        default=None,
        description="Google Maps Geocoding API key",
    )
    geocoder_google_language: str = Field(
        default="",
        description="Language hint for Google Maps results",
    )
    geocoder_google_region: str = Field(
        default="",
        description="Region bias (ccTLD) for Google Maps results",
    )
    geocoder_google_country: str = Field(
        default="",
        description="Country component filter for Google Maps results",
    )

    # Geocoding: Mapbox
    geocoder_mapbox_access_token: str | None = Field(
        default=None,
        description="Mapbox access token",
    )
    geocoder_mapbox_url: str = Field(
        default="https://api.mapbox.com/geocoding/v5/mapbox.places",
        description="Mapbox places endpoint base URL",
    )

    # Geocoding: Nominatim (OpenStreetMap)
    geocoder_nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim base URL (self-hostable)",
    )
    geocoder_nominatim_user_agent: str = Field(
        default="geoaddress/0.1",
        description="User-Agent sent to Nominatim per its usage policy",
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


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
