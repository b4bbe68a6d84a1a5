"""Runtime configuration: provider credentials and the region of interest."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Providers whose API works without a key (a key only raises rate limits).
OPTIONAL_CREDENTIALS = frozenset({"brussels_open_data"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ticketmaster_api_key: str | None = Field(
        default=None, validation_alias="TICKETMASTER_API_KEY"
    )
    eventbrite_api_key: str | None = Field(
        default=None, validation_alias="EVENTBRITE_API_KEY"
    )
    meetup_api_key: str | None = Field(default=None, validation_alias="MEETUP_API_KEY")
    facebook_api_key: str | None = Field(
        default=None, validation_alias="FACEBOOK_API_KEY"
    )
    brussels_open_data_api_key: str | None = Field(
        default=None, validation_alias="BRUSSELS_OPEN_DATA_API_KEY"
    )

    # Central Brussels (Grand Place)
    region_lat: float = Field(default=50.8476, validation_alias="REGION_LAT")
    region_lng: float = Field(default=4.3572, validation_alias="REGION_LNG")
    region_radius_km: float = Field(default=10.0, validation_alias="REGION_RADIUS_KM")
    region_label: str = Field(
        default="Brussels, Belgium", validation_alias="REGION_LABEL"
    )
    timezone: str = Field(default="Europe/Brussels", validation_alias="TIMEZONE")

    request_timeout: float = Field(default=30.0, validation_alias="REQUEST_TIMEOUT")
    enabled_providers: str = Field(default="", validation_alias="ENABLED_PROVIDERS")
    user_agent: str = Field(
        default="brussels-events-radar/0.1", validation_alias="USER_AGENT"
    )

    db_path: Path = Field(default=Path("events.db"), validation_alias="DB_PATH")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def get_credential(self, provider_name: str) -> str | None:
        """Return the API key for *provider_name*, or None when unset/blank."""
        value = getattr(self, f"{provider_name}_api_key", None)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_region_center(self) -> tuple[float, float, float]:
        """Return ``(lat, lng, radius_km)`` used to scope provider queries."""
        return (self.region_lat, self.region_lng, self.region_radius_km)

    def provider_names(self) -> list[str]:
        return [p.strip() for p in self.enabled_providers.split(",") if p.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
