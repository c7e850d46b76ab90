"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Caltrain Commuter API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Operator
    agency_id: str = "CT"
    operator_timezone: str = "America/Los_Angeles"

    # Credentials (all optional; missing keys degrade to empty / synthetic data)
    transit_api_key: str = Field(default="")
    weather_api_key: str = Field(default="")

    # Static GTFS timetable
    gtfs_static_url: str = Field(
        default="https://data.trilliumtransit.com/gtfs/caltrain-ca-us/caltrain-ca-us.zip",
        validation_alias=AliasChoices("STATIC_GTFS_URL", "GTFS_STATIC_URL"),
    )
    gtfs_local_dir: str = Field(
        default="data/gtfs",
        validation_alias=AliasChoices("GTFS_LOCAL_DIR"),
    )
    gtfs_static_timeout_sec: int = 60
    gtfs_static_max_retries: int = 2
    timetable_ttl_sec: int = 24 * 60 * 60

    # GTFS-RT trip updates (511.org)
    gtfs_trip_updates_url: str = Field(
        default="http://api.511.org/transit/tripupdates",
        validation_alias=AliasChoices("TRIP_UPDATES_URL", "GTFS_TRIP_UPDATES_URL"),
    )
    gtfs_rt_fetch_timeout_sec: int = 10
    gtfs_rt_max_retries: int = 2
    gtfs_rt_backoff_base: float = 2.0
    trip_updates_ttl_sec: int = 30

    # 511.org service alerts (SIRI JSON)
    service_alerts_url: str = Field(
        default="http://api.511.org/transit/servicealerts",
        validation_alias=AliasChoices("SERVICE_ALERTS_URL"),
    )
    service_alerts_timeout_sec: int = 10
    service_alerts_ttl_sec: int = 300

    # Scraped pages are script-rendered; "http" reads raw markup only (offline use)
    scraper_backend: Literal["browser", "http"] = "browser"
    scraper_selector_timeout_sec: int = 10

    # Caltrain.com alert page
    alerts_page_url: str = "https://www.caltrain.com/alerts"
    alerts_scrape_timeout_sec: int = 15
    alerts_render_wait_ms: int = 2000
    text_alerts_ttl_sec: int = 300

    # Social timeline
    social_feed_enabled: bool = True
    social_timeline_url: str = "https://x.com/CaltrainAlerts/with_replies"
    social_scrape_timeout_sec: int = 30
    social_scroll_passes: int = Field(default=5, ge=1, le=20)
    social_scroll_step_px: int = 4000
    social_render_wait_ms: int = 3000
    social_lookback_hours: int = 24
    social_feed_ttl_sec: int = 300

    # Weather (OpenWeatherMap)
    weather_api_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_timeout_sec: int = 10
    weather_ttl_sec: int = 600

    # Schedule query
    max_trains_returned: int = Field(default=5, ge=1, le=50)

    def missing_optional_env(self) -> list[str]:
        """Return optional credentials that are not configured."""
        missing: list[str] = []

        if not self.transit_api_key:
            missing.append("TRANSIT_API_KEY")
        if not self.weather_api_key:
            missing.append("WEATHER_API_KEY")

        return missing

    @property
    def gtfs_trip_updates_full_url(self) -> str:
        """Get full trip updates URL with API key and agency."""
        url = _with_query_param(self.gtfs_trip_updates_url, "agency", self.agency_id)
        return _with_query_param(url, "api_key", self.transit_api_key)

    @property
    def service_alerts_full_url(self) -> str:
        """Get full service alerts URL with API key, agency and JSON format."""
        url = _with_query_param(self.service_alerts_url, "agency", self.agency_id)
        url = _with_query_param(url, "format", "json")
        return _with_query_param(url, "api_key", self.transit_api_key)


def _with_query_param(url: str, key: str, value: str) -> str:
    """Return URL with a query parameter injected unless already present."""
    if not value:
        return url

    parsed = urlparse(url)
    query_pairs = parse_qsl(parsed.query, keep_blank_values=True)
    if any(existing.lower() == key.lower() for existing, _ in query_pairs):
        return url

    query_pairs.append((key, value))
    new_query = urlencode(query_pairs)
    return urlunparse(parsed._replace(query=new_query))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
