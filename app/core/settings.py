from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Google Maps Platform (server key)
    google_maps_api_key: str = Field(default="", alias="GOOGLE_MAPS_API_KEY")

    directions_url: str = Field(
        default="https://maps.googleapis.com/maps/api/directions/json",
        alias="DIRECTIONS_URL",
    )
    places_nearby_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/nearbysearch/json",
        alias="PLACES_NEARBY_URL",
    )
    places_text_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/textsearch/json",
        alias="PLACES_TEXT_URL",
    )
    places_photo_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/photo",
        alias="PLACES_PHOTO_URL",
    )
    photo_max_width_px: int = Field(default=600, alias="PHOTO_MAX_WIDTH_PX")

    # Outbound HTTP
    google_timeout_s: float = Field(default=15.0, alias="GOOGLE_TIMEOUT_S")
    google_transport_retries: int = Field(default=1, alias="GOOGLE_TRANSPORT_RETRIES")

    # Fan-out caps (provider quota backpressure)
    discovery_fanout_limit: int = Field(default=8, alias="DISCOVERY_FANOUT_LIMIT")
    detour_fanout_limit: int = Field(default=4, alias="DETOUR_FANOUT_LIMIT")

    # /api/discover-stops defaults
    discover_days_default: int = Field(default=2, alias="DISCOVER_DAYS_DEFAULT")
    discover_themes_default: str = Field(
        default="hikes,waterfalls,lakes,cafes",
        alias="DISCOVER_THEMES_DEFAULT",
    )
    discover_per_theme_default: int = Field(default=12, alias="DISCOVER_PER_THEME_DEFAULT")
    discover_per_sample_default: int = Field(default=2, alias="DISCOVER_PER_SAMPLE_DEFAULT")
    discover_radius_m_default: int = Field(default=3000, alias="DISCOVER_RADIUS_M_DEFAULT")

    # Dev server (stopfinder-server)
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8080, alias="PORT")

    # CORS (comma list)
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="CORS_ORIGINS",
    )


settings = Settings()
