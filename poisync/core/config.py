from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "poisync"
    VERSION: str = "0.1.0"
    BRIEF_DESCRIPTION: str = "Publishes ActiveCaptain points of interest around the vessel as telemetry and resource collections."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")
    LOG_LEVEL: str = Field("INFO", description="Root log level; DEBUG shows per-POI cache hits and fetches")

    # --- Remote POI service ---
    API_BASE_URL: str = Field(
        "https://activecaptain.garmin.com/community/api/v1",
        description="Base URL of the ActiveCaptain community API"
    )
    POI_PAGE_URL_TEMPLATE: str = Field(
        "https://activecaptain.garmin.com/en-US/pois/{poi_id}",
        description="Public page for a single POI"
    )
    USER_AGENT: str = "Signal K ActiveCaptain Plugin"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # --- Sync cycle ---
    # Square box around the vessel. A 50 km radius gives a 100 km diagonal.
    SEARCH_RADIUS_KM: float = 50.0
    ZOOM_LEVEL: int = 17
    # Position data is not immediately available at startup
    STARTUP_DELAY_SECONDS: float = 15.0
    CHECK_EVERY_MINUTES: float = 15.0
    SYNC_ENABLED: bool = Field(True, description="Run the startup and interval timers")
    SKIP_OVERLAPPING_CYCLES: bool = Field(True, description="Skip a cycle if the previous one is still running")

    # --- Notes ---
    NOTE_LENGTH_LIMIT: int = 280
    NOTE_ELLIPSIS: str = "..."

    # --- Resource collections ---
    NOTE_RESOURCES: bool = Field(True, description="Expose POIs as the generic 'notes' collection")
    CATEGORY_RESOURCES: bool = Field(False, description="Expose POIs as per-category 'ac_<Category>' collections")

    # Unset keeps every POI detail for the process lifetime
    CACHE_MAX_ENTRIES: Optional[int] = Field(None, ge=1, description="LRU bound for the POI detail cache")

    # --- Telemetry ---
    TELEMETRY_PATH_PREFIX: str = "pointsOfInterest.activeCaptain"
    ENABLE_REDIS: bool = Field(False, description="Feature flag for Redis telemetry fan-out")
    REDIS_URL: Optional[str] = Field(None, description="Redis URL for telemetry pub/sub")
    TELEMETRY_CHANNEL: str = "poisync:telemetry"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
