"""
Fuel Ledger Configuration

Every tunable lives here, read from the environment (and `.env`) with
pydantic-settings: one settings class per concern, each with its own
prefix.

Only receipt scanning needs a secret. The Gemini settings are built on
first use, so a ledger without an API key still starts and works.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini receipt recognition configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upper bound for a single receipt recognition request"
    )


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: str = Field(
        default="fuel_ledger.json",
        description="Path to the JSON file holding all persisted slots"
    )

    # Slot names, matching the keys of the original browser app
    records_key: str = Field(
        default="fuel_entries",
        description="Slot holding the serialized fuel record collection"
    )
    stations_key: str = Field(
        default="fuel_stations",
        description="Slot holding the station directory"
    )
    pinned_flag_key: str = Field(
        default="fuel_fix_price",
        description="Slot holding the pinned-price toggle"
    )
    pinned_price_key: str = Field(
        default="fuel_saved_price",
        description="Slot holding the last pinned price text"
    )


class AppSettings(BaseSettings):
    """Ledger behaviour, upload limits and view sizes."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )
    min_image_side_px: int = Field(
        default=200,
        ge=1,
        description="Smallest acceptable receipt photo side, in pixels"
    )

    # Ledger defaults
    default_stations: str = Field(
        default="Oman Oil,Shell,Al Maha",
        description="Comma-separated station directory used when none is stored"
    )
    unknown_station_label: str = Field(
        default="Unknown Station",
        description="Station name stored when the user leaves it empty"
    )

    # Station row gesture
    reveal_width: float = Field(
        default=80.0,
        gt=0,
        description="How far a station row can be dragged to expose delete"
    )
    drag_threshold: float = Field(
        default=5.0,
        ge=0,
        description="Pointer travel below which a gesture still counts as a tap"
    )

    # Views
    chart_window: int = Field(
        default=10,
        ge=1,
        description="Number of most recent fill-ups shown in the trend chart"
    )
    recent_activity_count: int = Field(
        default=3,
        ge=1,
        description="Number of fill-ups shown in the dashboard activity list"
    )
    station_search_limit: int = Field(
        default=20,
        ge=1,
        description="Maximum stations listed in the picker"
    )

    @field_validator('unknown_station_label')
    @classmethod
    def validate_station_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("unknown_station_label must not be blank")
        return v.strip()

    @property
    def supported_formats_list(self) -> list[str]:
        """Accepted upload extensions, lower case."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def default_stations_list(self) -> list[str]:
        """Get default stations as a list, in configured order."""
        return [name.strip() for name in self.default_stations.split(",") if name.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """Entry point to the per-concern settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the ledger works without a Gemini key

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """The process-wide settings; `get_settings.cache_clear()` reloads."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load each settings group.

    Returns `{group: ok}` plus `{group}_error` for each failure; the
    settings page shows this as its status list.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
