"""
Weather data models shared by providers, cache and orchestrator.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from skyfetch.utils import split_comma_list


class WeatherProvider(str, Enum):
    """Supported weather data providers."""

    TOMORROW = "tomorrow"
    OPENMETEO = "openmeteo"


class CacheFreshness(str, Enum):
    """Staleness tier of a cached reading."""

    FRESH = "fresh"  # < 5 min, serve immediately
    STALE = "stale"  # 5-30 min, serve + revalidate
    EMERGENCY = "emergency"  # 30 min - 2 hr, serve with warning
    EXPIRED = "expired"  # > 2 hr, must fetch fresh


class NormalizedWeather(BaseModel):
    """Current conditions normalized across providers."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    temperature: float  # °F
    humidity: float  # %
    pressure: float  # hPa (station pressure)
    wind_speed: float  # mph
    wind_direction: float  # degrees (0-360)
    wind_gust: float  # mph
    altitude: float | None = None  # feet, None when unknown
    location_name: str
    latitude: float
    longitude: float
    observation_time: str  # ISO timestamp
    source: WeatherProvider
    is_manual_override: bool = False


class CachedWeather(NormalizedWeather):
    """A normalized reading as read back from the cache."""

    cached_at: str  # ISO timestamp
    # Derived on every read, never written to the store
    freshness: CacheFreshness = Field(default=CacheFreshness.FRESH, exclude=True)


class WeatherSettings(BaseModel):
    """Caller-supplied provider selection settings."""

    enable_multi_provider: bool = False
    primary_provider: WeatherProvider = WeatherProvider.OPENMETEO
    fallback_order: list[WeatherProvider] = Field(
        default_factory=lambda: [WeatherProvider.TOMORROW, WeatherProvider.OPENMETEO]
    )
    timeout: float = Field(default=10.0, gt=0)  # seconds per provider call

    @field_validator("fallback_order", mode="before")
    @classmethod
    def _split_fallback_order(cls, value):
        return split_comma_list(value)


DEFAULT_WEATHER_SETTINGS = WeatherSettings()
