import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from skyfetch.models import WeatherProvider, WeatherSettings
from skyfetch.utils import split_comma_list

load_dotenv()


class Settings(BaseModel):
    # Provider Configuration
    tomorrow_api_key: str = Field(default="", alias="TOMORROW_IO_API_KEY")

    # Fetch Configuration
    enable_multi_provider: bool = Field(
        default=False, alias="WEATHER_ENABLE_MULTI_PROVIDER"
    )
    primary_provider: WeatherProvider = Field(
        default=WeatherProvider.OPENMETEO, alias="WEATHER_PRIMARY_PROVIDER"
    )
    fallback_order: list[WeatherProvider] = Field(
        default_factory=lambda: [WeatherProvider.TOMORROW, WeatherProvider.OPENMETEO],
        alias="WEATHER_FALLBACK_ORDER",
    )
    timeout: float = Field(default=10.0, gt=0, alias="WEATHER_TIMEOUT")

    # Cache Configuration
    cache_path: str = Field(
        default="~/.cache/skyfetch/weather.json", alias="WEATHER_CACHE_PATH"
    )
    cache_debug: bool = Field(default=False, alias="WEATHER_CACHE_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("fallback_order", mode="before")
    @classmethod
    def _split_fallback_order(cls, value):
        return split_comma_list(value)

    def to_weather_settings(self) -> WeatherSettings:
        return WeatherSettings(
            enable_multi_provider=self.enable_multi_provider,
            primary_provider=self.primary_provider,
            fallback_order=self.fallback_order,
            timeout=self.timeout,
        )


global_settings = Settings.model_validate(dict(os.environ))
