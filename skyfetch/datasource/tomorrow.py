"""
Tomorrow.io weather provider.

API Documentation: https://docs.tomorrow.io/reference/realtime-weather
Requires an API key. Returns station pressure (pressureSurfaceLevel) but no
elevation, so altitude comes from the caller.
"""

from typing import Any

import httpx
from loguru import logger

from skyfetch.datasource.base import DEFAULT_TIMEOUT, BaseWeatherProvider
from skyfetch.datasource.geocoding import reverse_geocode
from skyfetch.models import NormalizedWeather, WeatherProvider
from skyfetch.services.errors import WeatherError, WeatherErrorCode
from skyfetch.services.retry import RetryConfig

# Fewer retries for the paid API
TOMORROW_RETRY_CONFIG = RetryConfig(max_retries=2)


class TomorrowProvider(BaseWeatherProvider):
    """
    Tomorrow.io realtime conditions.

    Usage:
        provider = TomorrowProvider(api_key="...")
        weather = await provider.fetch(lat, lon, elevation_feet=489)
    """

    BASE_URL = "https://api.tomorrow.io/v4/weather/realtime"

    retry_config = TOMORROW_RETRY_CONFIG

    def __init__(
        self,
        api_key: str = "",
        http_client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
    ):
        super().__init__(http_client, retry_config)
        self.api_key = api_key

    @property
    def provider(self) -> WeatherProvider:
        return WeatherProvider.TOMORROW

    @property
    def display_name(self) -> str:
        return "Tomorrow.io"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> NormalizedWeather:
        """Fetch realtime conditions from Tomorrow.io."""
        if not self.is_configured():
            raise WeatherError(
                WeatherErrorCode.API_ERROR,
                "Tomorrow.io API key not configured",
                provider=self.provider,
            )

        params = {
            "location": f"{latitude},{longitude}",
            "apikey": self.api_key,
            "units": "imperial",
        }

        async def do_fetch() -> NormalizedWeather:
            data = await self._get_json(self.BASE_URL, params, timeout)
            return await self._transform_response(
                data, latitude, longitude, elevation_feet
            )

        return await self._fetch_with_retry(do_fetch)

    async def _transform_response(
        self,
        data: Any,
        latitude: float,
        longitude: float,
        elevation_feet: float | None,
    ) -> NormalizedWeather:
        """Transform a Tomorrow.io response to NormalizedWeather."""
        payload = data.get("data") if isinstance(data, dict) else None
        if not isinstance(payload, dict) or not payload.get("values"):
            raise self._invalid_response()

        values = payload["values"]
        try:
            fields = {
                "temperature": round(values["temperature"]),
                "humidity": round(values["humidity"]),
                "pressure": round(values["pressureSurfaceLevel"]),
                "wind_speed": round(values["windSpeed"]),
                "wind_direction": round(values["windDirection"]),
                "wind_gust": round(values["windGust"]),
            }
            observation_time = payload["time"]
        except (KeyError, TypeError) as e:
            logger.warning(f"Tomorrow.io response missing field: {e}")
            raise self._invalid_response() from e

        client = await self._get_http_client()
        location_name = await reverse_geocode(client, latitude, longitude)

        return NormalizedWeather(
            **fields,
            altitude=round(elevation_feet) if elevation_feet is not None else None,
            location_name=location_name,
            latitude=latitude,
            longitude=longitude,
            observation_time=observation_time,
            source=WeatherProvider.TOMORROW,
            is_manual_override=False,
        )
