"""
Open-Meteo weather provider.

API Documentation: https://open-meteo.com/en/docs
Free, no API key required. Returns station pressure (surface_pressure) and
the grid cell elevation, which other providers lack.
"""

from datetime import datetime, timezone
from typing import Any

from loguru import logger

from skyfetch.datasource.base import DEFAULT_TIMEOUT, BaseWeatherProvider
from skyfetch.datasource.geocoding import reverse_geocode
from skyfetch.models import NormalizedWeather, WeatherProvider
from skyfetch.services.retry import fetch_with_timeout

METERS_TO_FEET = 3.28084

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,surface_pressure,"
    "wind_speed_10m,wind_direction_10m,wind_gusts_10m"
)


class OpenMeteoProvider(BaseWeatherProvider):
    """
    Open-Meteo current conditions.

    Usage:
        async with OpenMeteoProvider() as provider:
            weather = await provider.fetch(30.2672, -97.7431)
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    ELEVATION_TIMEOUT = 5.0

    @property
    def provider(self) -> WeatherProvider:
        return WeatherProvider.OPENMETEO

    @property
    def display_name(self) -> str:
        return "Open-Meteo"

    def is_configured(self) -> bool:
        """Open-Meteo doesn't require an API key."""
        return True

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> NormalizedWeather:
        """
        Fetch current conditions from Open-Meteo.

        elevation_feet is ignored: Open-Meteo reports its own elevation.
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": CURRENT_FIELDS,
            "wind_speed_unit": "mph",
            "temperature_unit": "fahrenheit",
        }

        async def do_fetch() -> NormalizedWeather:
            data = await self._get_json(self.BASE_URL, params, timeout)
            return await self._transform_response(data, latitude, longitude)

        return await self._fetch_with_retry(do_fetch)

    async def _transform_response(
        self,
        data: Any,
        latitude: float,
        longitude: float,
    ) -> NormalizedWeather:
        """Transform an Open-Meteo response to NormalizedWeather."""
        if not isinstance(data, dict) or not data.get("current"):
            raise self._invalid_response()

        current = data["current"]
        try:
            elevation = data.get("elevation")
            altitude = (
                round(elevation * METERS_TO_FEET) if elevation is not None else None
            )
            values = {
                "temperature": round(current["temperature_2m"]),
                "humidity": round(current["relative_humidity_2m"]),
                "pressure": round(current["surface_pressure"]),
                "wind_speed": round(current["wind_speed_10m"]),
                "wind_direction": round(current["wind_direction_10m"]),
                "wind_gust": round(current["wind_gusts_10m"]),
            }
        except (KeyError, TypeError) as e:
            logger.warning(f"Open-Meteo response missing field: {e}")
            raise self._invalid_response() from e

        client = await self._get_http_client()
        location_name = await reverse_geocode(client, latitude, longitude)

        return NormalizedWeather(
            **values,
            altitude=altitude,
            location_name=location_name,
            latitude=latitude,
            longitude=longitude,
            observation_time=(
                current.get("time") or datetime.now(timezone.utc).isoformat()
            ),
            source=WeatherProvider.OPENMETEO,
            is_manual_override=False,
        )

    async def get_elevation(self, latitude: float, longitude: float) -> float | None:
        """
        Elevation of a point in feet.

        Returns None on any failure; elevation is an enrichment only.
        """
        try:
            client = await self._get_http_client()
            response = await fetch_with_timeout(
                client,
                self.BASE_URL,
                self.ELEVATION_TIMEOUT,
                params={
                    "latitude": latitude,
                    "longitude": longitude,
                    "current": "temperature_2m",
                },
            )
            if response.is_success:
                elevation = response.json().get("elevation")
                if elevation is not None:
                    return round(elevation * METERS_TO_FEET)
        except Exception as e:
            logger.debug(f"Elevation lookup failed for ({latitude}, {longitude}): {e}")

        return None
