"""
Reverse geocoding through the free Open-Meteo geocoding API.

API Documentation: https://open-meteo.com/en/docs/geocoding-api
"""

import httpx
from loguru import logger

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/reverse"
DEFAULT_LOCATION_NAME = "Current Location"


async def reverse_geocode(
    client: httpx.AsyncClient,
    latitude: float,
    longitude: float,
    timeout: float = 5.0,
) -> str:
    """
    Human-readable place name for a point.

    Never raises: any failure yields DEFAULT_LOCATION_NAME.
    """
    try:
        response = await client.get(
            GEOCODING_URL,
            params={"latitude": latitude, "longitude": longitude, "count": 1},
            timeout=timeout,
        )
        if response.is_success:
            results = response.json().get("results") or []
            if results:
                place = results[0]
                if place.get("admin1"):
                    return f"{place['name']}, {place['admin1']}"
                return place["name"]
    except Exception as e:
        logger.debug(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")

    return DEFAULT_LOCATION_NAME
