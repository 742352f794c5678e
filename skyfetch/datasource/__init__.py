"""
Weather providers: Open-Meteo (free) and Tomorrow.io (API key).
"""

from skyfetch.datasource.base import BaseWeatherProvider
from skyfetch.datasource.geocoding import reverse_geocode
from skyfetch.datasource.openmeteo import OpenMeteoProvider
from skyfetch.datasource.tomorrow import TomorrowProvider

__all__ = [
    "BaseWeatherProvider",
    "OpenMeteoProvider",
    "TomorrowProvider",
    "reverse_geocode",
]
