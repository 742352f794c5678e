"""
WeatherCacheManager - Last-known-good weather readings with freshness tiers.

Features:
- Primary slot for the most recent reading, plus one slot per provider
- Freshness derived from cached_at on every read, never persisted
- Location check so a reading from elsewhere is never served
- One-time migration of the legacy single-key cache format
- Best-effort: store failures are logged, never raised
"""

import json
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from skyfetch.models import (
    CachedWeather,
    CacheFreshness,
    NormalizedWeather,
    WeatherProvider,
)
from skyfetch.services.storage import KeyValueStore, MemoryStore
from skyfetch.utils import get_distance_km, utc_now

FRESH_THRESHOLD_SECONDS = 5 * 60
STALE_THRESHOLD_SECONDS = 30 * 60
EMERGENCY_THRESHOLD_SECONDS = 2 * 60 * 60

CACHE_KEY_PREFIX = "weather_cache_"
PRIMARY_CACHE_KEY = "weather_cache_primary"
LEGACY_CACHE_KEY = "weather_cache"

DEFAULT_MAX_DISTANCE_KM = 5.0


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _age_seconds(cached_at: str | datetime, now: datetime | None) -> float:
    now = parse_timestamp(now) if now is not None else utc_now()
    return (now - parse_timestamp(cached_at)).total_seconds()


def calculate_freshness(
    cached_at: str | datetime,
    now: datetime | None = None,
) -> CacheFreshness:
    """Classify a reading by how long ago it was cached."""
    age = _age_seconds(cached_at, now)

    if age < FRESH_THRESHOLD_SECONDS:
        return CacheFreshness.FRESH
    if age < STALE_THRESHOLD_SECONDS:
        return CacheFreshness.STALE
    if age < EMERGENCY_THRESHOLD_SECONDS:
        return CacheFreshness.EMERGENCY
    return CacheFreshness.EXPIRED


def should_use_cache(freshness: CacheFreshness) -> bool:
    return freshness != CacheFreshness.EXPIRED


def should_refresh_in_background(freshness: CacheFreshness) -> bool:
    # Expired data must be fetched synchronously, not revalidated
    return freshness in (CacheFreshness.STALE, CacheFreshness.EMERGENCY)


def get_freshness_message(freshness: CacheFreshness) -> str | None:
    """User-facing note for a freshness tier."""
    if freshness == CacheFreshness.STALE:
        return "Weather data is slightly outdated. Refreshing..."
    if freshness == CacheFreshness.EMERGENCY:
        return "Using older weather data. Please refresh when possible."
    if freshness == CacheFreshness.EXPIRED:
        return "Weather data has expired. Please refresh."
    return None


def get_cache_age_minutes(
    cached_at: str | datetime,
    now: datetime | None = None,
) -> int:
    """Whole minutes elapsed since cached_at."""
    return int(_age_seconds(cached_at, now) // 60)


def provider_cache_key(provider: WeatherProvider) -> str:
    return f"{CACHE_KEY_PREFIX}{provider.value}"


class WeatherCacheManager:
    """
    Persisted weather cache on top of a key-value store.

    Usage:
        cache = WeatherCacheManager(JsonFileStore("~/.skyfetch/cache.json"))

        cached = cache.get_cached_weather(lat, lon)
        if cached and cached.freshness == CacheFreshness.FRESH:
            return cached

        weather = await provider.fetch(lat, lon)
        cache.cache_weather(weather)
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        clock: Callable[[], datetime] = utc_now,
        debug: bool = False,
    ):
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._debug = debug

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    def cache_weather(self, weather: NormalizedWeather) -> None:
        """Store a reading in the primary slot and its provider slot."""
        try:
            cached = CachedWeather(
                **weather.model_dump(),
                cached_at=self._clock().isoformat(),
                freshness=CacheFreshness.FRESH,
            )
            payload = cached.model_dump_json(by_alias=True)

            self._store.set(PRIMARY_CACHE_KEY, payload)
            self._store.set(provider_cache_key(weather.source), payload)
            self._log(f"SET: {weather.source.value} @ {cached.cached_at}")
        except Exception as e:
            logger.error(f"Failed to cache weather: {e}")

    def get_cached_weather(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
    ) -> CachedWeather | None:
        """
        Read the most recent reading.

        Args:
            latitude: Caller's latitude, enables the location check
            longitude: Caller's longitude, enables the location check
            max_distance_km: Readings farther away than this are ignored

        Returns:
            CachedWeather with freshness recomputed, or None
        """
        try:
            stored = self._store.get(PRIMARY_CACHE_KEY)
            if not stored:
                stored = self._migrate_legacy()
            if not stored:
                self._log("MISS: primary")
                return None

            cached = self._decode(stored)
        except Exception as e:
            logger.error(f"Failed to get cached weather: {e}")
            return None

        if latitude is not None and longitude is not None:
            distance = get_distance_km(
                latitude, longitude, cached.latitude, cached.longitude
            )
            if distance > max_distance_km:
                self._log(f"MISS: cached reading is {distance:.1f}km away")
                return None

        self._log(f"HIT: primary ({cached.freshness.value})")
        return cached

    def get_provider_cache(self, provider: WeatherProvider) -> CachedWeather | None:
        """Read the last reading a specific provider produced."""
        try:
            stored = self._store.get(provider_cache_key(provider))
            if not stored:
                return None
            return self._decode(stored)
        except Exception as e:
            logger.error(f"Failed to get {provider.value} cache: {e}")
            return None

    def clear_weather_cache(self) -> None:
        """Remove the primary slot and every provider slot."""
        keys = [PRIMARY_CACHE_KEY] + [provider_cache_key(p) for p in WeatherProvider]
        try:
            for key in keys:
                self._store.remove(key)
            self._log(f"CLEAR: {len(keys)} slots")
        except Exception as e:
            logger.error(f"Failed to clear weather cache: {e}")

    def _decode(self, stored: str) -> CachedWeather:
        cached = CachedWeather.model_validate_json(stored)
        return cached.model_copy(
            update={"freshness": calculate_freshness(cached.cached_at, self._clock())}
        )

    def _migrate_legacy(self) -> str | None:
        """Move a pre-provider cache entry into the primary slot."""
        legacy_stored = self._store.get(LEGACY_CACHE_KEY)
        if not legacy_stored:
            return None

        legacy = json.loads(legacy_stored)
        migrated = CachedWeather.model_validate(
            {
                **legacy,
                "cachedAt": legacy["observationTime"],
                # The legacy cache was only ever written by Open-Meteo
                "source": WeatherProvider.OPENMETEO.value,
            }
        )
        payload = migrated.model_dump_json(by_alias=True)

        self._store.set(PRIMARY_CACHE_KEY, payload)
        self._store.remove(LEGACY_CACHE_KEY)
        logger.info("Migrated legacy weather cache entry")
        return payload

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[WeatherCacheManager] {message}")
