"""
WeatherOrchestrator - Multi-provider weather fetching with fallback.

Flow:
1. Check cache first (if fresh, return immediately)
2. Try primary provider (if its circuit admits a request)
3. Try fallback providers in order
4. If all fail, return usable cached data with warnings
5. If no usable cache, raise ALL_PROVIDERS_FAILED
"""

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

from loguru import logger

from skyfetch.models import (
    DEFAULT_WEATHER_SETTINGS,
    CachedWeather,
    CacheFreshness,
    NormalizedWeather,
    WeatherProvider,
    WeatherSettings,
)
from skyfetch.services.cache import (
    WeatherCacheManager,
    get_cache_age_minutes,
    should_use_cache,
)
from skyfetch.services.circuit_breaker import CircuitBreakerRegistry
from skyfetch.services.errors import WeatherError, WeatherErrorCode
from skyfetch.services.storage import JsonFileStore, MemoryStore

if TYPE_CHECKING:
    from skyfetch.datasource.base import BaseWeatherProvider
    from skyfetch.settings import Settings

ElevationLookup = Callable[[float, float], Awaitable[float | None]]


@dataclass
class ProviderResult:
    """Outcome of a single provider attempt."""

    provider: WeatherProvider
    success: bool
    duration_ms: float
    data: NormalizedWeather | None = None
    error: WeatherError | None = None


@dataclass
class OrchestratorResult:
    """Result from fetch_weather_with_fallback."""

    weather: NormalizedWeather
    from_cache: bool
    cache_age: int | None = None  # minutes
    warnings: list[str] = field(default_factory=list)
    providers_attempted: list[WeatherProvider] = field(default_factory=list)


class WeatherOrchestrator:
    """
    Coordinates weather providers with caching, circuit breakers and fallback.

    Usage:
        orchestrator = WeatherOrchestrator(
            providers=[OpenMeteoProvider(), TomorrowProvider(api_key=key)],
            cache=WeatherCacheManager(JsonFileStore(path)),
        )

        result = await orchestrator.fetch_weather_with_fallback(
            lat, lon, WeatherSettings(primary_provider=WeatherProvider.TOMORROW)
        )
    """

    def __init__(
        self,
        providers: Iterable["BaseWeatherProvider"],
        cache: WeatherCacheManager | None = None,
        circuit_breakers: CircuitBreakerRegistry | None = None,
        elevation_lookup: ElevationLookup | None = None,
        default_provider: WeatherProvider = WeatherProvider.OPENMETEO,
    ):
        self._providers: dict[WeatherProvider, "BaseWeatherProvider"] = {
            p.provider: p for p in providers
        }
        self._cache = cache or WeatherCacheManager()
        self._circuit_breakers = circuit_breakers or CircuitBreakerRegistry()
        self._default_provider = default_provider

        if elevation_lookup is None:
            elevation_source = self._providers.get(WeatherProvider.OPENMETEO)
            elevation_lookup = getattr(elevation_source, "get_elevation", None)
        self._elevation_lookup = elevation_lookup

    @property
    def cache(self) -> WeatherCacheManager:
        return self._cache

    @property
    def circuit_breakers(self) -> CircuitBreakerRegistry:
        return self._circuit_breakers

    def get_provider(self, provider: WeatherProvider) -> "BaseWeatherProvider | None":
        return self._providers.get(provider)

    async def fetch_weather_with_fallback(
        self,
        latitude: float,
        longitude: float,
        settings: WeatherSettings | None = None,
    ) -> OrchestratorResult:
        """
        Fetch current conditions, falling back across providers and cache.

        Raises:
            WeatherError: ALL_PROVIDERS_FAILED when no provider succeeded and
                no usable cached reading exists
        """
        settings = settings or DEFAULT_WEATHER_SETTINGS
        warnings: list[str] = []
        providers_attempted: list[WeatherProvider] = []

        cached = self._cache.get_cached_weather(latitude, longitude)

        if cached is not None and cached.freshness == CacheFreshness.FRESH:
            logger.debug(f"Serving fresh cached weather from {cached.source.value}")
            return self._from_cache(cached, [], [])

        elevation = await self._resolve_elevation(latitude, longitude, cached)

        providers = self._get_providers_to_try(settings)

        if not providers:
            warnings.append("All weather providers are temporarily unavailable")

            if cached is not None and should_use_cache(cached.freshness):
                warnings.append(f"Using {cached.freshness.value} cached data")
                logger.warning(
                    f"All circuits open, serving {cached.freshness.value} cache"
                )
                return self._from_cache(cached, warnings, [])

            raise WeatherError(
                WeatherErrorCode.ALL_PROVIDERS_FAILED,
                "All weather providers failed and no cached data available",
            )

        for provider in providers:
            providers_attempted.append(provider)

            result = await self._fetch_from_provider(
                provider, latitude, longitude, elevation, settings.timeout
            )

            if result.success and result.data is not None:
                self._circuit_breakers.record_success(provider)
                self._cache.cache_weather(result.data)
                logger.info(
                    f"Fetched weather from {provider.value} "
                    f"in {result.duration_ms:.0f}ms"
                )
                return OrchestratorResult(
                    weather=result.data,
                    from_cache=False,
                    warnings=warnings,
                    providers_attempted=providers_attempted,
                )

            self._circuit_breakers.record_failure(provider)
            message = result.error.message if result.error else "Unknown error"
            warnings.append(f"{provider.value}: {message}")
            logger.warning(f"Weather provider {provider.value} failed: {message}")

        if cached is not None and should_use_cache(cached.freshness):
            warnings.append(
                f"All providers failed, using {cached.freshness.value} cached data"
            )
            return self._from_cache(cached, warnings, providers_attempted)

        raise WeatherError(
            WeatherErrorCode.ALL_PROVIDERS_FAILED,
            f"All providers failed: {'; '.join(warnings)}",
        )

    async def fetch_weather(
        self,
        latitude: float,
        longitude: float,
        use_multi_provider: bool = False,
        settings: WeatherSettings | None = None,
    ) -> NormalizedWeather:
        """
        Main entry point.

        Single-provider mode calls the default provider directly, with no
        circuit breaker or fallback. Multi-provider mode goes through
        fetch_weather_with_fallback and logs its warnings.
        """
        if not use_multi_provider:
            adapter = self._providers.get(self._default_provider)
            weather = (
                await adapter.fetch(latitude, longitude)
                if adapter is not None
                else None
            )
            if weather is None:
                raise WeatherError(
                    WeatherErrorCode.NETWORK_ERROR,
                    f"Failed to fetch weather from {self._default_provider.value}",
                    provider=self._default_provider,
                    is_retryable=True,
                )
            self._cache.cache_weather(weather)
            return weather

        result = await self.fetch_weather_with_fallback(latitude, longitude, settings)

        if result.warnings:
            logger.warning(f"Weather fetch warnings: {result.warnings}")

        return result.weather

    def get_provider_status(self) -> dict[str, dict[str, Any]]:
        """Circuit state and configuration of every known provider."""
        status: dict[str, dict[str, Any]] = {}
        for provider in WeatherProvider:
            adapter = self._providers.get(provider)
            status[provider.value] = {
                "state": self._circuit_breakers.get_circuit_state(provider).value,
                "configured": adapter is not None and adapter.is_configured(),
            }
        return status

    def _get_providers_to_try(self, settings: WeatherSettings) -> list[WeatherProvider]:
        """Primary first, then fallbacks, skipping circuits that refuse."""
        providers: list[WeatherProvider] = []

        if self._circuit_breakers.can_request(settings.primary_provider):
            providers.append(settings.primary_provider)

        for provider in settings.fallback_order:
            if provider == settings.primary_provider or provider in providers:
                continue
            if self._circuit_breakers.can_request(provider):
                providers.append(provider)

        return providers

    async def _fetch_from_provider(
        self,
        provider: WeatherProvider,
        latitude: float,
        longitude: float,
        elevation: float | None,
        timeout: float,
    ) -> ProviderResult:
        """Run one provider attempt and classify its outcome."""
        start = time.perf_counter()

        try:
            adapter = self._providers.get(provider)
            if adapter is None or not adapter.is_configured():
                raise WeatherError(
                    WeatherErrorCode.API_ERROR,
                    f"{provider.value} is not configured",
                    provider=provider,
                )

            data = await adapter.fetch(latitude, longitude, elevation, timeout)
            if data is None:
                raise WeatherError(
                    WeatherErrorCode.INVALID_RESPONSE,
                    f"{provider.value} returned no data",
                    provider=provider,
                )

            return ProviderResult(
                provider=provider,
                success=True,
                duration_ms=(time.perf_counter() - start) * 1000,
                data=data,
            )

        except WeatherError as e:
            error = e
        except Exception as e:
            error = WeatherError(
                WeatherErrorCode.NETWORK_ERROR,
                str(e) or type(e).__name__,
                provider=provider,
                is_retryable=True,
            )

        return ProviderResult(
            provider=provider,
            success=False,
            duration_ms=(time.perf_counter() - start) * 1000,
            error=error,
        )

    async def _resolve_elevation(
        self,
        latitude: float,
        longitude: float,
        cached: CachedWeather | None,
    ) -> float | None:
        if cached is not None and cached.altitude is not None:
            return cached.altitude

        if self._elevation_lookup is None:
            return None

        try:
            return await self._elevation_lookup(latitude, longitude)
        except Exception as e:
            logger.debug(f"Elevation lookup failed: {e}")
            return None

    def _from_cache(
        self,
        cached: CachedWeather,
        warnings: list[str],
        providers_attempted: list[WeatherProvider],
    ) -> OrchestratorResult:
        return OrchestratorResult(
            weather=cached,
            from_cache=True,
            cache_age=get_cache_age_minutes(cached.cached_at, self._cache.now()),
            warnings=warnings,
            providers_attempted=providers_attempted,
        )

    async def close(self) -> None:
        """Close provider HTTP clients."""
        for adapter in self._providers.values():
            await adapter.close()
        logger.debug("WeatherOrchestrator closed")

    async def __aenter__(self) -> "WeatherOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def build_weather_orchestrator(
    app_settings: "Settings | None" = None,
) -> WeatherOrchestrator:
    """Wire providers and the cache store from settings."""
    from skyfetch.datasource.openmeteo import OpenMeteoProvider
    from skyfetch.datasource.tomorrow import TomorrowProvider
    from skyfetch.settings import global_settings

    app_settings = app_settings or global_settings

    store = (
        JsonFileStore(app_settings.cache_path)
        if app_settings.cache_path
        else MemoryStore()
    )

    return WeatherOrchestrator(
        providers=[
            OpenMeteoProvider(),
            TomorrowProvider(api_key=app_settings.tomorrow_api_key),
        ],
        cache=WeatherCacheManager(store, debug=app_settings.cache_debug),
    )


# Global orchestrator instance
_global_orchestrator: WeatherOrchestrator | None = None


def get_weather_orchestrator() -> WeatherOrchestrator:
    """Get the global orchestrator instance."""
    global _global_orchestrator
    if _global_orchestrator is None:
        _global_orchestrator = build_weather_orchestrator()
    return _global_orchestrator


async def close_weather_orchestrator() -> None:
    """Close the global orchestrator."""
    global _global_orchestrator
    if _global_orchestrator:
        await _global_orchestrator.close()
        _global_orchestrator = None
