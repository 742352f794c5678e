"""
Service layer infrastructure - resilience patterns for weather providers.

Provides:
- WeatherError: Classified failures with retryability
- Retry helpers: Exponential backoff and timeout-bounded HTTP calls
- CircuitBreaker: Stops calling providers that keep failing
- WeatherCacheManager: Last-known-good readings with freshness tiers
- WeatherOrchestrator: Cache-first, circuit-gated provider fallback chain
"""

from skyfetch.services.errors import (
    FATAL_HTTP_CODES,
    RETRYABLE_HTTP_CODES,
    WeatherError,
    WeatherErrorCode,
)
from skyfetch.services.retry import (
    RetryConfig,
    calculate_backoff_delay,
    fetch_with_timeout,
    is_retryable_error,
    with_retry,
)
from skyfetch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from skyfetch.services.storage import JsonFileStore, KeyValueStore, MemoryStore
from skyfetch.services.cache import (
    WeatherCacheManager,
    calculate_freshness,
    get_cache_age_minutes,
    get_freshness_message,
    should_refresh_in_background,
    should_use_cache,
)
from skyfetch.services.orchestrator import (
    OrchestratorResult,
    ProviderResult,
    WeatherOrchestrator,
    close_weather_orchestrator,
    get_weather_orchestrator,
)

__all__ = [
    # Errors
    "FATAL_HTTP_CODES",
    "RETRYABLE_HTTP_CODES",
    "WeatherError",
    "WeatherErrorCode",
    # Retry
    "RetryConfig",
    "calculate_backoff_delay",
    "fetch_with_timeout",
    "is_retryable_error",
    "with_retry",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Storage
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    # Cache
    "WeatherCacheManager",
    "calculate_freshness",
    "get_cache_age_minutes",
    "get_freshness_message",
    "should_refresh_in_background",
    "should_use_cache",
    # Orchestrator
    "OrchestratorResult",
    "ProviderResult",
    "WeatherOrchestrator",
    "close_weather_orchestrator",
    "get_weather_orchestrator",
]
