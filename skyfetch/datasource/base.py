"""
Base weather provider interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from skyfetch.models import NormalizedWeather, WeatherProvider
from skyfetch.services.errors import WeatherError, WeatherErrorCode
from skyfetch.services.retry import (
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    fetch_with_timeout,
    with_retry,
)

DEFAULT_TIMEOUT = 10.0


class BaseWeatherProvider(ABC):
    """
    Abstract base class for all weather providers.

    All providers should:
    - Fetch through fetch_with_timeout and with_retry
    - Return a NormalizedWeather
    - Raise WeatherError tagged with their provider on any failure
    """

    retry_config: RetryConfig = DEFAULT_RETRY_CONFIG

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self._http_client = http_client
        self._owns_client = http_client is None
        if retry_config is not None:
            self.retry_config = retry_config

    @property
    @abstractmethod
    def provider(self) -> WeatherProvider:
        """Unique identifier for this provider."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the provider is properly configured."""
        ...

    @abstractmethod
    async def fetch(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> NormalizedWeather:
        """Fetch current conditions for a point."""
        ...

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True)
        return self._http_client

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None,
        timeout: float,
    ) -> Any:
        """GET url and decode JSON, classifying every failure."""
        client = await self._get_http_client()

        try:
            response = await fetch_with_timeout(client, url, timeout, params=params)
        except WeatherError as e:
            if e.provider is None:
                e.provider = self.provider
            raise

        if not response.is_success:
            raise WeatherError.from_http_status(
                response.status_code,
                f"{self.display_name} API error: "
                f"{response.status_code} {response.reason_phrase}",
                self.provider,
            )

        try:
            return response.json()
        except ValueError as e:
            raise WeatherError(
                WeatherErrorCode.PARSE_ERROR,
                f"{self.display_name} returned malformed JSON",
                provider=self.provider,
                http_status=response.status_code,
            ) from e

    async def _fetch_with_retry(
        self,
        operation: Callable[[], Awaitable[NormalizedWeather]],
    ) -> NormalizedWeather:
        """Run operation under the retry policy, wrapping unclassified errors."""
        try:
            return await with_retry(operation, self.retry_config)
        except WeatherError:
            raise
        except Exception as e:
            logger.debug(f"{self.display_name} fetch failed: {e!r}")
            raise WeatherError(
                WeatherErrorCode.NETWORK_ERROR,
                f"{self.display_name} fetch failed: {e}",
                provider=self.provider,
                is_retryable=True,
            ) from e

    def _invalid_response(self) -> WeatherError:
        return WeatherError(
            WeatherErrorCode.INVALID_RESPONSE,
            f"{self.display_name} returned invalid data structure",
            provider=self.provider,
        )

    @property
    def display_name(self) -> str:
        return self.provider.value

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "BaseWeatherProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
