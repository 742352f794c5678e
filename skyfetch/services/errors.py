"""
Weather service exceptions and HTTP status classification.
"""

from enum import Enum
from typing import Any

from skyfetch.models import WeatherProvider

RETRYABLE_HTTP_CODES = frozenset({408, 429, 500, 502, 503, 504})
FATAL_HTTP_CODES = frozenset({400, 401, 403, 404, 405, 422})


class WeatherErrorCode(str, Enum):
    """Failure classes for weather fetching."""

    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    PROVIDER_DOWN = "PROVIDER_DOWN"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"


class WeatherError(Exception):
    """Classified failure raised by providers and the orchestrator."""

    def __init__(
        self,
        code: WeatherErrorCode,
        message: str,
        provider: WeatherProvider | None = None,
        http_status: int | None = None,
        is_retryable: bool = False,
    ):
        self.code = code
        self.message = message
        self.provider = provider
        self.http_status = http_status
        self.is_retryable = is_retryable
        super().__init__(message)

    @classmethod
    def from_http_status(
        cls,
        status: int,
        message: str,
        provider: WeatherProvider,
    ) -> "WeatherError":
        """Classify a non-2xx response."""
        if status == 429:
            code = WeatherErrorCode.RATE_LIMITED
        elif status >= 500:
            code = WeatherErrorCode.PROVIDER_DOWN
        else:
            code = WeatherErrorCode.API_ERROR

        return cls(
            code,
            message,
            provider=provider,
            http_status=status,
            is_retryable=status in RETRYABLE_HTTP_CODES,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "provider": self.provider.value if self.provider else None,
            "http_status": self.http_status,
            "is_retryable": self.is_retryable,
        }

    def __repr__(self) -> str:
        return (
            f"WeatherError(code={self.code.value}, provider="
            f"{self.provider.value if self.provider else None}, "
            f"http_status={self.http_status}, message={self.message!r})"
        )
