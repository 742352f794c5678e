"""
CircuitBreaker - Stops calling a weather provider while it keeps failing.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Provider is down, fail fast without attempting
- HALF_OPEN: Testing if provider recovered, allow one probe

Transitions:
- CLOSED → OPEN: When failure_threshold failures fall inside failure_window
- OPEN → HALF_OPEN: On the first can_request() after recovery_time
- HALF_OPEN → CLOSED: On successful probe
- HALF_OPEN → OPEN: On failed probe
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from loguru import logger

from skyfetch.models import WeatherProvider
from skyfetch.utils import utc_now

Clock = Callable[[], datetime]


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 3  # Failures before opening
    failure_window: timedelta = timedelta(seconds=60)  # Window to count failures
    recovery_time: timedelta = timedelta(seconds=30)  # Time before half-open


DEFAULT_CIRCUIT_CONFIG = CircuitBreakerConfig()


class CircuitBreaker:
    """
    Circuit breaker for a single provider.

    Usage:
        cb = CircuitBreaker(WeatherProvider.TOMORROW)

        if cb.can_request():
            try:
                data = await provider.fetch(...)
                cb.record_success()
            except WeatherError:
                cb.record_failure()
    """

    def __init__(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
        clock: Clock = utc_now,
    ):
        self.provider = provider
        self.config = config or DEFAULT_CIRCUIT_CONFIG
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failures: list[datetime] = []
        self._last_failure: datetime | None = None
        self._last_state_change = clock()

    @property
    def state(self) -> CircuitState:
        """Current state, without triggering any transition."""
        return self._state

    @property
    def failure_count(self) -> int:
        return len(self._failures)

    def can_request(self) -> bool:
        """Check if a request is allowed."""
        if self._state == CircuitState.CLOSED:
            return True

        if self._state == CircuitState.OPEN:
            if self._clock() - self._last_state_change >= self.config.recovery_time:
                self._transition(CircuitState.HALF_OPEN)
                logger.info(
                    f"Circuit breaker '{self.provider.value}' transitioned to HALF_OPEN"
                )
                return True
            return False

        # HALF_OPEN: one probe in flight, its outcome decides the next state
        return True

    def record_success(self) -> None:
        """Record a successful request."""
        if self._state == CircuitState.HALF_OPEN:
            self._failures = []
            self._transition(CircuitState.CLOSED)
            logger.info(f"Circuit breaker '{self.provider.value}' CLOSED (recovered)")
        elif self._state == CircuitState.CLOSED:
            self._prune(self._clock())

    def record_failure(self) -> None:
        """Record a failed request."""
        now = self._clock()
        self._last_failure = now

        if self._state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.OPEN)
            logger.warning(
                f"Circuit breaker '{self.provider.value}' re-OPENED after failed probe"
            )
            return

        if self._state == CircuitState.OPEN:
            return

        self._failures.append(now)
        self._prune(now)

        if len(self._failures) >= self.config.failure_threshold:
            count = len(self._failures)
            self._failures = []
            self._transition(CircuitState.OPEN)
            logger.warning(
                f"Circuit breaker '{self.provider.value}' OPENED after {count} failures"
            )

    def get_time_until_retry(self) -> float:
        """Seconds until the circuit will admit a probe (0 unless OPEN)."""
        if self._state != CircuitState.OPEN:
            return 0.0

        elapsed = self._clock() - self._last_state_change
        return max(0.0, (self.config.recovery_time - elapsed).total_seconds())

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "provider": self.provider.value,
            "state": self._state.value,
            "failure_count": len(self._failures),
            "last_failure": (
                self._last_failure.isoformat() if self._last_failure else None
            ),
            "last_state_change": self._last_state_change.isoformat(),
            "time_until_retry": self.get_time_until_retry(),
        }

    def _prune(self, now: datetime) -> None:
        window = self.config.failure_window
        self._failures = [ts for ts in self._failures if now - ts < window]

    def _transition(self, state: CircuitState) -> None:
        self._state = state
        self._last_state_change = self._clock()


class CircuitBreakerRegistry:
    """
    Per-provider circuit breakers, created lazily on first access.

    Usage:
        registry = CircuitBreakerRegistry()
        if registry.can_request(WeatherProvider.OPENMETEO):
            ...
    """

    def __init__(
        self,
        default_config: CircuitBreakerConfig | None = None,
        clock: Clock = utc_now,
    ):
        self._breakers: dict[WeatherProvider, CircuitBreaker] = {}
        self._default_config = default_config or DEFAULT_CIRCUIT_CONFIG
        self._clock = clock

    def get(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """
        Get or create the circuit breaker for a provider.

        A config passed here replaces the one the breaker was created with.
        Recorded failures and state are kept.
        """
        cb = self._breakers.get(provider)
        if cb is None:
            cb = CircuitBreaker(
                provider,
                config or self._default_config,
                clock=self._clock,
            )
            self._breakers[provider] = cb
        elif config is not None and config != cb.config:
            logger.debug(f"Circuit breaker '{provider.value}' config updated: {config}")
            cb.config = config
        return cb

    def can_request(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
    ) -> bool:
        return self.get(provider, config).can_request()

    def record_success(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
    ) -> None:
        self.get(provider, config).record_success()

    def record_failure(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
    ) -> None:
        self.get(provider, config).record_failure()

    def get_circuit_state(self, provider: WeatherProvider) -> CircuitState:
        return self.get(provider).state

    def get_time_until_retry(
        self,
        provider: WeatherProvider,
        config: CircuitBreakerConfig | None = None,
    ) -> float:
        return self.get(provider, config).get_time_until_retry()

    def reset_circuit(self, provider: WeatherProvider) -> bool:
        """Drop a provider's breaker; the next access starts CLOSED."""
        if self._breakers.pop(provider, None) is not None:
            logger.info(f"Circuit breaker '{provider.value}' manually reset")
            return True
        return False

    def reset_all_circuits(self) -> None:
        """Reset all circuit breakers."""
        count = len(self._breakers)
        self._breakers.clear()
        logger.info(f"Reset {count} circuit breakers")

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            provider.value: cb.get_status() for provider, cb in self._breakers.items()
        }

    def get_open_circuits(self) -> list[WeatherProvider]:
        """Providers whose circuit is currently OPEN."""
        return [
            provider
            for provider, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
