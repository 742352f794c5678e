"""Tests for the per-provider circuit breaker"""

from datetime import timedelta

import pytest

from skyfetch.models import WeatherProvider
from skyfetch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)

OPENMETEO = WeatherProvider.OPENMETEO
TOMORROW = WeatherProvider.TOMORROW


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(OPENMETEO, clock=clock)


def _open(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.config.failure_threshold):
        breaker.record_failure()
    assert breaker.state == CircuitState.OPEN


class TestClosedState:
    def test_starts_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_request() is True
        assert breaker.get_time_until_retry() == 0

    def test_opens_exactly_at_threshold(self, breaker):
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 2

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.failure_count == 0
        assert breaker.can_request() is False

    def test_expired_failures_do_not_count(self, breaker, clock):
        breaker.record_failure()
        clock.advance(seconds=61)
        breaker.record_failure()
        breaker.record_failure()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 2

    def test_failure_exactly_at_window_edge_is_expired(self, breaker, clock):
        breaker.record_failure()
        breaker.record_failure()
        clock.advance(seconds=60)
        breaker.record_failure()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 1

    def test_success_keeps_in_window_failures(self, breaker):
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        assert breaker.failure_count == 2

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

    def test_success_prunes_expired_failures(self, breaker, clock):
        breaker.record_failure()
        clock.advance(seconds=90)
        breaker.record_success()

        assert breaker.failure_count == 0


class TestOpenState:
    def test_blocks_until_recovery_time(self, breaker, clock):
        _open(breaker)

        clock.advance(seconds=29)
        assert breaker.can_request() is False
        assert breaker.state == CircuitState.OPEN

        clock.advance(seconds=1)
        assert breaker.can_request() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_time_until_retry_counts_down(self, breaker, clock):
        _open(breaker)
        assert breaker.get_time_until_retry() == 30

        clock.advance(seconds=10)
        assert breaker.get_time_until_retry() == 20

        clock.advance(seconds=45)
        assert breaker.get_time_until_retry() == 0

    def test_state_property_does_not_transition(self, breaker, clock):
        _open(breaker)
        clock.advance(minutes=5)

        assert breaker.state == CircuitState.OPEN


class TestHalfOpenState:
    @pytest.fixture
    def half_open(self, breaker, clock):
        _open(breaker)
        clock.advance(seconds=30)
        assert breaker.can_request() is True
        return breaker

    def test_admits_probe(self, half_open):
        assert half_open.can_request() is True
        assert half_open.state == CircuitState.HALF_OPEN

    def test_failure_reopens_and_restarts_timer(self, half_open, clock):
        half_open.record_failure()

        assert half_open.state == CircuitState.OPEN
        assert half_open.can_request() is False
        assert half_open.get_time_until_retry() == 30

    def test_success_closes_and_clears_history(self, half_open):
        half_open.record_success()

        assert half_open.state == CircuitState.CLOSED
        assert half_open.failure_count == 0

        # needs a full threshold of fresh failures to reopen
        half_open.record_failure()
        half_open.record_failure()
        assert half_open.state == CircuitState.CLOSED


class TestCustomConfig:
    def test_threshold_and_timings(self, clock):
        config = CircuitBreakerConfig(
            failure_threshold=1,
            failure_window=timedelta(seconds=10),
            recovery_time=timedelta(seconds=5),
        )
        breaker = CircuitBreaker(TOMORROW, config, clock=clock)

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

        clock.advance(seconds=5)
        assert breaker.can_request() is True


class TestCircuitBreakerRegistry:
    @pytest.fixture
    def registry(self, clock):
        return CircuitBreakerRegistry(clock=clock)

    def test_creates_breakers_lazily(self, registry):
        assert registry.get_all_status() == {}

        assert registry.get_circuit_state(TOMORROW) == CircuitState.CLOSED
        assert set(registry.get_all_status()) == {"tomorrow"}
        assert registry.get(TOMORROW) is registry.get(TOMORROW)

    def test_providers_are_isolated(self, registry):
        for _ in range(3):
            registry.record_failure(OPENMETEO)

        assert registry.can_request(OPENMETEO) is False
        assert registry.can_request(TOMORROW) is True
        assert registry.get_open_circuits() == [OPENMETEO]

    def test_time_until_retry(self, registry, clock):
        for _ in range(3):
            registry.record_failure(OPENMETEO)
        clock.advance(seconds=12)

        assert registry.get_time_until_retry(OPENMETEO) == 18
        assert registry.get_time_until_retry(TOMORROW) == 0

    def test_reset_circuit(self, registry):
        for _ in range(3):
            registry.record_failure(OPENMETEO)

        assert registry.reset_circuit(OPENMETEO) is True
        assert registry.get_circuit_state(OPENMETEO) == CircuitState.CLOSED
        assert registry.reset_circuit(TOMORROW) is False

    def test_reset_all_circuits(self, registry):
        for provider in (OPENMETEO, TOMORROW):
            for _ in range(3):
                registry.record_failure(provider)

        registry.reset_all_circuits()

        assert registry.get_open_circuits() == []
        assert registry.can_request(OPENMETEO) is True
        assert registry.can_request(TOMORROW) is True

    def test_default_config_applies_to_new_breakers(self, clock):
        registry = CircuitBreakerRegistry(
            CircuitBreakerConfig(failure_threshold=5), clock=clock
        )
        for _ in range(4):
            registry.record_failure(TOMORROW)

        assert registry.get_circuit_state(TOMORROW) == CircuitState.CLOSED

    def test_status_snapshot(self, registry):
        registry.record_failure(TOMORROW)
        status = registry.get_all_status()["tomorrow"]

        assert status["state"] == "closed"
        assert status["failure_count"] == 1
        assert status["last_failure"] is not None
        assert status["time_until_retry"] == 0

    def test_config_passed_after_creation_takes_effect(self, registry):
        assert registry.can_request(TOMORROW) is True

        registry.get(TOMORROW, CircuitBreakerConfig(failure_threshold=1))
        registry.record_failure(TOMORROW)

        assert registry.get_circuit_state(TOMORROW) == CircuitState.OPEN

    def test_per_call_config(self, registry, clock):
        strict = CircuitBreakerConfig(
            failure_threshold=1, recovery_time=timedelta(seconds=90)
        )

        registry.record_failure(OPENMETEO, strict)

        assert registry.can_request(OPENMETEO, strict) is False
        assert registry.get_time_until_retry(OPENMETEO, strict) == 90
        clock.advance(seconds=90)
        assert registry.can_request(OPENMETEO, strict) is True
        registry.record_success(OPENMETEO, strict)
        assert registry.get_circuit_state(OPENMETEO) == CircuitState.CLOSED

    def test_config_change_keeps_recorded_failures(self, registry):
        registry.record_failure(TOMORROW)
        registry.record_failure(TOMORROW)

        registry.record_failure(TOMORROW, CircuitBreakerConfig(failure_threshold=5))

        assert registry.get(TOMORROW).failure_count == 3
        assert registry.get_circuit_state(TOMORROW) == CircuitState.CLOSED


class TestDefaultClock:
    def test_timestamps_are_utc(self):
        breaker = CircuitBreaker(TOMORROW)
        breaker.record_failure()

        status = breaker.get_status()

        assert status["last_failure"].endswith("+00:00")
        assert status["last_state_change"].endswith("+00:00")

    def test_registry_breakers_use_utc(self):
        registry = CircuitBreakerRegistry()

        assert registry.get(OPENMETEO).get_status()["last_state_change"].endswith(
            "+00:00"
        )
