"""Test doubles shared across the suite."""

from datetime import datetime, timedelta, timezone

import httpx

from skyfetch.datasource.base import DEFAULT_TIMEOUT, BaseWeatherProvider
from skyfetch.models import NormalizedWeather, WeatherProvider
from skyfetch.services.retry import RetryConfig

AUSTIN = (30.2672, -97.7431)

NO_DELAY_RETRY = RetryConfig(max_retries=2, base_delay=0, max_delay=0, jitter=0)

GEOCODING_HOST = "geocoding-api.open-meteo.com"

AUSTIN_PLACE = {"results": [{"name": "Austin", "admin1": "Texas"}]}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_weather(**overrides) -> NormalizedWeather:
    values = {
        "temperature": 72,
        "humidity": 45,
        "pressure": 1002,
        "wind_speed": 8,
        "wind_direction": 225,
        "wind_gust": 14,
        "altitude": 489,
        "location_name": "Austin, Texas",
        "latitude": AUSTIN[0],
        "longitude": AUSTIN[1],
        "observation_time": "2026-03-14T12:00:00+00:00",
        "source": WeatherProvider.OPENMETEO,
        "is_manual_override": False,
    }
    values.update(overrides)
    return NormalizedWeather(**values)


class FakeProvider(BaseWeatherProvider):
    """
    Provider that replays scripted outcomes.

    Each fetch pops the next item from results: exceptions are raised,
    anything else is returned. With no script left it returns a reading
    tagged with its own provider.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        results: list | None = None,
        configured: bool = True,
    ):
        super().__init__()
        self._provider = provider
        self._configured = configured
        self.results = list(results or [])
        self.calls: list[dict] = []

    @property
    def provider(self) -> WeatherProvider:
        return self._provider

    def is_configured(self) -> bool:
        return self._configured

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> NormalizedWeather:
        self.calls.append(
            {
                "latitude": latitude,
                "longitude": longitude,
                "elevation_feet": elevation_feet,
                "timeout": timeout,
            }
        )
        if self.results:
            item = self.results.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        return make_weather(
            source=self._provider,
            latitude=latitude,
            longitude=longitude,
            altitude=elevation_feet,
        )


class Router:
    """
    httpx.MockTransport handler keyed by host.

    Each host maps to a list of responses (or exceptions) served in order;
    the last one repeats once the list runs out. Geocoding answers with
    Austin unless rerouted.
    """

    def __init__(self):
        self.routes: dict[str, list] = {
            GEOCODING_HOST: [httpx.Response(200, json=AUSTIN_PLACE)]
        }
        self.requests: list[httpx.Request] = []

    def route(self, host: str, *responses) -> None:
        self.routes[host] = list(responses)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.host)
        if not queue:
            return httpx.Response(404)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        # a Response can only be sent once
        return httpx.Response(
            item.status_code, headers=item.headers, content=item.content
        )
