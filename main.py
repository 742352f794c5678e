"""
skyfetch command-line entry point.

Fetches current conditions through the provider fallback chain and exposes
the circuit/cache diagnostics.
"""

import asyncio
import json
import sys

import typer
from loguru import logger

from skyfetch.services.errors import WeatherError
from skyfetch.services.orchestrator import (
    close_weather_orchestrator,
    get_weather_orchestrator,
)
from skyfetch.settings import global_settings
from skyfetch.utils import get_wind_direction_label

app = typer.Typer(help="Resilient current-conditions weather fetching.")


def setup_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


async def _fetch(latitude: float, longitude: float, multi: bool) -> dict:
    orchestrator = get_weather_orchestrator()
    settings = global_settings.to_weather_settings()

    try:
        if multi:
            result = await orchestrator.fetch_weather_with_fallback(
                latitude, longitude, settings
            )
            for warning in result.warnings:
                logger.warning(warning)
            return {
                "weather": result.weather.model_dump(mode="json", by_alias=True),
                "fromCache": result.from_cache,
                "cacheAge": result.cache_age,
                "warnings": result.warnings,
                "providersAttempted": [p.value for p in result.providers_attempted],
            }

        weather = await orchestrator.fetch_weather(
            latitude, longitude, use_multi_provider=False, settings=settings
        )
        return {"weather": weather.model_dump(mode="json", by_alias=True)}
    finally:
        await close_weather_orchestrator()


@app.callback()
def main(
    log_level: str = typer.Option(
        global_settings.log_level, "--log-level", help="loguru level"
    ),
) -> None:
    setup_logging(log_level)


@app.command()
def fetch(
    latitude: float = typer.Argument(..., min=-90, max=90),
    longitude: float = typer.Argument(..., min=-180, max=180),
    multi: bool = typer.Option(
        global_settings.enable_multi_provider,
        "--multi/--single",
        help="Use the provider fallback chain instead of the default provider",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Fetch current conditions for a point."""
    try:
        payload = asyncio.run(_fetch(latitude, longitude, multi))
    except WeatherError as e:
        logger.error(f"Weather fetch failed: {e}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(payload, indent=2))
        return

    weather = payload["weather"]
    typer.echo(f"{weather['locationName']} ({weather['source']})")
    typer.echo(
        f"  {weather['temperature']}°F, {weather['humidity']}% RH, "
        f"{weather['pressure']} hPa"
    )
    typer.echo(
        f"  Wind {weather['windSpeed']} mph "
        f"{get_wind_direction_label(weather['windDirection'])}, "
        f"gusting {weather['windGust']} mph"
    )
    if payload.get("fromCache"):
        typer.echo(f"  (cached, {payload['cacheAge']} min old)")


@app.command()
def status() -> None:
    """
    Show whether each provider is configured.

    Circuit state is kept in memory per process, so a fresh CLI run always
    reports every circuit as closed.
    """
    orchestrator = get_weather_orchestrator()
    typer.echo(json.dumps(orchestrator.get_provider_status(), indent=2))


@app.command("clear-cache")
def clear_cache() -> None:
    """Remove every cached reading."""
    get_weather_orchestrator().cache.clear_weather_cache()
    logger.info("Weather cache cleared")


if __name__ == "__main__":
    app()
