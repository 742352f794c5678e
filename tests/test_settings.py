import pytest
from pydantic import ValidationError

from skyfetch.models import WeatherProvider, WeatherSettings
from skyfetch.services.orchestrator import build_weather_orchestrator
from skyfetch.services.storage import JsonFileStore, MemoryStore
from skyfetch.settings import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings.model_validate({})

        assert settings.tomorrow_api_key == ""
        assert settings.enable_multi_provider is False
        assert settings.primary_provider == WeatherProvider.OPENMETEO
        assert settings.fallback_order == [
            WeatherProvider.TOMORROW,
            WeatherProvider.OPENMETEO,
        ]
        assert settings.timeout == 10.0
        assert settings.log_level == "INFO"

    def test_reads_environment_names(self):
        settings = Settings.model_validate(
            {
                "TOMORROW_IO_API_KEY": "secret",
                "WEATHER_ENABLE_MULTI_PROVIDER": "true",
                "WEATHER_PRIMARY_PROVIDER": "tomorrow",
                "WEATHER_FALLBACK_ORDER": "openmeteo, tomorrow",
                "WEATHER_TIMEOUT": "4.5",
                "WEATHER_CACHE_DEBUG": "1",
                "UNRELATED_VARIABLE": "ignored",
            }
        )

        assert settings.tomorrow_api_key == "secret"
        assert settings.enable_multi_provider is True
        assert settings.primary_provider == WeatherProvider.TOMORROW
        assert settings.fallback_order == [
            WeatherProvider.OPENMETEO,
            WeatherProvider.TOMORROW,
        ]
        assert settings.timeout == 4.5
        assert settings.cache_debug is True

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"WEATHER_PRIMARY_PROVIDER": "darksky"})

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"WEATHER_TIMEOUT": "0"})

    def test_to_weather_settings(self):
        settings = Settings.model_validate(
            {"WEATHER_PRIMARY_PROVIDER": "tomorrow", "WEATHER_TIMEOUT": "3"}
        )

        weather_settings = settings.to_weather_settings()

        assert isinstance(weather_settings, WeatherSettings)
        assert weather_settings.primary_provider == WeatherProvider.TOMORROW
        assert weather_settings.timeout == 3.0


class TestBuildOrchestrator:
    def test_file_backed_cache(self, tmp_path):
        path = tmp_path / "weather.json"
        orchestrator = build_weather_orchestrator(
            Settings.model_validate({"WEATHER_CACHE_PATH": str(path)})
        )

        store = orchestrator.cache.store
        assert isinstance(store, JsonFileStore)
        assert store.path == path

    def test_memory_cache_without_path(self):
        orchestrator = build_weather_orchestrator(
            Settings.model_validate({"WEATHER_CACHE_PATH": ""})
        )

        assert isinstance(orchestrator.cache.store, MemoryStore)

    @pytest.mark.parametrize("api_key, configured", [("secret", True), ("", False)])
    def test_tomorrow_configured_by_api_key(self, api_key, configured):
        orchestrator = build_weather_orchestrator(
            Settings.model_validate(
                {"TOMORROW_IO_API_KEY": api_key, "WEATHER_CACHE_PATH": ""}
            )
        )

        status = orchestrator.get_provider_status()
        assert status["tomorrow"]["configured"] is configured
        assert status["openmeteo"]["configured"] is True
