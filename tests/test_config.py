import pytest

from ev_trip_planner.config import Settings, runtime_config_check, validate_environment_configuration
from ev_trip_planner.exceptions import TripConfigurationError


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("OPENWEATHER_API_KEY", "OPENCHARGEMAP_API_KEY", "SYNTHETIC_SEED"):
            monkeypatch.delenv(name, raising=False)
        settings = make_settings()
        assert settings.DEFAULT_SEARCH_RADIUS_MILES == 6.2
        assert settings.WEATHER_CACHE_TTL_SECONDS == 900
        assert settings.STATION_CACHE_TTL_SECONDS == 300
        assert settings.MAX_ROUTE_ALTERNATIVES == 3
        assert settings.ENERGY_RATE_PER_KWH == 0.15
        assert settings.CHARGE_STOP_TOPUP_PERCENT == 40

    @pytest.mark.parametrize("value", ["", "  ", "demo", "DEMO"])
    def test_placeholder_keys_mean_demo_mode(self, value):
        settings = make_settings(OPENWEATHER_API_KEY=value, OPENCHARGEMAP_API_KEY=value)
        assert settings.OPENWEATHER_API_KEY is None
        assert not settings.weather_live_enabled
        assert not settings.stations_live_enabled

    def test_real_key_enables_live_provider(self):
        settings = make_settings(OPENCHARGEMAP_API_KEY=" abc123 ")
        assert settings.OPENCHARGEMAP_API_KEY == "abc123"
        assert settings.stations_live_enabled

    def test_boolean_from_environment(self, monkeypatch):
        monkeypatch.setenv("SYNTHESIZE_ROUTE_VARIANTS", "off")
        assert make_settings().SYNTHESIZE_ROUTE_VARIANTS is False

    def test_cors_origin_list(self):
        settings = make_settings(CORS_ORIGINS="http://a.example, https://b.example,")
        assert settings.cors_origin_list == ["http://a.example", "https://b.example"]


class TestValidation:
    def test_valid_configuration(self):
        validate_environment_configuration(make_settings())

    def test_rejects_non_http_url(self):
        with pytest.raises(TripConfigurationError) as exc_info:
            validate_environment_configuration(make_settings(OSRM_BASE_URL="router.local:5000"))
        assert "OSRM_BASE_URL" in str(exc_info.value)

    def test_rejects_route_limit_above_point_limit(self):
        with pytest.raises(TripConfigurationError):
            validate_environment_configuration(make_settings(MAX_STATION_RESULTS=10, ROUTE_SAMPLE_MAX_RESULTS=20))

    def test_runtime_check_reports_demo_fallbacks(self):
        status = runtime_config_check(make_settings(OPENWEATHER_API_KEY=None, OPENCHARGEMAP_API_KEY=None))
        assert status["overall_health"] == "degraded"
        assert "weather_to_synthetic" in status["fallbacks_active"]
        assert "stations_to_empty" in status["fallbacks_active"]

    def test_runtime_check_healthy_with_keys(self):
        status = runtime_config_check(make_settings(OPENWEATHER_API_KEY="w", OPENCHARGEMAP_API_KEY="s"))
        assert status["overall_health"] == "healthy"
        assert status["warnings"] == []
