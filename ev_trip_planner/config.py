from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Any, Optional, Literal
from functools import lru_cache
import logging
from dotenv import load_dotenv

# Explicitly load .env file to ensure environment variables are available
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Environment detection
    APP_ENV: Literal["production", "development"] = Field(
        default="development",
        description="Application environment: production or development"
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level"
    )

    # OpenWeatherMap (live condition provider)
    OPENWEATHER_API_KEY: Optional[str] = None
    OPENWEATHER_BASE_URL: str = Field(
        default="https://api.openweathermap.org/data/2.5",
        description="OpenWeatherMap REST base URL"
    )

    # OpenChargeMap (station provider)
    OPENCHARGEMAP_API_KEY: Optional[str] = None
    OPENCHARGEMAP_BASE_URL: str = Field(
        default="https://api.openchargemap.io/v3",
        description="OpenChargeMap REST base URL"
    )

    # Geocoding and routing collaborators
    NOMINATIM_BASE_URL: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim geocoder base URL"
    )
    NOMINATIM_USER_AGENT: str = Field(
        default="ev-trip-planner/1.0",
        description="User-Agent sent to Nominatim (required by its usage policy)"
    )
    OSRM_BASE_URL: str = Field(
        default="https://router.project-osrm.org",
        description="OSRM routing base URL"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, description="Timeout for outbound HTTP calls")

    # Station discovery tunables
    DEFAULT_SEARCH_RADIUS_MILES: float = Field(default=6.2, gt=0, description="Default station search radius (10 km)")
    MAX_STATION_RESULTS: int = Field(default=50, gt=0, description="Maximum stations requested per point lookup")
    ROUTE_SAMPLE_POINTS: int = Field(default=5, gt=0, description="Maximum polyline sample points for route lookups")
    ROUTE_SAMPLE_MAX_RESULTS: int = Field(default=20, gt=0, description="Maximum stations requested per route sample point")
    STATION_LOOKUP_CONCURRENCY: int = Field(default=3, gt=0, description="Concurrent point lookups along a route")

    # Cache tunables
    WEATHER_CACHE_TTL_SECONDS: float = Field(default=15 * 60, gt=0, description="Condition sample cache lifetime")
    STATION_CACHE_TTL_SECONDS: float = Field(default=5 * 60, gt=0, description="Station lookup cache lifetime")
    CACHE_MAX_ENTRIES: int = Field(default=1024, gt=0, description="Maximum entries held by each cache")

    # Trip planning tunables
    MAX_ROUTE_ALTERNATIVES: int = Field(default=3, gt=0, description="Route alternatives requested from the router")
    ENERGY_RATE_PER_KWH: float = Field(default=0.15, ge=0, description="Flat electricity rate used for cost estimates")
    CHARGE_STOP_TOPUP_PERCENT: float = Field(default=40.0, gt=0, description="Charge percentage added by one stop")
    SYNTHESIZE_ROUTE_VARIANTS: bool = Field(
        default=True,
        description="Fill missing route alternatives with adjusted variants of the primary route"
    )
    SYNTHETIC_SEED: Optional[int] = Field(
        default=None,
        description="Seed for synthetic weather and station enrichment (None uses system entropy)"
    )

    # Provider circuit breakers
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, gt=0)
    CIRCUIT_BREAKER_RECOVERY_SECONDS: float = Field(default=60.0, gt=0)

    # Server settings
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8001, description="Port for the Uvicorn server")
    CORS_ORIGINS: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )
    RATE_LIMIT_PLAN: str = Field(default="30/minute", description="slowapi limit for trip planning")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra="ignore"
    )

    @field_validator('OPENWEATHER_API_KEY', 'OPENCHARGEMAP_API_KEY', mode='before')
    @classmethod
    def normalize_api_key(cls, v):
        """Treat blank and placeholder keys as "not configured" (demo mode)."""
        if v is None:
            return None
        v = str(v).strip()
        if not v or v.lower() == "demo":
            return None
        return v

    @field_validator('SYNTHESIZE_ROUTE_VARIANTS', mode='before')
    @classmethod
    def parse_boolean(cls, v):
        """Handle string boolean values from environment variables."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ('true', '1', 'yes', 'on', 't', 'y')
        return bool(v)

    @property
    def weather_live_enabled(self) -> bool:
        return self.OPENWEATHER_API_KEY is not None

    @property
    def stations_live_enabled(self) -> bool:
        return self.OPENCHARGEMAP_API_KEY is not None

    @property
    def cors_origin_list(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


def runtime_config_check(settings: Settings) -> Dict[str, Any]:
    """Runtime configuration check reporting which providers run in demo mode"""
    status = {
        "overall_health": "healthy",
        "warnings": [],
        "fallbacks_active": [],
    }

    if not settings.weather_live_enabled:
        status["warnings"].append("OPENWEATHER_API_KEY missing - synthetic conditions in use")
        status["fallbacks_active"].append("weather_to_synthetic")

    if not settings.stations_live_enabled:
        status["warnings"].append("OPENCHARGEMAP_API_KEY missing - station lookups disabled (demo mode)")
        status["fallbacks_active"].append("stations_to_empty")

    if status["warnings"]:
        status["overall_health"] = "degraded"

    logger.info(
        "Runtime configuration check completed",
        extra={
            "config_health": status["overall_health"],
            "warnings_count": len(status["warnings"]),
            "fallbacks_count": len(status["fallbacks_active"])
        }
    )
    return status


def validate_environment_configuration(settings: Settings) -> None:
    """
    Validate configuration for the current environment mode.

    Critical errors prevent startup, warnings are logged but allow continuation.

    Raises:
        TripConfigurationError: For critical configuration errors
    """
    from .exceptions import TripConfigurationError

    critical_errors = []
    warnings = []

    if settings.ROUTE_SAMPLE_MAX_RESULTS > settings.MAX_STATION_RESULTS:
        critical_errors.append(
            "ROUTE_SAMPLE_MAX_RESULTS must not exceed MAX_STATION_RESULTS"
        )

    for name in ("OPENWEATHER_BASE_URL", "OPENCHARGEMAP_BASE_URL", "NOMINATIM_BASE_URL", "OSRM_BASE_URL"):
        url = getattr(settings, name)
        if not url.startswith(("http://", "https://")):
            critical_errors.append(f"{name} must be an http(s) URL: {url}")

    cors_origins = settings.CORS_ORIGINS.strip() if settings.CORS_ORIGINS else ""
    if cors_origins and cors_origins != "*":
        for origin in cors_origins.split(','):
            origin = origin.strip()
            if origin and not (origin.startswith('http://') or origin.startswith('https://')):
                warnings.append(f"CORS origin should include protocol: {origin}")

    if critical_errors:
        error_msg = "Critical configuration errors found:\n" + "\n".join(f"- {error}" for error in critical_errors)
        logger.error(error_msg)
        raise TripConfigurationError(error_msg)

    if not settings.weather_live_enabled:
        warnings.append("OPENWEATHER_API_KEY not provided. Condition samples will be synthetic.")
    if not settings.stations_live_enabled:
        warnings.append("OPENCHARGEMAP_API_KEY not provided. Station lookups run in demo mode.")
    if settings.APP_ENV == "production" and settings.SYNTHETIC_SEED is not None:
        warnings.append("SYNTHETIC_SEED is set in production; synthetic data will repeat across restarts")

    for warning in warnings:
        logger.warning(warning)

    logger.info(
        "Configuration summary",
        extra={
            "app_env": settings.APP_ENV,
            "weather_live": settings.weather_live_enabled,
            "stations_live": settings.stations_live_enabled,
            "warnings_count": len(warnings),
            "validation_status": "complete"
        }
    )


@lru_cache()
def get_settings() -> Settings:
    """Dependency for getting settings with validation."""
    from .exceptions import TripConfigurationError
    settings = Settings()

    try:
        validate_environment_configuration(settings)
    except (ValueError, TripConfigurationError) as e:
        raise TripConfigurationError(f"Configuration validation failed: {e}")

    return settings
