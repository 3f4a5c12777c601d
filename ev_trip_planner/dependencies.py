"""
Dependency Injection Container for the EV trip planner.

The container builds the service graph lazily from settings and owns the
lifecycle of the outbound HTTP clients. Tests construct a container directly
and replace collaborators before first use.
"""

import logging
import random
from typing import Optional

from .config import Settings
from .error_handling import CircuitBreaker
from .nominatim_client import NominatimConfig, NominatimGeocoder
from .openchargemap_client import OpenChargeMapClient, OpenChargeMapConfig
from .openweather_client import OpenWeatherClient, OpenWeatherConfig
from .osrm_client import OSRMConfig, OSRMRouter
from .services.condition_sampler import ConditionSampler
from .services.station_aggregator import StationAggregator
from .services.trip_orchestrator import TripOrchestrator
from .services.trip_store import InMemoryTripStore
from .vehicle_catalog import VehicleCatalog

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Dependency injection container that manages service lifecycle and dependencies.

    Providers without an API key are left unset: the condition sampler then
    runs synthetic only and the station aggregator runs in demo mode.
    """

    def __init__(self, settings: Settings, rng: Optional[random.Random] = None):
        self.settings = settings
        self.rng = rng or random.Random(settings.SYNTHETIC_SEED)

        self._catalog: Optional[VehicleCatalog] = None
        self._geocoder: Optional[NominatimGeocoder] = None
        self._router: Optional[OSRMRouter] = None
        self._weather_client: Optional[OpenWeatherClient] = None
        self._station_client: Optional[OpenChargeMapClient] = None
        self._condition_sampler: Optional[ConditionSampler] = None
        self._station_aggregator: Optional[StationAggregator] = None
        self._trip_store: Optional[InMemoryTripStore] = None
        self._trip_orchestrator: Optional[TripOrchestrator] = None

        logger.info(
            f"ServiceContainer initialized (weather live: {settings.weather_live_enabled}, "
            f"stations live: {settings.stations_live_enabled})"
        )

    def _circuit_breaker(self, name: str) -> CircuitBreaker:
        return CircuitBreaker(
            name,
            failure_threshold=self.settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=self.settings.CIRCUIT_BREAKER_RECOVERY_SECONDS,
        )

    @property
    def catalog(self) -> VehicleCatalog:
        if self._catalog is None:
            self._catalog = VehicleCatalog()
        return self._catalog

    @property
    def geocoder(self) -> NominatimGeocoder:
        if self._geocoder is None:
            self._geocoder = NominatimGeocoder(NominatimConfig(
                base_url=self.settings.NOMINATIM_BASE_URL,
                user_agent=self.settings.NOMINATIM_USER_AGENT,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ))
            logger.info("NominatimGeocoder created")
        return self._geocoder

    @property
    def router(self) -> OSRMRouter:
        if self._router is None:
            self._router = OSRMRouter(OSRMConfig(
                base_url=self.settings.OSRM_BASE_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ))
            logger.info("OSRMRouter created")
        return self._router

    @property
    def weather_client(self) -> Optional[OpenWeatherClient]:
        """Live weather provider, or None when no API key is configured"""
        if self._weather_client is None and self.settings.weather_live_enabled:
            self._weather_client = OpenWeatherClient(OpenWeatherConfig(
                api_key=self.settings.OPENWEATHER_API_KEY,
                base_url=self.settings.OPENWEATHER_BASE_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ))
            logger.info("OpenWeatherClient created")
        return self._weather_client

    @property
    def station_client(self) -> Optional[OpenChargeMapClient]:
        """Station provider, or None in demo mode"""
        if self._station_client is None and self.settings.stations_live_enabled:
            self._station_client = OpenChargeMapClient(OpenChargeMapConfig(
                api_key=self.settings.OPENCHARGEMAP_API_KEY,
                base_url=self.settings.OPENCHARGEMAP_BASE_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ))
            logger.info("OpenChargeMapClient created")
        return self._station_client

    @property
    def condition_sampler(self) -> ConditionSampler:
        if self._condition_sampler is None:
            self._condition_sampler = ConditionSampler(
                provider=self.weather_client,
                ttl_seconds=self.settings.WEATHER_CACHE_TTL_SECONDS,
                max_entries=self.settings.CACHE_MAX_ENTRIES,
                rng=self.rng,
                circuit_breaker=self._circuit_breaker("weather"),
            )
            logger.info("ConditionSampler created")
        return self._condition_sampler

    @property
    def station_aggregator(self) -> StationAggregator:
        if self._station_aggregator is None:
            self._station_aggregator = StationAggregator(
                provider=self.station_client,
                ttl_seconds=self.settings.STATION_CACHE_TTL_SECONDS,
                max_entries=self.settings.CACHE_MAX_ENTRIES,
                default_radius_miles=self.settings.DEFAULT_SEARCH_RADIUS_MILES,
                default_max_results=self.settings.MAX_STATION_RESULTS,
                route_sample_points=self.settings.ROUTE_SAMPLE_POINTS,
                route_sample_max_results=self.settings.ROUTE_SAMPLE_MAX_RESULTS,
                concurrency=self.settings.STATION_LOOKUP_CONCURRENCY,
                rng=self.rng,
                circuit_breaker=self._circuit_breaker("stations"),
            )
            logger.info("StationAggregator created")
        return self._station_aggregator

    @property
    def trip_store(self) -> InMemoryTripStore:
        if self._trip_store is None:
            self._trip_store = InMemoryTripStore()
        return self._trip_store

    @property
    def trip_orchestrator(self) -> TripOrchestrator:
        if self._trip_orchestrator is None:
            self._trip_orchestrator = TripOrchestrator(
                catalog=self.catalog,
                geocoder=self.geocoder,
                router=self.router,
                sampler=self.condition_sampler,
                aggregator=self.station_aggregator,
                trip_store=self.trip_store,
                max_alternatives=self.settings.MAX_ROUTE_ALTERNATIVES,
                rate_per_kwh=self.settings.ENERGY_RATE_PER_KWH,
                topup_percent=self.settings.CHARGE_STOP_TOPUP_PERCENT,
                synthesize_variants=self.settings.SYNTHESIZE_ROUTE_VARIANTS,
                station_radius_miles=self.settings.DEFAULT_SEARCH_RADIUS_MILES,
            )
            logger.info("TripOrchestrator created with injected dependencies")
        return self._trip_orchestrator

    async def close(self):
        """Close all managed HTTP clients."""
        services_to_close = [
            ("geocoder", self._geocoder),
            ("router", self._router),
            ("weather_client", self._weather_client),
            ("station_client", self._station_client),
        ]

        for service_name, service in services_to_close:
            if service is None or not hasattr(service, "close"):
                continue
            try:
                await service.close()
                logger.info(f"Closed {service_name}")
            except Exception as e:
                logger.warning(f"Error closing {service_name}: {e}")

        logger.info("ServiceContainer closed all managed services")


# Global container instance (initialized at startup)
_service_container: Optional[ServiceContainer] = None


def get_service_container() -> ServiceContainer:
    """Get the global service container instance."""
    if _service_container is None:
        raise RuntimeError("Service container not initialized. Call init_service_container() first.")
    return _service_container


def init_service_container(settings: Settings) -> ServiceContainer:
    """Initialize the global service container with settings."""
    global _service_container
    try:
        _service_container = ServiceContainer(settings)
        logger.info("Service container initialized successfully")
        return _service_container
    except Exception as e:
        logger.error(f"Failed to initialize service container: {e}")
        raise


def set_service_container(container: Optional[ServiceContainer]) -> None:
    """Install a prebuilt container (used by tests)."""
    global _service_container
    _service_container = container


async def close_service_container():
    """Close the global service container and clean up all resources."""
    global _service_container
    if _service_container:
        try:
            await _service_container.close()
            _service_container = None
            logger.info("Service container closed and reset")
        except Exception as e:
            logger.error(f"Error closing service container: {e}")
            raise


# FastAPI dependency functions
def get_vehicle_catalog() -> VehicleCatalog:
    return get_service_container().catalog


def get_condition_sampler() -> ConditionSampler:
    return get_service_container().condition_sampler


def get_station_aggregator() -> StationAggregator:
    return get_service_container().station_aggregator


def get_trip_store() -> InMemoryTripStore:
    return get_service_container().trip_store


def get_trip_orchestrator() -> TripOrchestrator:
    """FastAPI dependency to get the TripOrchestrator instance."""
    return get_service_container().trip_orchestrator
