"""
Shared test fixtures for the EV trip planner test suite.
Provides a controllable clock, seeded randomness, in-memory provider fakes and
builders for condition samples and raw station records.
"""
import random
from datetime import date
from typing import Dict, List, Optional

import pytest

from ev_trip_planner.config import Settings
from ev_trip_planner.error_handling import CircuitBreaker
from ev_trip_planner.exceptions import GeocodingError, NoRouteError
from ev_trip_planner.models import (
    ConditionImpact, ConditionSample, GeocodeResult, RouteGeometry,
    TripRequest, WeatherObservation,
)
from ev_trip_planner.services.condition_sampler import ConditionSampler
from ev_trip_planner.services.station_aggregator import StationAggregator
from ev_trip_planner.vehicle_catalog import VehicleCatalog


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGeocoder:
    def __init__(self, places: Dict[str, GeocodeResult]):
        self.places = places
        self.calls: List[str] = []

    async def resolve(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        if address not in self.places:
            raise GeocodingError(address)
        return self.places[address]


class FakeRouter:
    def __init__(self, routes: List[RouteGeometry]):
        self.routes = routes
        self.calls = []

    async def route(self, origin, destination, alternatives: int = 3) -> List[RouteGeometry]:
        self.calls.append((origin, destination, alternatives))
        if not self.routes:
            raise NoRouteError(origin, destination)
        return self.routes[:alternatives]


class FakeWeatherProvider:
    def __init__(self, observation: Optional[WeatherObservation] = None, error: Optional[Exception] = None):
        self.observation = observation
        self.error = error
        self.calls = []

    async def fetch(self, lat: float, lon: float) -> WeatherObservation:
        self.calls.append((lat, lon))
        if self.error is not None:
            raise self.error
        return self.observation


class FakeStationProvider:
    """Station provider returning canned records per query point."""

    def __init__(self, records=None, by_point=None, failing_points=()):
        self.records = records or []
        self.by_point = by_point or {}
        self.failing_points = set(failing_points)
        self.calls = []

    async def query(self, lat, lon, radius_miles, max_results):
        self.calls.append((lat, lon, radius_miles, max_results))
        if (lat, lon) in self.failing_points:
            raise ConnectionError(f"provider unreachable at ({lat}, {lon})")
        return list(self.by_point.get((lat, lon), self.records))


class FakeTripStore:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.saved = []

    async def save(self, record):
        if self.error is not None:
            raise self.error
        stored = record.model_copy(update={"id": f"trip-{len(self.saved) + 1}"})
        self.saved.append(stored)
        return stored

    async def list_for_user(self, user_id):
        return [r for r in self.saved if r.user_id == user_id]


def make_sample(efficiency: float = 1.0, temperature_f: float = 70, condition: str = "Clear",
                lat: float = 40.0, lon: float = -74.0) -> ConditionSample:
    """Condition sample with an explicit efficiency multiplier."""
    return ConditionSample(
        latitude=lat,
        longitude=lon,
        temperature_f=temperature_f,
        condition=condition,
        description=condition.lower(),
        humidity=50,
        wind_speed_mph=5,
        visibility_m=10000,
        source="synthetic",
        impact=ConditionImpact(
            efficiency=efficiency,
            range_loss_percent=round((1 - efficiency) * 100),
            charging_speed=1.0,
        ),
    )


def make_raw_station(station_id: int, distance: float, operational: bool = True,
                     power_kw: float = 150, lat: float = 40.0, lon: float = -74.0) -> dict:
    """Raw OpenChargeMap POI record."""
    return {
        "ID": station_id,
        "AddressInfo": {
            "Title": f"Station {station_id}",
            "AddressLine1": f"{station_id} Main St",
            "Town": "Springfield",
            "StateOrProvince": "IL",
            "Postcode": "62701",
            "Country": {"Title": "United States"},
            "Latitude": lat,
            "Longitude": lon,
            "Distance": distance,
        },
        "Connections": [
            {"PowerKW": 7.2, "Quantity": 2, "ConnectionType": {"Title": "J1772"}, "Level": {"IsFastChargeCapable": False}},
            {"PowerKW": power_kw, "Quantity": 1, "ConnectionType": {"Title": "CCS"}, "Level": {"IsFastChargeCapable": True}},
        ],
        "StatusType": {"IsOperational": operational, "Title": "Operational" if operational else "Not Operational"},
        "OperatorInfo": {"Title": "ChargeNet", "WebsiteURL": "https://chargenet.example"},
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def catalog():
    return VehicleCatalog()


@pytest.fixture
def tesla_model_3(catalog):
    """60 kWh, 0.22 kWh/mi"""
    return catalog.get("1")


@pytest.fixture
def trip_request(tesla_model_3):
    return TripRequest(
        origin=(40.7128, -74.0060),
        destination=(42.3601, -71.0589),
        starting_charge_percent=80,
        battery_health_percent=100,
        vehicle=tesla_model_3,
    )


@pytest.fixture
def breaker(clock):
    return CircuitBreaker("test", failure_threshold=2, recovery_timeout=60, clock=clock)


@pytest.fixture
def synthetic_sampler(clock, rng):
    """Sampler with no live provider and a fixed summer date."""
    return ConditionSampler(clock=clock, rng=rng, today=lambda: date(2024, 7, 15))


@pytest.fixture
def station_provider():
    return FakeStationProvider(records=[
        make_raw_station(3, 2.5),
        make_raw_station(1, 0.8),
        make_raw_station(2, 1.6, operational=False),
    ])


@pytest.fixture
def aggregator(station_provider, clock, rng):
    return StationAggregator(provider=station_provider, clock=clock, rng=rng)


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        APP_ENV="development",
        OPENWEATHER_API_KEY=None,
        OPENCHARGEMAP_API_KEY="test-ocm-key",
        SYNTHETIC_SEED=7,
    )
