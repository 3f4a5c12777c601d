"""
Collaborator protocols consumed by the planning services.

Concrete HTTP clients live in the ``*_client`` modules; tests substitute
in-memory fakes that satisfy the same protocols.
"""
from typing import Any, Dict, List, Protocol, runtime_checkable

from .models import GeocodeResult, LatLon, RouteGeometry, TripRecord, WeatherObservation


@runtime_checkable
class Geocoder(Protocol):
    async def resolve(self, address: str) -> GeocodeResult:
        """Resolve free-form address text; raises GeocodingError on no match."""
        ...


@runtime_checkable
class Router(Protocol):
    async def route(self, origin: LatLon, destination: LatLon, alternatives: int = 3) -> List[RouteGeometry]:
        """Return route alternatives; raises NoRouteError when there are none."""
        ...


@runtime_checkable
class WeatherProvider(Protocol):
    async def fetch(self, lat: float, lon: float) -> WeatherObservation:
        ...


@runtime_checkable
class StationProvider(Protocol):
    async def query(self, lat: float, lon: float, radius_miles: float, max_results: int) -> List[Dict[str, Any]]:
        """Return raw provider station records near a point."""
        ...


@runtime_checkable
class TripStore(Protocol):
    async def save(self, record: TripRecord) -> TripRecord:
        ...

    async def list_for_user(self, user_id: str) -> List[TripRecord]:
        ...
