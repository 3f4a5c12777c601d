"""Trip planning models: vehicles, requests, route candidates and results"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .condition_models import ConditionSample
from .station_models import StationRecord

LatLon = Tuple[float, float]


class VehicleProfile(BaseModel):
    """Factory specification of an EV model (read-only reference data)"""
    model_config = ConfigDict(frozen=True)

    id: str
    manufacturer: str
    model_name: str
    year: int
    battery_capacity_kwh: float = Field(..., gt=0)
    range_miles: float = Field(..., gt=0)
    efficiency_kwh_per_mile: float = Field(..., gt=0)
    fast_charge_capable: bool = True


@dataclass
class GeocodeResult:
    """Resolved address"""
    lat: float
    lon: float
    display_name: str

    @property
    def coords(self) -> LatLon:
        return (self.lat, self.lon)


@dataclass
class RouteGeometry:
    """Raw route alternative as returned by the router"""
    distance_m: float
    duration_s: float
    coordinates: List[LatLon] = field(default_factory=list)


@dataclass
class TripRequest:
    """Resolved planning input handed to the energy model"""
    origin: LatLon
    destination: LatLon
    starting_charge_percent: float
    battery_health_percent: float
    vehicle: VehicleProfile


class TripPlanRequest(BaseModel):
    """Caller-facing trip planning input"""
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    vehicle_id: str
    starting_charge_percent: float = Field(80, ge=10, le=100)
    battery_health_percent: float = Field(100, ge=70, le=100)
    preferred_amenities: List[str] = []
    user_id: Optional[str] = None


class RouteConditions(BaseModel):
    start: ConditionSample
    midpoint: ConditionSample
    end: ConditionSample


class RouteCandidate(BaseModel):
    """One evaluated route alternative"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    distance_miles: float
    duration_minutes: int
    battery_usage_percent: int = Field(..., ge=0, le=100)
    charging_stops: int = Field(..., ge=0)
    energy_efficiency_kwh_per_mile: float
    estimated_cost: float
    geometry: List[LatLon] = []
    conditions: RouteConditions
    variant: Optional[str] = None


class TripPlanResult(BaseModel):
    plan_id: str
    routes: List[RouteCandidate]
    vehicle: VehicleProfile
    origin: str
    destination: str
    origin_coords: LatLon
    destination_coords: LatLon
    starting_charge_percent: float
    stations: List[StationRecord] = []
    trip_id: Optional[str] = None


class TripRecord(BaseModel):
    """Trip handed to the persistence collaborator"""
    id: Optional[str] = None
    user_id: str
    vehicle_id: str
    origin_address: str
    origin_lat: float
    origin_lng: float
    destination_address: str
    destination_lat: float
    destination_lng: float
    starting_charge_percent: float
    route_data: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
