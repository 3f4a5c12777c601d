import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config import get_settings
from ...dependencies import (
    get_condition_sampler, get_station_aggregator, get_trip_orchestrator,
    get_trip_store, get_vehicle_catalog,
)
from ...error_handling import ProviderError, create_error_response
from ...exceptions import (
    EnergyModelValidationError, GeocodingError, NoRouteError,
    ProviderUnavailableError, TripPlanningError, VehicleNotFoundError,
)
from ...models import (
    AlongRouteRequest, ConditionSample, StationRecord, TripPlanRequest,
    TripPlanResult, TripRecord, VehicleProfile,
)
from ...services.condition_sampler import ConditionSampler
from ...services.station_aggregator import StationAggregator
from ...services.trip_orchestrator import TripOrchestrator
from ...services.trip_store import InMemoryTripStore
from ...utils.geo_utils import is_valid_coordinate
from ...vehicle_catalog import VehicleCatalog

logger = logging.getLogger(__name__)

# Create rate limiter for endpoints
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/v1")


def raise_error(error: Exception, status_code: int):
    """Raise an HTTPException with standardized error format."""
    raise HTTPException(status_code=status_code, detail=create_error_response(error, status_code))


def planning_status_code(error: Exception) -> int:
    if isinstance(error, VehicleNotFoundError):
        return 404
    if isinstance(error, (GeocodingError, NoRouteError, EnergyModelValidationError)):
        return 422
    if isinstance(error, (ProviderUnavailableError, ProviderError)):
        return 502
    return 500


@router.post("/trips/plan", response_model=TripPlanResult, tags=["trips"])
@limiter.limit(get_settings().RATE_LIMIT_PLAN)
async def plan_trip(
    request: Request,
    plan_request: TripPlanRequest,
    orchestrator: TripOrchestrator = Depends(get_trip_orchestrator),
) -> TripPlanResult:
    """Plan an EV trip between two addresses.

    Returns up to three evaluated route candidates plus charging stations along
    the primary route. Station lookup and weather failures degrade; geocoding
    and routing failures are reported with the stage that failed.
    """
    try:
        return await orchestrator.plan_trip(plan_request)
    except (TripPlanningError, EnergyModelValidationError, ProviderError) as e:
        raise_error(e, planning_status_code(e))
    except Exception as e:
        logger.error(f"Unexpected error planning trip: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/trips", response_model=List[TripRecord], tags=["trips"])
async def list_trips(
    user_id: str = Query(..., min_length=1),
    store: InMemoryTripStore = Depends(get_trip_store),
) -> List[TripRecord]:
    """Saved trips for a user, newest first."""
    return await store.list_for_user(user_id)


@router.get("/stations/near", response_model=List[StationRecord], tags=["stations"])
@limiter.limit("60/minute")
async def stations_near(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_miles: Optional[float] = Query(None, gt=0, le=50),
    max_results: Optional[int] = Query(None, gt=0, le=200),
    amenities: List[str] = Query([]),
    aggregator: StationAggregator = Depends(get_station_aggregator),
) -> List[StationRecord]:
    """Operational charging stations near a point, nearest first."""
    return await aggregator.find_near(lat, lon, radius_miles, max_results, amenities)


@router.post("/stations/along-route", response_model=List[StationRecord], tags=["stations"])
@limiter.limit("20/minute")  # fans out to several provider calls
async def stations_along_route(
    request: Request,
    route_request: AlongRouteRequest,
    aggregator: StationAggregator = Depends(get_station_aggregator),
) -> List[StationRecord]:
    """Deduplicated charging stations along a polyline."""
    for lat, lon in route_request.polyline:
        if not is_valid_coordinate(lat, lon):
            raise HTTPException(status_code=400, detail=f"Invalid coordinate in polyline: ({lat}, {lon})")
    return await aggregator.find_along_route(
        route_request.polyline, route_request.radius_miles, route_request.preferred_amenities,
    )


@router.get("/conditions", response_model=ConditionSample, tags=["conditions"])
async def conditions(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    sampler: ConditionSampler = Depends(get_condition_sampler),
) -> ConditionSample:
    """Ambient conditions and their efficiency impact at a point."""
    return await sampler.sample(lat, lon)


@router.get("/vehicles", response_model=List[VehicleProfile], tags=["vehicles"])
async def list_vehicles(catalog: VehicleCatalog = Depends(get_vehicle_catalog)) -> List[VehicleProfile]:
    return catalog.list()


@router.get("/vehicles/{vehicle_id}", response_model=VehicleProfile, tags=["vehicles"])
async def get_vehicle(vehicle_id: str, catalog: VehicleCatalog = Depends(get_vehicle_catalog)) -> VehicleProfile:
    try:
        return catalog.get(vehicle_id)
    except VehicleNotFoundError as e:
        raise_error(e, 404)
