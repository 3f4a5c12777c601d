"""
Trip Orchestrator

Sequences one planning run:

    IDLE -> GEOCODING -> ROUTING -> EVALUATING -> STATION_LOOKUP -> COMPLETE

Geocoding and routing failures are fatal and move the run to FAILED. Condition
sampling and station lookup degrade instead of failing.
"""

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..error_handling import ProviderError
from ..exceptions import NoRouteError, ProviderUnavailableError, TripPlanningError
from ..interfaces import Geocoder, Router, TripStore
from ..models import (
    GeocodeResult, RouteCandidate, RouteConditions, RouteGeometry, StationRecord,
    TripPlanRequest, TripPlanResult, TripRecord, TripRequest, VehicleProfile,
)
from ..utils.geo_utils import METERS_PER_MILE, polyline_midpoint, round_half_up
from ..vehicle_catalog import VehicleCatalog
from . import energy_model
from .condition_sampler import ConditionSampler
from .energy_model import RouteVariant
from .station_aggregator import StationAggregator

logger = logging.getLogger(__name__)

ROUTE_LABELS = ["Fastest Route", "Alternative Route", "Scenic Route"]

# Adjustment used for a synthesized alternative at each route index
SYNTHETIC_VARIANTS = [None, RouteVariant.EFFICIENT, RouteVariant.FEWER_STOPS]


class PlanningState(str, Enum):
    IDLE = "idle"
    GEOCODING = "geocoding"
    ROUTING = "routing"
    EVALUATING = "evaluating"
    STATION_LOOKUP = "station_lookup"
    COMPLETE = "complete"
    FAILED = "failed"


StateListener = Callable[[str, PlanningState], None]


def route_label(index: int) -> str:
    return ROUTE_LABELS[index] if index < len(ROUTE_LABELS) else f"Route {index + 1}"


class TripOrchestrator:
    """Runs the trip planning pipeline over injected collaborators"""

    def __init__(
        self,
        catalog: VehicleCatalog,
        geocoder: Geocoder,
        router: Router,
        sampler: ConditionSampler,
        aggregator: StationAggregator,
        trip_store: Optional[TripStore] = None,
        max_alternatives: int = 3,
        rate_per_kwh: float = energy_model.DEFAULT_RATE_PER_KWH,
        topup_percent: float = energy_model.DEFAULT_TOPUP_PERCENT,
        synthesize_variants: bool = True,
        station_radius_miles: Optional[float] = None,
        state_listener: Optional[StateListener] = None,
    ):
        self.catalog = catalog
        self.geocoder = geocoder
        self.router = router
        self.sampler = sampler
        self.aggregator = aggregator
        self.trip_store = trip_store
        self.max_alternatives = max_alternatives
        self.rate_per_kwh = rate_per_kwh
        self.topup_percent = topup_percent
        self.synthesize_variants = synthesize_variants
        self.station_radius_miles = station_radius_miles
        self.state_listener = state_listener

    def _transition(self, plan_id: str, state: PlanningState) -> None:
        logger.debug(f"Plan {plan_id} -> {state.value}", extra={"plan_id": plan_id})
        if self.state_listener is not None:
            self.state_listener(plan_id, state)

    async def plan_trip(self, request: TripPlanRequest) -> TripPlanResult:
        """
        Plan a trip from address text to evaluated route candidates.

        Raises:
            VehicleNotFoundError: Unknown vehicle id (before any provider call)
            GeocodingError: Either address has no match
            NoRouteError: Router found no path
            ProviderUnavailableError: Geocoder or router could not be reached
            EnergyModelValidationError: Route data would produce meaningless estimates
        """
        plan_id = str(uuid.uuid4())
        start_time = time.time()
        self._transition(plan_id, PlanningState.IDLE)

        vehicle = self.catalog.get(request.vehicle_id)

        try:
            self._transition(plan_id, PlanningState.GEOCODING)
            origin, destination = await self._geocode(request)

            self._transition(plan_id, PlanningState.ROUTING)
            geometries = await self._route(origin, destination)
        except TripPlanningError as e:
            self._transition(plan_id, PlanningState.FAILED)
            logger.warning(
                f"Trip planning failed during {e.stage}: {e.message}",
                extra={"plan_id": plan_id, "user_id": request.user_id},
            )
            raise

        self._transition(plan_id, PlanningState.EVALUATING)
        trip_request = TripRequest(
            origin=origin.coords,
            destination=destination.coords,
            starting_charge_percent=request.starting_charge_percent,
            battery_health_percent=request.battery_health_percent,
            vehicle=vehicle,
        )
        routes = await self._evaluate_routes(geometries, vehicle, trip_request)

        self._transition(plan_id, PlanningState.STATION_LOOKUP)
        stations = await self._find_stations(routes[0].geometry, request.preferred_amenities)

        result = TripPlanResult(
            plan_id=plan_id,
            routes=routes,
            vehicle=vehicle,
            origin=origin.display_name or request.origin,
            destination=destination.display_name or request.destination,
            origin_coords=origin.coords,
            destination_coords=destination.coords,
            starting_charge_percent=request.starting_charge_percent,
            stations=stations,
        )

        if request.user_id and self.trip_store is not None:
            result = await self._save_trip(result, request)

        self._transition(plan_id, PlanningState.COMPLETE)
        logger.info(
            f"Planned {len(routes)} route(s) with {len(stations)} station(s)",
            extra={
                "plan_id": plan_id,
                "user_id": request.user_id,
                "response_time_ms": round((time.time() - start_time) * 1000, 1),
            },
        )
        return result

    async def _geocode(self, request: TripPlanRequest) -> Tuple[GeocodeResult, GeocodeResult]:
        try:
            origin, destination = await asyncio.gather(
                self.geocoder.resolve(request.origin),
                self.geocoder.resolve(request.destination),
            )
        except ProviderError as e:
            raise ProviderUnavailableError("geocoder", "geocoding", e.message, retryable=e.recoverable)
        return origin, destination

    async def _route(self, origin: GeocodeResult, destination: GeocodeResult) -> List[RouteGeometry]:
        try:
            geometries = await self.router.route(origin.coords, destination.coords, self.max_alternatives)
        except ProviderError as e:
            raise ProviderUnavailableError("router", "routing", e.message, retryable=e.recoverable)
        if not geometries:
            raise NoRouteError(origin.coords, destination.coords)
        return list(geometries[:self.max_alternatives])

    async def _evaluate_routes(
        self,
        geometries: List[RouteGeometry],
        vehicle: VehicleProfile,
        trip_request: TripRequest,
    ) -> List[RouteCandidate]:
        evaluated = await asyncio.gather(*(
            self._evaluate(index, geometry, vehicle, trip_request)
            for index, geometry in enumerate(geometries)
        ))
        routes = [route for route, _ in evaluated]

        if self.synthesize_variants and len(routes) < self.max_alternatives:
            primary, primary_estimate = evaluated[0]
            for index in range(len(routes), min(self.max_alternatives, len(SYNTHETIC_VARIANTS))):
                routes.append(self._synthesize_variant(index, primary, primary_estimate, trip_request))
        return routes

    async def _evaluate(
        self,
        index: int,
        geometry: RouteGeometry,
        vehicle: VehicleProfile,
        trip_request: TripRequest,
    ) -> Tuple[RouteCandidate, energy_model.EnergyEstimate]:
        midpoint = polyline_midpoint(geometry.coordinates) if geometry.coordinates else trip_request.origin
        start, mid, end = await asyncio.gather(
            self.sampler.sample(*trip_request.origin),
            self.sampler.sample(*midpoint),
            self.sampler.sample(*trip_request.destination),
        )

        distance_miles = geometry.distance_m / METERS_PER_MILE
        estimate = energy_model.estimate(
            vehicle, trip_request, distance_miles, [start, mid, end],
            rate_per_kwh=self.rate_per_kwh, topup_percent=self.topup_percent,
        )

        route = RouteCandidate(
            id=str(index + 1),
            name=route_label(index),
            distance_miles=round(distance_miles, 1),
            duration_minutes=round_half_up(geometry.duration_s / 60),
            battery_usage_percent=estimate.battery_usage_percent,
            charging_stops=estimate.charging_stops,
            energy_efficiency_kwh_per_mile=estimate.energy_efficiency_kwh_per_mile,
            estimated_cost=estimate.estimated_cost,
            geometry=list(geometry.coordinates),
            conditions=RouteConditions(start=start, midpoint=mid, end=end),
        )
        return route, estimate

    def _synthesize_variant(
        self,
        index: int,
        primary: RouteCandidate,
        primary_estimate: energy_model.EnergyEstimate,
        trip_request: TripRequest,
    ) -> RouteCandidate:
        variant = SYNTHETIC_VARIANTS[index]
        adjusted = energy_model.apply_route_variant(
            primary_estimate, variant, trip_request.starting_charge_percent, self.topup_percent,
        )
        return primary.model_copy(update={
            "id": str(index + 1),
            "name": route_label(index),
            "battery_usage_percent": adjusted.battery_usage_percent,
            "charging_stops": adjusted.charging_stops,
            "estimated_cost": adjusted.estimated_cost,
            "variant": variant.value if variant else None,
        })

    async def _find_stations(self, polyline, preferred_amenities: List[str]) -> List[StationRecord]:
        try:
            return await self.aggregator.find_along_route(
                polyline, self.station_radius_miles, preferred_amenities,
            )
        except Exception as e:
            logger.warning(f"Station lookup failed, continuing without stations: {e}")
            return []

    async def _save_trip(self, result: TripPlanResult, request: TripPlanRequest) -> TripPlanResult:
        record = TripRecord(
            user_id=request.user_id,
            vehicle_id=result.vehicle.id,
            origin_address=result.origin,
            origin_lat=result.origin_coords[0],
            origin_lng=result.origin_coords[1],
            destination_address=result.destination,
            destination_lat=result.destination_coords[0],
            destination_lng=result.destination_coords[1],
            starting_charge_percent=result.starting_charge_percent,
            route_data=result.model_dump(mode="json"),
        )
        try:
            saved = await self.trip_store.save(record)
        except Exception as e:
            logger.error(
                f"Failed to save trip: {e}",
                extra={"plan_id": result.plan_id, "user_id": request.user_id},
            )
            return result
        return result.model_copy(update={"trip_id": saved.id})
