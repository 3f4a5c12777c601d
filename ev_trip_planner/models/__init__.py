"""Models package for the EV trip planner."""

from .condition_models import ConditionImpact, ConditionSample, WeatherObservation
from .station_models import (
    StationRecord, StationPricing, StationAmenities, StationAccessibility,
    StationReview, StationReviews, EnvironmentalImpact, AlongRouteRequest,
)
from .trip_models import (
    LatLon, VehicleProfile, GeocodeResult, RouteGeometry, TripRequest,
    TripPlanRequest, RouteConditions, RouteCandidate, TripPlanResult, TripRecord,
)

__all__ = [
    "ConditionImpact", "ConditionSample", "WeatherObservation",
    "StationRecord", "StationPricing", "StationAmenities", "StationAccessibility",
    "StationReview", "StationReviews", "EnvironmentalImpact", "AlongRouteRequest",
    "LatLon", "VehicleProfile", "GeocodeResult", "RouteGeometry", "TripRequest",
    "TripPlanRequest", "RouteConditions", "RouteCandidate", "TripPlanResult", "TripRecord",
]
