"""
Energy Model

Pure functions turning a vehicle profile, trip request and condition samples
into battery usage, charging stops, weather-adjusted efficiency and cost.

Route variants are a presentation heuristic layered on top of an estimate.
They scale the figures of an otherwise identical route so that the caller
can tell alternatives apart; they are not a physical recalculation.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from ..exceptions import EnergyModelValidationError
from ..models import ConditionSample, TripRequest, VehicleProfile
from ..utils.geo_utils import round_half_up

DEFAULT_RATE_PER_KWH = 0.15
DEFAULT_TOPUP_PERCENT = 40


@dataclass(frozen=True)
class EnergyEstimate:
    battery_usage_percent: int
    charging_stops: int
    energy_efficiency_kwh_per_mile: float
    estimated_cost: float
    energy_used_kwh: float


class RouteVariant(str, Enum):
    EFFICIENT = "efficient"
    FEWER_STOPS = "fewer_stops"


def _require_finite(name: str, value: float) -> None:
    if value is None or not math.isfinite(value):
        raise EnergyModelValidationError(name, f"must be a finite number, got {value!r}")


def _validate(
    vehicle: VehicleProfile,
    request: TripRequest,
    distance_miles: float,
    samples: Sequence[ConditionSample],
) -> None:
    _require_finite("distance_miles", distance_miles)
    if distance_miles < 0:
        raise EnergyModelValidationError("distance_miles", "must not be negative")

    for name, point in (("origin", request.origin), ("destination", request.destination)):
        _require_finite(f"{name}.lat", point[0])
        _require_finite(f"{name}.lon", point[1])

    _require_finite("starting_charge_percent", request.starting_charge_percent)
    if not 10 <= request.starting_charge_percent <= 100:
        raise EnergyModelValidationError("starting_charge_percent", "must be between 10 and 100")

    _require_finite("battery_health_percent", request.battery_health_percent)
    if not 70 <= request.battery_health_percent <= 100:
        raise EnergyModelValidationError("battery_health_percent", "must be between 70 and 100")

    if vehicle.battery_capacity_kwh <= 0 or vehicle.efficiency_kwh_per_mile <= 0:
        raise EnergyModelValidationError("vehicle", "capacity and efficiency must be positive")

    if not samples:
        raise EnergyModelValidationError("samples", "at least one condition sample is required")


def charging_stops_for(battery_usage_percent: float, starting_charge_percent: float,
                       topup_percent: float = DEFAULT_TOPUP_PERCENT) -> int:
    """Stops needed when each stop adds a fixed top-up of charge."""
    if battery_usage_percent <= starting_charge_percent:
        return 0
    return math.ceil((battery_usage_percent - starting_charge_percent) / topup_percent)


def estimate(
    vehicle: VehicleProfile,
    request: TripRequest,
    distance_miles: float,
    samples: Sequence[ConditionSample],
    rate_per_kwh: float = DEFAULT_RATE_PER_KWH,
    topup_percent: float = DEFAULT_TOPUP_PERCENT,
) -> EnergyEstimate:
    """
    Estimate battery usage for a route.

    Args:
        vehicle: Vehicle profile (rated efficiency and capacity)
        request: Resolved trip request (starting charge, battery health)
        distance_miles: Route distance
        samples: Condition samples along the route (start, midpoint, end)
        rate_per_kwh: Flat energy price
        topup_percent: Charge added per charging stop

    Raises:
        EnergyModelValidationError: On inputs that cannot produce a meaningful estimate
    """
    _validate(vehicle, request, distance_miles, samples)

    avg_impact = sum(s.impact.efficiency for s in samples) / len(samples)
    if not math.isfinite(avg_impact) or avg_impact <= 0:
        raise EnergyModelValidationError("samples", f"average efficiency must be positive, got {avg_impact}")

    # Adverse conditions lower the multiplier, which raises consumption
    adjusted_kwh_per_mile = vehicle.efficiency_kwh_per_mile / avg_impact
    effective_capacity = vehicle.battery_capacity_kwh * (request.battery_health_percent / 100)
    energy_used = distance_miles * adjusted_kwh_per_mile

    usage = round_half_up(energy_used / effective_capacity * 100)
    usage = min(100, max(0, usage))

    return EnergyEstimate(
        battery_usage_percent=usage,
        charging_stops=charging_stops_for(usage, request.starting_charge_percent, topup_percent),
        energy_efficiency_kwh_per_mile=round(adjusted_kwh_per_mile, 3),
        estimated_cost=round(energy_used * rate_per_kwh, 2),
        energy_used_kwh=energy_used,
    )


def apply_route_variant(
    result: EnergyEstimate,
    variant: Optional[RouteVariant],
    starting_charge_percent: float,
    topup_percent: float = DEFAULT_TOPUP_PERCENT,
) -> EnergyEstimate:
    """
    Presentation adjustment for a synthesized route alternative.

    ``efficient`` scales usage by 0.9 and cost by 0.85, with stops recomputed
    from the scaled usage. ``fewer_stops`` drops one stop when at least two
    are planned, so a route needing charge never shows zero stops.
    """
    if variant is None:
        return result

    if variant == RouteVariant.EFFICIENT:
        usage = min(100, max(0, round_half_up(result.battery_usage_percent * 0.9)))
        return replace(
            result,
            battery_usage_percent=usage,
            charging_stops=charging_stops_for(usage, starting_charge_percent, topup_percent),
            estimated_cost=round(result.estimated_cost * 0.85, 2),
        )

    if variant == RouteVariant.FEWER_STOPS:
        if result.charging_stops >= 2:
            return replace(result, charging_stops=result.charging_stops - 1)
        return result

    raise ValueError(f"Unknown route variant: {variant}")
