"""Geographic and numeric helpers shared by the planning services."""

import math
from typing import List, Sequence, Tuple

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.34


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points in miles."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def is_valid_coordinate(lat: float, lon: float) -> bool:
    return (
        math.isfinite(lat) and math.isfinite(lon)
        and -90 <= lat <= 90 and -180 <= lon <= 180
    )


def sample_polyline(points: Sequence[Tuple[float, float]], max_points: int = 5) -> List[Tuple[float, float]]:
    """
    Pick at most ``max_points`` evenly spaced points from a polyline.

    Points are taken at a stride of ``max(1, len(points) // max_points)``
    starting from the first point.
    """
    if not points:
        return []
    stride = max(1, len(points) // max_points)
    return list(points[::stride])[:max_points]


def polyline_midpoint(points: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    """Vertex halfway along the polyline by index."""
    return tuple(points[len(points) // 2])
