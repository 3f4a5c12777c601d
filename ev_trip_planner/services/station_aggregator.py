"""
Station Aggregator

Charging station discovery near a point (cached per spatial query) and along a
route polyline (deduplicated across sample points). Provider metadata is
enriched with synthetic availability, pricing, amenity, accessibility, review
and environmental annotations.

Lookups degrade to an empty list on provider failure; errors are never cached.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..cache import ExpiringCache
from ..error_handling import CircuitBreaker
from ..interfaces import StationProvider
from ..logging_config import get_provider_logger
from ..models import (
    EnvironmentalImpact, LatLon, StationAccessibility, StationAmenities,
    StationPricing, StationRecord, StationReview, StationReviews,
)
from ..utils.geo_utils import haversine_miles, round_half_up, sample_polyline

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_RADIUS_MILES = 6.2
DEFAULT_MAX_RESULTS = 50

# Preference names accepted from callers, mapped to StationAmenities fields
AMENITY_FIELDS = {
    "restrooms": "restrooms",
    "food": "food_nearby",
    "food_nearby": "food_nearby",
    "shopping": "shopping",
    "wifi": "wifi",
    "covered": "covered",
    "security": "security",
    "lighting": "lighting",
}

# Probability that each synthetic amenity is present
AMENITY_ODDS = {
    "restrooms": 0.7,
    "food_nearby": 0.6,
    "shopping": 0.4,
    "wifi": 0.5,
    "covered": 0.3,
    "security": 0.4,
    "lighting": 0.8,
}

REVIEW_COMMENTS = ["Great station!", "Fast charging", "Clean and safe", "Good location", "Easy to find"]


def _money(value: float) -> float:
    return round_half_up(value * 100) / 100


def matches_amenities(station: StationRecord, preferred_amenities: Iterable[str]) -> bool:
    """
    True when the station offers at least one preferred amenity.

    An empty preference list matches everything. Unrecognised preference names
    are treated as satisfied.
    """
    preferred = [a.strip().lower() for a in preferred_amenities if a and a.strip()]
    if not preferred:
        return True
    amenities = station.amenities or StationAmenities()
    for name in preferred:
        field = AMENITY_FIELDS.get(name)
        if field is None or getattr(amenities, field):
            return True
    return False


class StationAggregator:
    """Charging station lookups with a short-lived spatial cache"""

    def __init__(
        self,
        provider: Optional[StationProvider] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = 1024,
        default_radius_miles: float = DEFAULT_RADIUS_MILES,
        default_max_results: int = DEFAULT_MAX_RESULTS,
        route_sample_points: int = 5,
        route_sample_max_results: int = 20,
        concurrency: int = 3,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        now: Optional[Callable[[], datetime]] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.provider = provider
        self.cache = ExpiringCache("stations", ttl_seconds, maxsize=max_entries, clock=clock)
        self.default_radius_miles = default_radius_miles
        self.default_max_results = default_max_results
        self.route_sample_points = route_sample_points
        self.route_sample_max_results = route_sample_max_results
        self.concurrency = max(1, concurrency)
        self.rng = rng or random.Random()
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.circuit_breaker = circuit_breaker or CircuitBreaker("stations", clock=clock)
        self.stats = {"provider_calls": 0, "provider_failures": 0, "demo_mode_lookups": 0}

    @property
    def demo_mode(self) -> bool:
        return self.provider is None

    async def find_near(
        self,
        lat: float,
        lon: float,
        radius_miles: Optional[float] = None,
        max_results: Optional[int] = None,
        preferred_amenities: Sequence[str] = (),
    ) -> List[StationRecord]:
        """
        Operational stations within ``radius_miles`` of a point, nearest first.

        Returns an empty list when no provider is configured or the provider
        fails. Results are cached per (lat, lon, radius) query.
        """
        radius = self.default_radius_miles if radius_miles is None else radius_miles
        limit = self.default_max_results if max_results is None else max_results

        if self.demo_mode:
            self.stats["demo_mode_lookups"] += 1
            return []

        key = (lat, lon, radius)
        cached = self.cache.get(key)
        if cached is not None and cached[0] >= limit:
            stations = cached[1]
        else:
            stations = await self._fetch(lat, lon, radius, limit)
            if stations is None:
                return []
            self.cache.put(key, (limit, stations))

        return [
            s.model_copy(deep=True)
            for s in stations
            if matches_amenities(s, preferred_amenities)
        ][:limit]

    async def _fetch(self, lat: float, lon: float, radius: float, limit: int) -> Optional[List[StationRecord]]:
        plog = get_provider_logger(__name__, "openchargemap", (lat, lon))
        if not self.circuit_breaker.is_available():
            plog.warning("Station provider circuit open, skipping lookup")
            return None

        self.stats["provider_calls"] += 1
        try:
            raw = await self.provider.query(lat, lon, radius, limit)
        except Exception as e:
            self.circuit_breaker.record_failure()
            self.stats["provider_failures"] += 1
            plog.warning(f"Station lookup failed, returning no stations: {e}")
            return None
        self.circuit_breaker.record_success()

        stations = []
        for item in raw:
            try:
                stations.append(self.process_station(item, (lat, lon)))
            except (KeyError, TypeError, ValueError) as e:
                plog.debug(f"Skipping malformed station record: {e}")

        stations = [s for s in stations if s.is_operational]
        stations.sort(key=lambda s: (s.distance_miles, s.id))
        plog.info(f"Found {len(stations)} operational stations within {radius} mi")
        return stations

    async def find_along_route(
        self,
        polyline: Sequence[LatLon],
        radius_miles: Optional[float] = None,
        preferred_amenities: Sequence[str] = (),
    ) -> List[StationRecord]:
        """
        Stations near evenly spaced sample points of a route, deduplicated by
        provider id and sorted by distance.
        """
        points = sample_polyline(polyline, self.route_sample_points)
        if not points or self.demo_mode:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def lookup(point: LatLon) -> List[StationRecord]:
            async with semaphore:
                return await self.find_near(
                    point[0], point[1], radius_miles,
                    self.route_sample_max_results, preferred_amenities,
                )

        results = await asyncio.gather(*(lookup(p) for p in points), return_exceptions=True)

        merged: Dict[int, StationRecord] = {}
        for point, result in zip(points, results):
            if isinstance(result, Exception):
                logger.warning(f"Station lookup at {point} failed: {result}")
                continue
            for station in result:
                seen = merged.get(station.id)
                if seen is None or station.distance_miles < seen.distance_miles:
                    merged[station.id] = station

        stations = sorted(merged.values(), key=lambda s: (s.distance_miles, s.id))
        logger.info(f"Found {len(stations)} unique stations along route ({len(points)} sample points)")
        return stations

    def process_station(self, item: Dict[str, Any], origin: Tuple[float, float]) -> StationRecord:
        """Normalise a raw provider record and attach synthetic annotations"""
        address = item.get("AddressInfo") or {}
        connections = item.get("Connections") or []

        best = None
        for conn in connections:
            if best is None or (conn.get("PowerKW") or 0) > (best.get("PowerKW") or 0):
                best = conn
        best = best or {}
        power_kw = float(best.get("PowerKW") or 0)
        total_ports = sum(int(conn.get("Quantity") or 1) for conn in connections) or 1

        latitude = float(address["Latitude"])
        longitude = float(address["Longitude"])
        distance = address.get("Distance")
        if distance is None:
            distance = haversine_miles(origin[0], origin[1], latitude, longitude)

        status = item.get("StatusType") or {}
        operator = item.get("OperatorInfo") or {}
        country = address.get("Country") or {}

        rng = self.rng
        available_ports = int(rng.random() * (total_ports + 1))
        wait = int(rng.random() * 30) + 5 if available_ports == 0 else None

        pricing = StationPricing(
            per_kwh=_money(rng.random() * 0.3 + 0.1),
            per_minute=_money(rng.random() * 0.5 + 0.1) if power_kw > 50 else None,
            session_fee=_money(rng.random() * 5 + 1) if rng.random() > 0.7 else 0.0,
            currency="USD",
        )
        amenities = StationAmenities(**{name: rng.random() < odds for name, odds in AMENITY_ODDS.items()})
        accessibility = StationAccessibility(
            wheelchair_accessible=rng.random() < 0.6,
            disabled_parking=rng.random() < 0.5,
            audio_announcements=rng.random() < 0.2,
        )

        now = self.now()
        total_reviews = int(rng.random() * 50) + 5
        reviews = StationReviews(
            average_rating=round_half_up((rng.random() * 2 + 3) * 10) / 10,
            total_reviews=total_reviews,
            recent_reviews=[
                StationReview(
                    rating=int(rng.random() * 2) + 4,
                    comment=REVIEW_COMMENTS[int(rng.random() * len(REVIEW_COMMENTS))],
                    date=(now - timedelta(days=rng.random() * 30)).date().isoformat(),
                    user=f"User{i + 1}",
                )
                for i in range(min(3, total_reviews))
            ],
        )

        co2_saved = _money(rng.random() * 50 + 20)
        environmental = EnvironmentalImpact(
            co2_saved_kg=co2_saved,
            # one tree absorbs ~22 kg CO2 per year
            equivalent_trees=round_half_up(co2_saved / 22),
            renewable_percentage=round_half_up(rng.random() * 40 + 30),
        )

        parts = [address.get(k) for k in ("AddressLine1", "AddressLine2", "Town", "StateOrProvince", "Postcode")]
        connection_type = (best.get("ConnectionType") or {}).get("Title") or "Unknown"
        level = best.get("Level") or {}

        return StationRecord(
            id=int(item["ID"]),
            title=address.get("Title") or "Charging Station",
            latitude=latitude,
            longitude=longitude,
            address=", ".join(str(p) for p in parts if p),
            city=address.get("Town") or "",
            state=address.get("StateOrProvince") or "",
            country=country.get("Title") or "",
            distance_miles=float(distance),
            power_kw=power_kw,
            connection_type=connection_type,
            network=operator.get("Title") or "Unknown",
            is_operational=bool(status.get("IsOperational")),
            is_fast_charge=bool(level.get("IsFastChargeCapable")),
            quantity=int(best.get("Quantity") or 1),
            status=status.get("Title") or "Unknown",
            operator=operator.get("Title"),
            website=operator.get("WebsiteURL"),
            phone=operator.get("PhonePrimaryContact"),
            available_ports=available_ports,
            total_ports=total_ports,
            estimated_wait_minutes=wait,
            last_updated=now.isoformat(),
            pricing=pricing,
            amenities=amenities,
            accessibility=accessibility,
            reviews=reviews,
            environmental_impact=environmental,
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_statistics(self) -> dict:
        return {
            **self.stats,
            "demo_mode": self.demo_mode,
            "cache": self.cache.get_stats(),
            "circuit_breaker": self.circuit_breaker.get_status(),
        }
