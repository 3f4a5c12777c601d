"""
Condition Sampler

Resolves ambient conditions (temperature, sky condition) for a coordinate and
derives their impact on EV efficiency. Uses the live weather provider when one
is configured and falls back to a latitude/season based synthetic generator
whenever the provider is absent or fails. ``sample`` never raises.
"""

import logging
import math
import random
from datetime import date
from typing import Callable, Optional, Tuple

from ..cache import ExpiringCache
from ..error_handling import CircuitBreaker
from ..interfaces import WeatherProvider
from ..logging_config import get_provider_logger
from ..models import ConditionImpact, ConditionSample
from ..utils.geo_utils import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60

NORTHERN_WINTER_MONTHS = (12, 1, 2, 3)
SOUTHERN_WINTER_MONTHS = (6, 7, 8)

_SYNTHETIC_ICONS = {"Clear": "01d", "Clouds": "03d", "Rain": "10d", "Snow": "13d"}


def calculate_impact(temp_f: float, condition: str) -> ConditionImpact:
    """
    Efficiency impact of ambient temperature and sky condition.

    Multipliers compose multiplicatively. The message names the temperature
    cause, with snow appended when both apply.
    """
    efficiency = 1.0
    message = None

    # Optimal range for EVs is roughly 65-75F
    if temp_f < 20:
        efficiency *= 0.70
        message = "Extreme cold reducing range by ~30%"
    elif temp_f < 40:
        efficiency *= 0.85
        message = "Cold weather affecting battery efficiency"
    elif temp_f > 95:
        efficiency *= 0.85
        message = "High heat increasing energy consumption"

    label = (condition or "").lower()
    if "rain" in label or "drizzle" in label:
        efficiency *= 0.95
    elif "snow" in label:
        efficiency *= 0.90
        message = f"{message} & Snow" if message else "Snow increasing rolling resistance"

    return ConditionImpact(
        efficiency=efficiency,
        range_loss_percent=round_half_up((1 - efficiency) * 100),
        charging_speed=0.8 if temp_f < 40 else 1.0,
        message=message,
    )


def is_winter(lat: float, month: int) -> bool:
    if lat > 0:
        return month in NORTHERN_WINTER_MONTHS
    return month in SOUTHERN_WINTER_MONTHS


class ConditionSampler:
    """Cached condition lookup with live provider and synthetic fallback"""

    def __init__(
        self,
        provider: Optional[WeatherProvider] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = 1024,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.provider = provider
        self.cache = ExpiringCache("conditions", ttl_seconds, maxsize=max_entries, clock=clock)
        self.rng = rng or random.Random()
        self.today = today or date.today
        self.circuit_breaker = circuit_breaker or CircuitBreaker("weather", clock=clock)
        self.stats = {"live": 0, "synthetic": 0, "provider_failures": 0}

    @staticmethod
    def cache_key(lat: float, lon: float) -> Tuple[float, float]:
        # 2 decimals is roughly a 1.1 km grid
        return (round(lat, 2), round(lon, 2))

    async def sample(self, lat: float, lon: float) -> ConditionSample:
        """Get conditions at a coordinate. Never raises."""
        key = self.cache_key(lat, lon)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(deep=True)

        sample = None
        if self.provider is not None and self.circuit_breaker.is_available():
            sample = await self._sample_live(lat, lon)

        if sample is None:
            sample = self.generate_synthetic(lat, lon)
            self.stats["synthetic"] += 1

        self.cache.put(key, sample)
        return sample.model_copy(deep=True)

    async def _sample_live(self, lat: float, lon: float) -> Optional[ConditionSample]:
        plog = get_provider_logger(__name__, "openweather", (lat, lon))
        try:
            observation = await self.provider.fetch(lat, lon)
        except Exception as e:
            self.circuit_breaker.record_failure()
            self.stats["provider_failures"] += 1
            plog.warning(f"Weather provider failed, falling back to synthetic conditions: {e}")
            return None

        self.circuit_breaker.record_success()
        self.stats["live"] += 1
        return ConditionSample(
            latitude=lat,
            longitude=lon,
            temperature_f=observation.temperature_f,
            condition=observation.condition,
            description=observation.description,
            humidity=observation.humidity,
            wind_speed_mph=observation.wind_speed_mph,
            visibility_m=observation.visibility_m,
            icon=observation.icon,
            is_day=observation.is_day,
            source="live",
            impact=calculate_impact(observation.temperature_f, observation.condition),
        )

    def generate_synthetic(self, lat: float, lon: float) -> ConditionSample:
        """Plausible weather from latitude and season, with bounded jitter"""
        # Equator ~90F falling toward the poles; sin(lon) spreads nearby points
        base_temp = 90 - abs(lat) * 0.8 + math.sin(lon) * 5

        if is_winter(lat, self.today().month):
            base_temp -= 20
        else:
            base_temp += 10

        temp = base_temp + (self.rng.random() * 20 - 10)

        condition = "Clear"
        if self.rng.random() > 0.7:
            if temp < 32:
                condition = "Snow"
            elif self.rng.random() > 0.5:
                condition = "Rain"
            else:
                condition = "Clouds"

        return ConditionSample(
            latitude=lat,
            longitude=lon,
            temperature_f=round_half_up(temp),
            condition=condition,
            description=f"Simulated {condition.lower()}",
            humidity=round_half_up(self.rng.random() * 50 + 30),
            wind_speed_mph=round_half_up(self.rng.random() * 15),
            visibility_m=10000,
            icon=_SYNTHETIC_ICONS[condition],
            is_day=True,
            source="synthetic",
            impact=calculate_impact(temp, condition),
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_statistics(self) -> dict:
        return {
            **self.stats,
            "cache": self.cache.get_stats(),
            "circuit_breaker": self.circuit_breaker.get_status(),
            "live_provider_configured": self.provider is not None,
        }
