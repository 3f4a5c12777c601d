"""Ambient condition models used by the condition sampler and energy model"""
from dataclasses import dataclass
from pydantic import BaseModel, Field
from typing import Optional, Literal


@dataclass
class WeatherObservation:
    """Raw reading from a live weather provider"""
    temperature_f: float
    condition: str
    description: str
    humidity: float
    wind_speed_mph: float
    visibility_m: float
    icon: Optional[str] = None
    is_day: bool = True


class ConditionImpact(BaseModel):
    """Effect of ambient conditions on driving efficiency and charging"""
    efficiency: float = Field(..., gt=0, le=1.0, description="Efficiency multiplier (0.85 = 15% loss)")
    range_loss_percent: int = Field(..., ge=0, le=100)
    charging_speed: float = Field(..., gt=0, le=1.0, description="Charging speed multiplier")
    message: Optional[str] = None


class ConditionSample(BaseModel):
    """Point-in-time weather observation with its derived impact"""
    latitude: float
    longitude: float
    temperature_f: float
    condition: str
    description: str
    humidity: float
    wind_speed_mph: float
    visibility_m: float
    icon: Optional[str] = None
    is_day: bool = True
    source: Literal["live", "synthetic"] = "synthetic"
    impact: ConditionImpact
