"""Charging station models"""
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple


class StationPricing(BaseModel):
    per_kwh: float
    per_minute: Optional[float] = None
    session_fee: float = 0.0
    currency: str = "USD"


class StationAmenities(BaseModel):
    restrooms: bool = False
    food_nearby: bool = False
    shopping: bool = False
    wifi: bool = False
    covered: bool = False
    security: bool = False
    lighting: bool = False


class StationAccessibility(BaseModel):
    wheelchair_accessible: bool = False
    disabled_parking: bool = False
    audio_announcements: bool = False


class StationReview(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str
    date: str
    user: str


class StationReviews(BaseModel):
    average_rating: float
    total_reviews: int
    recent_reviews: List[StationReview] = []


class EnvironmentalImpact(BaseModel):
    co2_saved_kg: float
    equivalent_trees: int
    renewable_percentage: int


class StationRecord(BaseModel):
    """
    Charging station as returned to callers.

    Provider metadata (location, power, operator, status) is real; availability,
    pricing, amenities, accessibility, reviews and environmental figures are
    synthetic annotations.
    """
    id: int
    title: str
    latitude: float
    longitude: float
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    distance_miles: float = 0.0
    power_kw: float = 0.0
    connection_type: str = "Unknown"
    network: str = "Unknown"
    is_operational: bool = False
    is_fast_charge: bool = False
    quantity: int = 1
    status: str = "Unknown"
    operator: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None

    available_ports: Optional[int] = None
    total_ports: int = 1
    estimated_wait_minutes: Optional[int] = None
    last_updated: Optional[str] = None
    pricing: Optional[StationPricing] = None
    amenities: Optional[StationAmenities] = None
    accessibility: Optional[StationAccessibility] = None
    reviews: Optional[StationReviews] = None
    environmental_impact: Optional[EnvironmentalImpact] = None


class AlongRouteRequest(BaseModel):
    """Station lookup along a polyline of (lat, lon) points"""
    polyline: List[Tuple[float, float]] = Field(..., min_length=1)
    radius_miles: Optional[float] = Field(None, gt=0, le=50)
    preferred_amenities: List[str] = []
