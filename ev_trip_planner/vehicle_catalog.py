"""Reference catalog of supported EV models."""
from typing import Dict, List, Optional

from .exceptions import VehicleNotFoundError
from .models import VehicleProfile

EV_MODELS: List[VehicleProfile] = [
    VehicleProfile(id="1", manufacturer="Tesla", model_name="Model 3 Standard Range", year=2024,
                   battery_capacity_kwh=60.0, range_miles=272, efficiency_kwh_per_mile=0.220),
    VehicleProfile(id="2", manufacturer="Tesla", model_name="Model 3 Long Range", year=2024,
                   battery_capacity_kwh=82.0, range_miles=358, efficiency_kwh_per_mile=0.229),
    VehicleProfile(id="3", manufacturer="Tesla", model_name="Model Y Long Range", year=2024,
                   battery_capacity_kwh=81.0, range_miles=330, efficiency_kwh_per_mile=0.245),
    VehicleProfile(id="4", manufacturer="Tesla", model_name="Model S", year=2024,
                   battery_capacity_kwh=100.0, range_miles=405, efficiency_kwh_per_mile=0.247),
    VehicleProfile(id="5", manufacturer="Chevrolet", model_name="Bolt EV", year=2024,
                   battery_capacity_kwh=65.0, range_miles=259, efficiency_kwh_per_mile=0.251),
    VehicleProfile(id="6", manufacturer="Nissan", model_name="Leaf", year=2024,
                   battery_capacity_kwh=60.0, range_miles=212, efficiency_kwh_per_mile=0.283),
    VehicleProfile(id="7", manufacturer="Ford", model_name="Mustang Mach-E", year=2024,
                   battery_capacity_kwh=91.0, range_miles=312, efficiency_kwh_per_mile=0.292),
    VehicleProfile(id="8", manufacturer="Hyundai", model_name="Ioniq 5", year=2024,
                   battery_capacity_kwh=77.4, range_miles=303, efficiency_kwh_per_mile=0.255),
    VehicleProfile(id="9", manufacturer="Volkswagen", model_name="ID.4", year=2024,
                   battery_capacity_kwh=82.0, range_miles=275, efficiency_kwh_per_mile=0.298),
    VehicleProfile(id="10", manufacturer="Rivian", model_name="R1T", year=2024,
                   battery_capacity_kwh=135.0, range_miles=314, efficiency_kwh_per_mile=0.430),
]


class VehicleCatalog:
    """Lookup over a fixed list of vehicle profiles"""

    def __init__(self, vehicles: Optional[List[VehicleProfile]] = None):
        vehicles = EV_MODELS if vehicles is None else vehicles
        self._vehicles: Dict[str, VehicleProfile] = {v.id: v for v in vehicles}

    def list(self) -> List[VehicleProfile]:
        return list(self._vehicles.values())

    def get(self, vehicle_id: str) -> VehicleProfile:
        try:
            return self._vehicles[vehicle_id]
        except KeyError:
            raise VehicleNotFoundError(vehicle_id) from None
