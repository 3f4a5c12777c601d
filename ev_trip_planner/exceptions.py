"""
Exception hierarchy for the EV trip planner.

Fatal planning errors carry the pipeline stage they were raised from so the
API layer can report where a plan failed.
"""


class TripPlannerError(Exception):
    """Base exception for all trip planner errors"""
    pass


class TripConfigurationError(TripPlannerError):
    """Error in service configuration"""
    pass


class TripPlanningError(TripPlannerError):
    """Fatal error that aborts a trip planning run"""

    def __init__(self, message: str, stage: str = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class VehicleNotFoundError(TripPlanningError):
    """Raised when the requested vehicle profile does not exist"""

    def __init__(self, vehicle_id: str):
        super().__init__(f"Unknown vehicle profile: {vehicle_id}", stage="idle")
        self.vehicle_id = vehicle_id


class GeocodingError(TripPlanningError):
    """Raised when an address resolves to no coordinates"""

    def __init__(self, address: str, reason: str = None):
        message = f"No results for address: {address}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, stage="geocoding")
        self.address = address


class NoRouteError(TripPlanningError):
    """Raised when the router returns no path between two coordinates"""

    def __init__(self, origin: tuple, destination: tuple, reason: str = None):
        message = f"No route found between {origin} and {destination}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, stage="routing")
        self.origin = origin
        self.destination = destination


class EnergyModelValidationError(TripPlannerError, ValueError):
    """Raised when energy model inputs would produce meaningless results"""

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid energy model input '{field}': {reason}")
        self.field = field
        self.reason = reason


class TripStoreError(TripPlannerError):
    """Raised when a trip record cannot be persisted or found"""
    pass


class ProviderUnavailableError(TripPlanningError):
    """Raised when a collaborator needed for a fatal stage cannot be reached"""

    def __init__(self, provider: str, stage: str, reason: str = None, retryable: bool = True):
        message = f"{provider} unavailable during {stage}"
        if reason:
            message += f": {reason}"
        super().__init__(message, stage=stage)
        self.provider = provider
        self.retryable = retryable
