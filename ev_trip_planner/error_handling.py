import logging
import time
from typing import Optional, Dict, Any, Callable
from enum import Enum

from .exceptions import TripPlannerError, TripPlanningError

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    GEOCODER = "geocoder"
    ROUTER = "router"
    WEATHER = "weather"
    STATIONS = "stations"


class ProviderError(TripPlannerError):
    """Base exception for external provider errors"""
    def __init__(self, message: str, provider_type: ProviderType = None, recoverable: bool = True):
        self.message = message
        self.provider_type = provider_type
        self.recoverable = recoverable
        super().__init__(message)


class RetryableError(ProviderError):
    """Transient provider failure (timeout, 5xx)"""
    pass


class NonRetryableError(ProviderError):
    """Provider failure that will not clear on its own (4xx, bad payload)"""
    def __init__(self, message: str, provider_type: ProviderType = None):
        super().__init__(message, provider_type, recoverable=False)


class CircuitBreaker:
    """Circuit breaker for external providers"""

    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout: float = 60,
                 clock: Optional[Callable[[], float]] = None):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock or time.monotonic

        self.failure_count = 0
        self.last_failure_time = None
        self.state = "CLOSED"  # CLOSED, OPEN, HALF_OPEN

    def is_available(self) -> bool:
        """Check if provider may be called"""
        if self.state == "CLOSED":
            return True

        if self.state == "OPEN":
            if self._clock() - self.last_failure_time >= self.recovery_timeout:
                self.state = "HALF_OPEN"
                logger.info(f"Circuit breaker for {self.name} half-open, allowing trial request")
                return True
            return False

        # HALF_OPEN state
        return True

    def record_success(self):
        self.failure_count = 0
        self.state = "CLOSED"

    def record_failure(self):
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == "HALF_OPEN" or self.failure_count >= self.failure_threshold:
            self.state = "OPEN"
            logger.warning(f"Circuit breaker for {self.name} opened after {self.failure_count} failures")

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }


def create_error_response(error: Exception, status_code: int) -> Dict[str, Any]:
    """Create standardized error response body"""
    detail = {
        "message": getattr(error, "message", None) or str(error),
        "type": type(error).__name__,
        "retry_recommended": isinstance(error, RetryableError) or getattr(error, "retryable", False),
    }
    if isinstance(error, TripPlanningError) and error.stage:
        detail["stage"] = error.stage
    return {
        "success": False,
        "status_code": status_code,
        "error": detail,
        "metadata": {
            "timestamp": time.time(),
            "service": "ev-trip-planner"
        }
    }
