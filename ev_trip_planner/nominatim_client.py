import httpx
import logging
from typing import Optional
from pydantic import BaseModel

from .error_handling import RetryableError, NonRetryableError, ProviderType
from .exceptions import GeocodingError
from .models import GeocodeResult

logger = logging.getLogger(__name__)


class NominatimConfig(BaseModel):
    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "ev-trip-planner/1.0"
    timeout: float = 10.0


class NominatimGeocoder:
    """Forward geocoding through OpenStreetMap Nominatim"""

    def __init__(self, config: NominatimConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers={"User-Agent": self.config.user_agent, "Accept": "application/json"},
            )
        return self._client

    async def resolve(self, address: str) -> GeocodeResult:
        """Resolve address text to the best-ranked match"""
        try:
            response = await self.client.get(
                f"{self.config.base_url}/search",
                params={"format": "json", "q": address, "limit": 1},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RetryableError(f"Nominatim timeout: {e}", ProviderType.GEOCODER)
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise RetryableError(f"Nominatim server error: {e}", ProviderType.GEOCODER)
            raise NonRetryableError(f"Nominatim client error: {e}", ProviderType.GEOCODER)
        except httpx.HTTPError as e:
            raise RetryableError(f"Nominatim transport error: {e}", ProviderType.GEOCODER)
        except ValueError as e:
            raise NonRetryableError(f"Nominatim returned a non-JSON response: {e}", ProviderType.GEOCODER)

        if not isinstance(data, list) or len(data) == 0:
            raise GeocodingError(address)

        first = data[0]
        try:
            result = GeocodeResult(
                lat=float(first["lat"]),
                lon=float(first["lon"]),
                display_name=str(first.get("display_name") or address),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(address, reason=f"malformed geocoder response: {e}")

        logger.info(f"Geocoded '{address}' -> ({result.lat}, {result.lon})")
        return result

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
