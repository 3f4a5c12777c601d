import httpx
import logging
from typing import List, Optional
from pydantic import BaseModel

from .error_handling import RetryableError, NonRetryableError, ProviderType
from .exceptions import NoRouteError
from .models import LatLon, RouteGeometry

logger = logging.getLogger(__name__)


class OSRMConfig(BaseModel):
    base_url: str = "https://router.project-osrm.org"
    profile: str = "driving"
    timeout: float = 10.0


class OSRMRouter:
    """Driving routes with alternatives from an OSRM server"""

    def __init__(self, config: OSRMConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def route(self, origin: LatLon, destination: LatLon, alternatives: int = 3) -> List[RouteGeometry]:
        """Get up to ``alternatives`` routes; coordinates are returned as (lat, lon)"""
        # OSRM takes lon,lat pairs
        coords = f"{origin[1]},{origin[0]};{destination[1]},{destination[0]}"
        try:
            response = await self.client.get(
                f"{self.config.base_url}/route/v1/{self.config.profile}/{coords}",
                params={
                    "overview": "full",
                    "geometries": "geojson",
                    "alternatives": "true" if alternatives > 1 else "false",
                },
            )
            if response.status_code == 400:
                # OSRM reports NoRoute / NoSegment with 400
                raise NoRouteError(origin, destination, reason="router rejected request")
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RetryableError(f"OSRM timeout: {e}", ProviderType.ROUTER)
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise RetryableError(f"OSRM server error: {e}", ProviderType.ROUTER)
            raise NonRetryableError(f"OSRM client error: {e}", ProviderType.ROUTER)
        except httpx.HTTPError as e:
            raise RetryableError(f"OSRM transport error: {e}", ProviderType.ROUTER)
        except ValueError as e:
            raise NonRetryableError(f"OSRM returned a non-JSON response: {e}", ProviderType.ROUTER)

        if not isinstance(data, dict) or data.get("code", "Ok") != "Ok" or not data.get("routes"):
            reason = data.get("code") if isinstance(data, dict) else None
            raise NoRouteError(origin, destination, reason=reason)
        routes = data["routes"]

        geometries = []
        try:
            for r in routes[:alternatives]:
                coordinates = [(c[1], c[0]) for c in r.get("geometry", {}).get("coordinates", [])]
                geometries.append(RouteGeometry(
                    distance_m=float(r["distance"]),
                    duration_s=float(r["duration"]),
                    coordinates=coordinates,
                ))
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise NonRetryableError(f"OSRM returned unexpected format: {e}", ProviderType.ROUTER)

        logger.info(f"OSRM returned {len(geometries)} route(s) from {origin} to {destination}")
        return geometries

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
