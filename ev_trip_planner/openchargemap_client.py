import httpx
import logging
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from .error_handling import RetryableError, NonRetryableError, ProviderType

logger = logging.getLogger(__name__)


class OpenChargeMapConfig(BaseModel):
    """OpenChargeMap API configuration"""
    api_key: str
    base_url: str = "https://api.openchargemap.io/v3"
    timeout: float = 10.0


class OpenChargeMapClient:
    """Client for the OpenChargeMap POI search"""

    def __init__(self, config: OpenChargeMapConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def query(self, lat: float, lon: float, radius_miles: float, max_results: int) -> List[Dict[str, Any]]:
        """Get raw POI records within radius_miles of a point"""
        try:
            response = await self.client.get(
                f"{self.config.base_url}/poi/",
                params={
                    "output": "json",
                    "latitude": lat,
                    "longitude": lon,
                    "distance": radius_miles,
                    "distanceunit": "Miles",
                    "maxresults": max_results,
                    "key": self.config.api_key,
                },
                headers={"Accept": "application/json", "X-API-Key": self.config.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"OpenChargeMap timeout for ({lat}, {lon}): {e}")
            raise RetryableError(f"OpenChargeMap timeout: {e}", ProviderType.STATIONS)
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise RetryableError(f"OpenChargeMap server error: {e}", ProviderType.STATIONS)
            elif e.response.status_code == 429:
                raise NonRetryableError(f"OpenChargeMap rate limit exceeded: {e}", ProviderType.STATIONS)
            elif e.response.status_code in [401, 403]:
                logger.error(f"OpenChargeMap authentication error: {e}")
                raise NonRetryableError(f"OpenChargeMap authentication failed: {e}", ProviderType.STATIONS)
            raise NonRetryableError(f"OpenChargeMap client error: {e}", ProviderType.STATIONS)
        except httpx.HTTPError as e:
            raise RetryableError(f"OpenChargeMap transport error: {e}", ProviderType.STATIONS)
        except ValueError as e:
            raise NonRetryableError(f"OpenChargeMap returned a non-JSON response: {e}", ProviderType.STATIONS)

        if not isinstance(data, list):
            raise NonRetryableError("OpenChargeMap returned unexpected format", ProviderType.STATIONS)

        logger.debug(f"OpenChargeMap returned {len(data)} POIs for ({lat}, {lon}) r={radius_miles}mi")
        return data

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
