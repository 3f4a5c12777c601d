import httpx
import logging
from typing import Optional
from pydantic import BaseModel

from .error_handling import RetryableError, NonRetryableError, ProviderType
from .models import WeatherObservation

logger = logging.getLogger(__name__)


class OpenWeatherConfig(BaseModel):
    """OpenWeatherMap API configuration"""
    api_key: str
    base_url: str = "https://api.openweathermap.org/data/2.5"
    timeout: float = 10.0


class OpenWeatherClient:
    """Client for the OpenWeatherMap current-weather endpoint (imperial units)"""

    def __init__(self, config: OpenWeatherConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def fetch(self, lat: float, lon: float) -> WeatherObservation:
        """Get current conditions for a coordinate"""
        try:
            response = await self.client.get(
                f"{self.config.base_url}/weather",
                params={
                    "lat": lat,
                    "lon": lon,
                    "units": "imperial",
                    "appid": self.config.api_key,
                }
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"OpenWeather timeout for ({lat}, {lon}): {e}")
            raise RetryableError(f"OpenWeather timeout: {e}", ProviderType.WEATHER)
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise RetryableError(f"OpenWeather server error: {e}", ProviderType.WEATHER)
            elif e.response.status_code in [401, 403]:
                logger.error(f"OpenWeather authentication error: {e}")
                raise NonRetryableError(f"OpenWeather authentication failed: {e}", ProviderType.WEATHER)
            raise NonRetryableError(f"OpenWeather client error: {e}", ProviderType.WEATHER)
        except httpx.HTTPError as e:
            raise RetryableError(f"OpenWeather transport error: {e}", ProviderType.WEATHER)
        except ValueError as e:
            raise NonRetryableError(f"OpenWeather returned a non-JSON response: {e}", ProviderType.WEATHER)

        return self._parse(data)

    @staticmethod
    def _parse(data: dict) -> WeatherObservation:
        try:
            main = data["main"]
            weather = data["weather"][0]
            sys_info = data.get("sys", {})
            dt = data.get("dt")
            sunrise = sys_info.get("sunrise")
            sunset = sys_info.get("sunset")
            if dt is not None and sunrise is not None and sunset is not None:
                is_day = sunrise < dt < sunset
            else:
                is_day = True

            return WeatherObservation(
                temperature_f=float(main["temp"]),
                condition=str(weather["main"]),
                description=str(weather.get("description", "")),
                humidity=float(main.get("humidity", 0)),
                wind_speed_mph=float(data.get("wind", {}).get("speed", 0)),
                visibility_m=float(data.get("visibility", 10000)),
                icon=weather.get("icon"),
                is_day=is_day,
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise NonRetryableError(f"OpenWeather returned unexpected format: {e}", ProviderType.WEATHER)

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
