import logging
from typing import Any

import httpx

from weather_block.config.settings import Settings
from weather_block.utils.exceptions import (
    ConfigurationError,
    EmptyUpstreamResponseError,
    UpstreamAPIError,
    UpstreamFetchError,
)

logger = logging.getLogger(__name__)

SUCCESS_CODE = 200


class WeatherClient:
    """
    Async client for the OpenWeatherMap current-weather endpoint.

    The client only checks the provider's own ``cod`` field; the HTTP status
    line is not inspected, since the provider reports errors in the body.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._validate_config()
        self.client: httpx.AsyncClient | None = http_client
        self._owns_client = http_client is None

    def _validate_config(self) -> None:
        """Validate client configuration"""
        if not self.settings.weather_api_url:
            raise ConfigurationError("Weather API URL is required but not provided")

        if self.settings.weather_api_timeout <= 0:
            raise ConfigurationError("Weather API timeout must be positive")

    @property
    def user_agent(self) -> str:
        return f"{self.settings.app_name}/{self.settings.app_version}"

    async def __aenter__(self) -> "WeatherClient":
        """Async context manager entry"""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.weather_api_timeout),
                headers={"User-Agent": self.user_agent},
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit"""
        await self.aclose()

    async def aclose(self) -> None:
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None

    async def fetch_current_weather(
        self, location: str, units: str, api_key: str
    ) -> dict[str, Any]:
        """Fetch the raw current-weather payload for a location"""
        if not self.client:
            raise ConfigurationError(
                "Weather client not initialized. Use async context manager."
            )

        logger.info(f"Fetching weather data for location: {location} ({units})")

        response = await self._make_api_request(location, units, api_key)
        return self._parse_response(response, location)

    async def _make_api_request(
        self, location: str, units: str, api_key: str
    ) -> httpx.Response:
        """Make HTTP request to weather API"""
        params = {
            "q": location,
            "appid": api_key,
            "units": units,
        }

        try:
            return await self.client.get(
                str(self.settings.weather_api_url),
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.settings.weather_api_timeout,
            )

        except httpx.TimeoutException as e:
            logger.error(
                f"Weather Block API Error: request timed out after "
                f"{self.settings.weather_api_timeout}s for {location}: {e}"
            )
            raise UpstreamFetchError() from e
        except httpx.HTTPError as e:
            logger.error(f"Weather Block API Error: {e}")
            raise UpstreamFetchError() from e

    def _parse_response(self, response: httpx.Response, location: str) -> dict[str, Any]:
        """Decode the response body and check the provider status code"""
        if not response.content or not response.content.strip():
            logger.error("Weather Block API Error: Empty response body")
            raise EmptyUpstreamResponseError()

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Weather Block API Error: Undecodable response body for {location}: {e}")
            raise EmptyUpstreamResponseError() from e

        if not isinstance(data, dict) or not data:
            logger.error("Weather Block API Error: Response body is not a JSON object")
            raise EmptyUpstreamResponseError()

        if data.get("cod") is not None and not self._is_success_code(data["cod"]):
            provider_message = data.get("message") or "Unknown API error"
            logger.error(f"Weather Block API Error: {provider_message}")
            raise UpstreamAPIError(details={"cod": str(data["cod"])})

        return data

    @staticmethod
    def _is_success_code(code: Any) -> bool:
        try:
            return int(code) == SUCCESS_CODE
        except (TypeError, ValueError):
            return False
