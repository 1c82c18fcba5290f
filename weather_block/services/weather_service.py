"""
Weather lookup service: validation, cache-or-fetch, and response normalization.

This service coordinates between the weather client and the cache store to
handle a single (location, units) lookup:

1. Validate the request and the configured API key
2. Return a live cached record if one exists
3. Otherwise fetch from the provider, validate and normalize the payload
4. Cache the normalized record for the configured TTL and return it
"""

import hashlib
import logging
import math
import time
from typing import Any

from pydantic import ValidationError

from weather_block.config.settings import Settings
from weather_block.config.utils import PLACEHOLDER_API_KEY
from weather_block.models.weather import ALLOWED_UNITS, WeatherQuery, WeatherRecord
from weather_block.providers.store.base import KeyValueStore
from weather_block.services.weather_client import WeatherClient
from weather_block.utils.exceptions import (
    CacheError,
    InvalidLocationError,
    InvalidUnitsError,
    InvalidUpstreamResponseError,
    MissingAPIKeyError,
)
from weather_block.utils.sanitize import sanitize_text_field

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "sys", "main", "weather")


def generate_cache_key(location: str, units: str, prefix: str = "weather_block_") -> str:
    """Generate a consistent cache key for a location and unit system"""
    normalized_location = location.strip().lower()
    digest = hashlib.md5(f"{normalized_location}{units}".encode("utf-8")).hexdigest()
    return f"{prefix}{digest}"


class WeatherService:
    """
    Cache-backed current-weather lookup for a single provider.

    Concurrent misses for the same key are not coalesced; each one fetches
    from the provider.
    """

    def __init__(
        self,
        api_key: str,
        cache_store: KeyValueStore,
        weather_client: WeatherClient,
        settings: Settings,
    ):
        self._api_key = api_key or ""
        self._cache_store = cache_store
        self._weather_client = weather_client
        self.settings = settings

    @property
    def ttl_seconds(self) -> int:
        return self.settings.cache_ttl_seconds

    @property
    def cache_prefix(self) -> str:
        return self.settings.cache_key_prefix

    def _validate_query(self, location: Any, units: Any) -> WeatherQuery:
        if not isinstance(location, str) or not location.strip():
            raise InvalidLocationError()

        if units not in ALLOWED_UNITS:
            raise InvalidUnitsError(units)

        if not self._api_key or self._api_key == PLACEHOLDER_API_KEY:
            raise MissingAPIKeyError()

        return WeatherQuery(location=location.strip(), units=units)

    def get_cache_key(self, location: str, units: str) -> str:
        return generate_cache_key(location, units, self.cache_prefix)

    async def get_weather_data(self, location: str, units: str = "metric") -> WeatherRecord:
        """
        Get current weather for a location, from cache when fresh.

        Raises:
            WeatherBlockError subclasses for validation, configuration and
            upstream failures; no cache or network access happens before
            validation passes.
        """
        query = self._validate_query(location, units)
        cache_key = self.get_cache_key(query.location, query.units)

        cached_record = await self._check_cache(cache_key)
        if cached_record is not None:
            logger.info(f"Cache hit for {query.location} ({query.units})")
            return cached_record

        logger.info(f"Cache miss for {query.location} ({query.units})")

        api_data = await self._weather_client.fetch_current_weather(
            query.location, query.units, self._api_key
        )
        weather_record = self.process_api_response(api_data, query.units)

        await self._store_weather_record(cache_key, weather_record)

        return weather_record

    async def _check_cache(self, cache_key: str) -> WeatherRecord | None:
        """Check cache for a live weather record"""
        try:
            cached_data = await self._cache_store.get(cache_key)
        except CacheError as e:
            logger.warning(f"Cache check failed for {cache_key}: {e}")
            return None

        if cached_data is None:
            return None

        try:
            return WeatherRecord(**cached_data)
        except (TypeError, ValidationError) as e:
            logger.warning(f"Discarding malformed cache entry {cache_key}: {e}")
            return None

    async def _store_weather_record(self, cache_key: str, weather_record: WeatherRecord) -> None:
        """Store a validated weather record with the configured TTL"""
        await self._cache_store.set(
            cache_key, weather_record.model_dump(), ttl_seconds=self.ttl_seconds
        )

    def process_api_response(self, api_data: dict[str, Any], units: str) -> WeatherRecord:
        """Validate the raw provider payload and build a normalized record"""
        for field in REQUIRED_FIELDS:
            if api_data.get(field) is None:
                raise self._invalid_response(f"Missing required field '{field}'")

        sys_data = api_data["sys"]
        main = api_data["main"]
        weather = api_data["weather"]

        if not isinstance(sys_data, dict) or sys_data.get("country") is None:
            raise self._invalid_response("Missing country in sys data")

        if (
            not isinstance(main, dict)
            or main.get("temp") is None
            or main.get("humidity") is None
        ):
            raise self._invalid_response("Missing temperature or humidity in main data")

        condition = weather[0] if isinstance(weather, list) and weather else None
        if (
            not isinstance(condition, dict)
            or condition.get("description") is None
            or condition.get("icon") is None
        ):
            raise self._invalid_response("Missing weather description or icon")

        try:
            temperature = float(main["temp"])
            humidity = int(float(main["humidity"]))
        except (TypeError, ValueError, OverflowError) as e:
            raise self._invalid_response(
                "Non-numeric temperature or humidity in main data"
            ) from e

        if not math.isfinite(temperature):
            raise self._invalid_response("Non-finite temperature in main data")

        return WeatherRecord(
            location=sanitize_text_field(api_data["name"]),
            country=sanitize_text_field(sys_data["country"]),
            temperature=temperature,
            description=sanitize_text_field(condition["description"]),
            icon=sanitize_text_field(condition["icon"]),
            humidity=humidity,
            units=units,
            timestamp=int(time.time()),
        )

    @staticmethod
    def _invalid_response(reason: str) -> InvalidUpstreamResponseError:
        logger.error(f"Weather Block API Error: {reason}")
        return InvalidUpstreamResponseError(details={"reason": reason})

    async def clear_cache(self, location: str, units: str = "metric") -> bool:
        """Clear the cached record for a location and unit system"""
        deleted = await self._cache_store.delete(self.get_cache_key(location, units))
        logger.info(f"Cleared cache for {location} ({units}): {deleted}")
        return deleted

    async def clear_all_cache(self) -> int:
        """Clear every cached weather record under this service's prefix"""
        deleted_count = await self._cache_store.delete_by_prefix(self.cache_prefix)
        logger.info(f"Cleared {deleted_count} cached weather records")
        return deleted_count

    def get_cache_info(self, location: str, units: str = "metric") -> dict[str, Any]:
        """Get cache configuration information for debugging"""
        return {
            "location": location,
            "units": units,
            "cache_key": self.get_cache_key(location, units),
            "ttl_minutes": self.settings.cache_ttl_minutes,
            "cache_store": type(self._cache_store).__name__,
        }


def create_weather_service(
    api_key: str,
    cache_store: KeyValueStore,
    weather_client: WeatherClient,
    settings: Settings,
) -> WeatherService:
    """
    Factory function to create a weather service for one credential.

    Usage:
        async with WeatherClient(settings) as client:
            service = create_weather_service(api_key, cache_store, client, settings)
            record = await service.get_weather_data("London", "metric")
    """
    return WeatherService(api_key, cache_store, weather_client, settings)
