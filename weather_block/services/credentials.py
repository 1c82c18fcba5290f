import logging
import re
from collections.abc import Callable

from weather_block.config.settings import Settings
from weather_block.config.utils import PLACEHOLDER_API_KEY
from weather_block.models.weather import ApiKeyTestResult
from weather_block.providers.store.base import KeyValueStore
from weather_block.services.weather_service import WeatherService
from weather_block.utils.exceptions import InvalidAPIKeyFormatError, WeatherBlockError
from weather_block.utils.sanitize import sanitize_text_field

logger = logging.getLogger(__name__)

OPTION_NAME = "weather_block_api_key"
API_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9]{32}$")

TEST_LOCATION = "London"
TEST_UNITS = "metric"


def mask_api_key(api_key: str) -> str:
    """Mask all but the last four characters of a key"""
    if not api_key:
        return ""
    if len(api_key) <= 4:
        return "*" * len(api_key)
    return "*" * (len(api_key) - 4) + api_key[-4:]


class CredentialProvider:
    """
    Resolves the OpenWeatherMap API key.

    A key stored in the option store takes priority; otherwise the deployment
    default from settings is used; otherwise the key is empty.
    """

    def __init__(self, option_store: KeyValueStore, settings: Settings):
        self._option_store = option_store
        self.settings = settings

    async def get_api_key(self) -> str:
        """Get the stored API key, or an empty string if none is stored"""
        value = await self._option_store.get(OPTION_NAME)
        return value if isinstance(value, str) else ""

    async def get_effective_api_key(self) -> str:
        """Get the API key to use, falling back to the deployment default"""
        option_key = await self.get_api_key()
        if option_key:
            return option_key

        if self.settings.weather_api_key:
            return self.settings.weather_api_key

        return ""

    async def is_api_key_configured(self) -> bool:
        api_key = await self.get_effective_api_key()
        return bool(api_key) and api_key != PLACEHOLDER_API_KEY

    @staticmethod
    def sanitize_api_key(api_key: str) -> str:
        """Trim and sanitize a submitted key; non-empty keys must be 32 alphanumerics"""
        api_key = sanitize_text_field(api_key.strip())

        if api_key and not API_KEY_PATTERN.match(api_key):
            raise InvalidAPIKeyFormatError()

        return api_key

    async def update_api_key(self, api_key: str) -> str:
        """Validate and persist a new API key; an empty key clears it"""
        sanitized = self.sanitize_api_key(api_key)

        if sanitized:
            await self._option_store.set(OPTION_NAME, sanitized)
            logger.info(f"Stored API key ending in {sanitized[-4:]}")
        else:
            await self._option_store.delete(OPTION_NAME)
            logger.info("Cleared stored API key")

        return sanitized

    async def test_api_key(
        self, service_factory: Callable[[str], WeatherService]
    ) -> ApiKeyTestResult:
        """Check the stored key with a real lookup for a well-known location"""
        api_key = await self.get_api_key()

        if not api_key:
            return ApiKeyTestResult(success=False, message="No API key configured.")

        service = service_factory(api_key)

        try:
            record = await service.get_weather_data(TEST_LOCATION, TEST_UNITS)
        except WeatherBlockError as e:
            logger.warning(f"API key test failed: {e.error_code}")
            return ApiKeyTestResult(success=False, message=e.message)

        return ApiKeyTestResult(
            success=True,
            message="API key is valid and working!",
            data={
                "location": record.location,
                "temperature": record.temperature,
                "units": record.units,
            },
        )
