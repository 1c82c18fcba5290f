from unittest.mock import AsyncMock, MagicMock

import pytest

from weather_block.config.utils import PLACEHOLDER_API_KEY
from weather_block.models.weather import WeatherRecord
from weather_block.providers.store.memory import InMemoryStore
from weather_block.services.credentials import (
    OPTION_NAME,
    CredentialProvider,
    mask_api_key,
)
from weather_block.utils.exceptions import InvalidAPIKeyFormatError, UpstreamAPIError

VALID_API_KEY = "0123456789abcdef0123456789abcdef"


class TestCredentialProvider:
    """Test suite for CredentialProvider"""

    @pytest.fixture
    def option_store(self):
        return InMemoryStore()

    @pytest.fixture
    def credentials(self, option_store, test_settings):
        return CredentialProvider(option_store, test_settings)

    async def test_no_key_configured(self, credentials):
        assert await credentials.get_api_key() == ""
        assert await credentials.get_effective_api_key() == ""
        assert await credentials.is_api_key_configured() is False

    async def test_stored_key_takes_priority(self, option_store, test_settings):
        """Test the stored option wins over the deployment default"""
        test_settings.weather_api_key = "deploymentdefault0000000000000000"
        await option_store.set(OPTION_NAME, VALID_API_KEY)

        credentials = CredentialProvider(option_store, test_settings)

        assert await credentials.get_effective_api_key() == VALID_API_KEY

    async def test_falls_back_to_settings_key(self, option_store, test_settings):
        test_settings.weather_api_key = "deploymentdefault0000000000000000"

        credentials = CredentialProvider(option_store, test_settings)

        assert await credentials.get_api_key() == ""
        assert await credentials.get_effective_api_key() == "deploymentdefault0000000000000000"
        assert await credentials.is_api_key_configured() is True

    async def test_placeholder_key_is_not_configured(self, option_store, test_settings):
        test_settings.weather_api_key = PLACEHOLDER_API_KEY

        credentials = CredentialProvider(option_store, test_settings)

        assert await credentials.is_api_key_configured() is False

    async def test_update_api_key(self, credentials, option_store):
        """Test a submitted key is trimmed and stored"""
        result = await credentials.update_api_key(f"  {VALID_API_KEY}\n")

        assert result == VALID_API_KEY
        assert await option_store.get(OPTION_NAME) == VALID_API_KEY
        assert await credentials.is_api_key_configured() is True

    async def test_update_with_empty_key_clears_it(self, credentials, option_store):
        await option_store.set(OPTION_NAME, VALID_API_KEY)

        result = await credentials.update_api_key("   ")

        assert result == ""
        assert await option_store.get(OPTION_NAME) is None

    @pytest.mark.parametrize(
        "api_key",
        [
            "tooshort",
            VALID_API_KEY + "0",
            "0123456789abcdef0123456789abcde!",
            "0123456789abcdef 0123456789abcde",
        ],
    )
    async def test_update_rejects_malformed_key(self, credentials, option_store, api_key):
        with pytest.raises(InvalidAPIKeyFormatError):
            await credentials.update_api_key(api_key)

        assert await option_store.get(OPTION_NAME) is None

    async def test_test_api_key_without_stored_key(self, credentials, test_settings):
        """Test the key check uses only the stored key"""
        test_settings.weather_api_key = VALID_API_KEY
        factory = MagicMock()

        result = await credentials.test_api_key(factory)

        assert result.success is False
        assert result.message == "No API key configured."
        factory.assert_not_called()

    async def test_test_api_key_success(self, credentials, option_store):
        await option_store.set(OPTION_NAME, VALID_API_KEY)
        service = AsyncMock()
        service.get_weather_data.return_value = WeatherRecord(
            location="London",
            country="GB",
            temperature=15.2,
            description="light rain",
            icon="10d",
            humidity=72,
            units="metric",
            timestamp=1700000000,
        )

        result = await credentials.test_api_key(lambda api_key: service)

        assert result.success is True
        assert result.message == "API key is valid and working!"
        assert result.data == {"location": "London", "temperature": 15.2, "units": "metric"}
        service.get_weather_data.assert_awaited_once_with("London", "metric")

    async def test_test_api_key_failure(self, credentials, option_store):
        await option_store.set(OPTION_NAME, VALID_API_KEY)
        service = AsyncMock()
        service.get_weather_data.side_effect = UpstreamAPIError()

        result = await credentials.test_api_key(lambda api_key: service)

        assert result.success is False
        assert result.message == UpstreamAPIError.default_message
        assert result.data is None


@pytest.mark.parametrize(
    "api_key,expected",
    [
        ("", ""),
        ("abc", "***"),
        (VALID_API_KEY, "*" * 28 + "cdef"),
    ],
)
def test_mask_api_key(api_key, expected):
    assert mask_api_key(api_key) == expected
