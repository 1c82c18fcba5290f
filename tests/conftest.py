import copy
from typing import Any

import httpx
import pytest

from weather_block.config.settings import Settings
from weather_block.providers.store.memory import InMemoryStore
from weather_block.services.weather_client import WeatherClient
from weather_block.services.weather_service import WeatherService

VALID_API_KEY = "0123456789abcdef0123456789abcdef"

LONDON_RESPONSE: dict[str, Any] = {
    "coord": {"lon": -0.1257, "lat": 51.5085},
    "weather": [
        {"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}
    ],
    "base": "stations",
    "main": {
        "temp": 15.2,
        "feels_like": 14.8,
        "pressure": 1012,
        "humidity": 72,
    },
    "visibility": 10000,
    "wind": {"speed": 4.1, "deg": 240},
    "dt": 1700000000,
    "sys": {"country": "GB", "sunrise": 1699946000, "sunset": 1699978000},
    "timezone": 0,
    "id": 2643743,
    "name": "London",
    "cod": 200,
}


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWeatherProvider:
    """Stands in for the OpenWeatherMap endpoint behind an httpx.MockTransport"""

    def __init__(self) -> None:
        self.payload: Any = copy.deepcopy(LONDON_RESPONSE)
        self.status_code = 200
        self.raw_body: bytes | None = None
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_params(self) -> dict[str, str]:
        return dict(self.requests[-1].url.params)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.error is not None:
            raise self.error

        if self.raw_body is not None:
            return httpx.Response(self.status_code, content=self.raw_body)

        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def test_settings():
    """Create settings for testing"""
    return Settings(
        weather_api_key="",
        weather_api_url="https://api.openweathermap.org/data/2.5/weather",
        weather_api_timeout=10,
        cache_ttl_minutes=15,
        store_backend="memory",
        nonce_secret="test-nonce-secret",
        environment="development",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def fake_provider():
    return FakeWeatherProvider()


@pytest.fixture
def weather_client(test_settings, fake_provider):
    """WeatherClient wired to the fake provider"""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_provider.handler))
    return WeatherClient(test_settings, http_client=http_client)


@pytest.fixture
def weather_service(test_settings, cache_store, weather_client):
    """WeatherService with a valid API key"""
    return WeatherService(VALID_API_KEY, cache_store, weather_client, test_settings)


@pytest.fixture
def valid_api_key():
    return VALID_API_KEY
