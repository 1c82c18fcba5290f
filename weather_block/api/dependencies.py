from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Header, HTTPException, Request

from weather_block.config.settings import Settings
from weather_block.providers.store.base import KeyValueStore
from weather_block.services.credentials import CredentialProvider
from weather_block.services.weather_service import WeatherService, create_weather_service
from weather_block.utils.exceptions import InvalidNonceError
from weather_block.utils.nonce import ADMIN_ACTION, REST_ACTION, verify_nonce


def _require_state(request: Request, name: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(status_code=503, detail="Weather service not available")
    return getattr(request.app.state, name)


def get_app_settings(request: Request) -> Settings:
    return _require_state(request, "settings")


def get_cache_store(request: Request) -> KeyValueStore:
    return _require_state(request, "cache_store")


def get_credentials(request: Request) -> CredentialProvider:
    return _require_state(request, "credentials")


def get_service_factory(request: Request) -> Callable[[str], WeatherService]:
    """Build weather services for an explicit API key from application state"""
    cache_store = _require_state(request, "cache_store")
    weather_client = _require_state(request, "weather_client")
    app_settings = _require_state(request, "settings")

    def factory(api_key: str) -> WeatherService:
        return create_weather_service(api_key, cache_store, weather_client, app_settings)

    return factory


async def get_weather_service(request: Request) -> WeatherService:
    """
    Dependency injection for the weather service.

    The service is built per request with the currently effective API key,
    so a key stored through the settings endpoint applies immediately.
    """
    credentials = get_credentials(request)
    api_key = await credentials.get_effective_api_key()
    return get_service_factory(request)(api_key)


def require_nonce(action: str) -> Callable[..., Awaitable[None]]:
    """Dependency verifying the X-WP-Nonce header for an action"""

    async def verify(
        request: Request,
        x_wp_nonce: Annotated[str | None, Header(alias="X-WP-Nonce")] = None,
    ) -> None:
        app_settings = get_app_settings(request)
        if not verify_nonce(
            x_wp_nonce,
            action,
            app_settings.nonce_secret,
            app_settings.nonce_lifetime_seconds,
        ):
            raise InvalidNonceError()

    return verify


require_rest_nonce = require_nonce(REST_ACTION)
require_admin_nonce = require_nonce(ADMIN_ACTION)
