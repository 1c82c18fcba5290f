from collections.abc import Callable
from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from weather_block.api.dependencies import (
    get_app_settings,
    get_cache_store,
    get_credentials,
    get_service_factory,
    get_weather_service,
    require_admin_nonce,
    require_rest_nonce,
)
from weather_block.api.errors import weather_error_response
from weather_block.config.settings import Settings
from weather_block.models.weather import (
    ApiKeyTestResult,
    ApiKeyUpdate,
    BlockAttributes,
    ErrorResponse,
    SettingsStatus,
    WeatherRecord,
)
from weather_block.providers.store.base import KeyValueStore
from weather_block.services.block_renderer import render_weather_block
from weather_block.services.credentials import CredentialProvider, mask_api_key
from weather_block.services.weather_service import WeatherService
from weather_block.utils.exceptions import WeatherBlockError
from weather_block.utils.nonce import REST_ACTION, create_nonce

logger = structlog.get_logger(__name__)
router = APIRouter()

LOCATION_PATTERN = r"^[a-zA-Z0-9-]+$"
UNITS_PATTERN = r"^(metric|imperial)$"

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid parameter or location"},
    403: {"model": ErrorResponse, "description": "Invalid security token"},
    500: {"model": ErrorResponse, "description": "Weather API or configuration error"},
}


@router.get(
    "/weather/{location}",
    response_model=WeatherRecord,
    summary="Get current weather data",
    description="""
    Retrieve current weather for a location.

    Records are cached for 15 minutes per normalized location and unit
    system; a cached record is returned without calling the weather API.

    **Parameters:**
    - `location`: letters, digits and hyphens, up to 100 characters
    - `units`: `metric` (default) or `imperial`

    Requires an `X-WP-Nonce` header issued for the REST action.
    """,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_rest_nonce)],
    tags=["Weather"],
)
async def get_weather(
    location: Annotated[
        str,
        Path(
            description="Location to get weather for",
            max_length=100,
            pattern=LOCATION_PATTERN,
        ),
    ],
    units: Annotated[
        str,
        Query(description="Unit system", pattern=UNITS_PATTERN),
    ] = "metric",
    weather_service: WeatherService = Depends(get_weather_service),
) -> Any:
    """Get current weather data for a location."""
    logger.info("Weather request received", location=location, units=units)

    try:
        record = await weather_service.get_weather_data(location, units)

    except WeatherBlockError as e:
        logger.warning(
            "Weather request failed",
            location=location,
            units=units,
            error_code=e.error_code,
        )
        return weather_error_response(e)

    logger.info("Weather request completed successfully", location=location)
    return record


@router.get(
    "/block",
    response_class=HTMLResponse,
    summary="Render the weather block",
    description="""
    Server-side render of the weather block for the given attributes.

    The markup carries a `data-nonce` attribute holding a REST nonce, which
    the block sends back as `X-WP-Nonce` when it calls the weather endpoint.
    """,
    tags=["Weather"],
)
async def render_block(
    location: Annotated[str, Query(max_length=100)] = "",
    units: Annotated[str, Query(max_length=20)] = "metric",
    display_mode: Annotated[str, Query(alias="displayMode", max_length=50)] = "auto",
    weather_service: WeatherService = Depends(get_weather_service),
    app_settings: Settings = Depends(get_app_settings),
) -> HTMLResponse:
    attributes = BlockAttributes(location=location, units=units, displayMode=display_mode)
    nonce = create_nonce(
        REST_ACTION, app_settings.nonce_secret, app_settings.nonce_lifetime_seconds
    )
    html = await render_weather_block(attributes, weather_service, nonce)
    return HTMLResponse(content=html)


@router.get(
    "/settings",
    response_model=SettingsStatus,
    summary="API key status",
    dependencies=[Depends(require_admin_nonce)],
    tags=["Settings"],
)
async def get_settings_status(
    credentials: CredentialProvider = Depends(get_credentials),
) -> SettingsStatus:
    stored_key = await credentials.get_api_key()
    return SettingsStatus(
        api_key_configured=await credentials.is_api_key_configured(),
        api_key=mask_api_key(stored_key),
        has_stored_key=bool(stored_key),
    )


@router.put(
    "/settings",
    response_model=SettingsStatus,
    summary="Store the API key",
    description="""
    Store the OpenWeatherMap API key. Keys must be 32 alphanumeric
    characters; an empty key clears the stored value. On a format error the
    stored key is left unchanged.
    """,
    responses={400: ERROR_RESPONSES[400], 403: ERROR_RESPONSES[403]},
    dependencies=[Depends(require_admin_nonce)],
    tags=["Settings"],
)
async def update_settings(
    payload: ApiKeyUpdate,
    credentials: CredentialProvider = Depends(get_credentials),
) -> Any:
    try:
        stored_key = await credentials.update_api_key(payload.api_key)
    except WeatherBlockError as e:
        logger.warning("API key update rejected", error_code=e.error_code)
        return weather_error_response(e)

    logger.info("API key updated", has_stored_key=bool(stored_key))
    return SettingsStatus(
        api_key_configured=await credentials.is_api_key_configured(),
        api_key=mask_api_key(stored_key),
        has_stored_key=bool(stored_key),
    )


@router.post(
    "/settings/test-api-key",
    response_model=ApiKeyTestResult,
    summary="Test the stored API key",
    description="Performs a live lookup for London (metric) with the stored key.",
    dependencies=[Depends(require_admin_nonce)],
    tags=["Settings"],
)
async def test_api_key(
    credentials: CredentialProvider = Depends(get_credentials),
    service_factory: Callable[[str], WeatherService] = Depends(get_service_factory),
) -> ApiKeyTestResult:
    logger.info("API key test requested")
    result = await credentials.test_api_key(service_factory)
    logger.info("API key test completed", success=result.success)
    return result


@router.delete(
    "/cache/{location}",
    response_model=dict[str, bool],
    summary="Clear one cached record",
    dependencies=[Depends(require_admin_nonce)],
    tags=["Cache Management"],
)
async def clear_cache(
    location: Annotated[str, Path(max_length=100)],
    units: Annotated[str, Query(pattern=UNITS_PATTERN)] = "metric",
    weather_service: WeatherService = Depends(get_weather_service),
) -> Any:
    try:
        deleted = await weather_service.clear_cache(location, units)
    except WeatherBlockError as e:
        logger.error("Cache clear failed", location=location, error=str(e))
        return weather_error_response(e)

    logger.info("Cache cleared", location=location, units=units, deleted=deleted)
    return {"deleted": deleted}


@router.delete(
    "/cache",
    response_model=dict[str, Any],
    summary="Clear all cached weather records",
    dependencies=[Depends(require_admin_nonce)],
    tags=["Cache Management"],
)
async def clear_all_cache(
    weather_service: WeatherService = Depends(get_weather_service),
) -> Any:
    try:
        deleted_count = await weather_service.clear_all_cache()
    except WeatherBlockError as e:
        logger.error("Cache purge failed", error=str(e))
        return weather_error_response(e)

    logger.info("Cache purged", deleted_entries=deleted_count)
    return {
        "deleted_entries": deleted_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get(
    "/health",
    response_model=dict[str, Any],
    summary="Service health check",
    description="""
    Checks the cache and option stores and reports whether an API key is
    configured. The weather API itself is not called.
    """,
    tags=["Health"],
)
async def health_check(
    request: Request,
    cache_store: KeyValueStore = Depends(get_cache_store),
    credentials: CredentialProvider = Depends(get_credentials),
) -> JSONResponse:
    logger.info("Health check requested")

    health_status: dict[str, Any] = {
        "service": "healthy",
        "components": {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        cache_healthy = await cache_store.health_check()
        health_status["components"]["cache_store"] = {
            "status": "healthy" if cache_healthy else "unhealthy"
        }

        option_store = request.app.state.option_store
        option_healthy = await option_store.health_check()
        health_status["components"]["option_store"] = {
            "status": "healthy" if option_healthy else "unhealthy"
        }

        api_key_configured = await credentials.is_api_key_configured()
        health_status["components"]["api_key"] = {
            "status": "healthy" if api_key_configured else "unhealthy"
        }

        if not (cache_healthy and option_healthy):
            health_status["service"] = "unhealthy"
        elif not api_key_configured:
            health_status["service"] = "degraded"

    except Exception as e:
        logger.error("Health check failed", error=str(e), error_type=type(e).__name__)
        health_status["service"] = "unhealthy"
        health_status["error"] = str(e)

    status_code = 503 if health_status["service"] == "unhealthy" else 200

    logger.info(
        "Health check completed",
        status=health_status["service"],
        status_code=status_code,
    )

    return JSONResponse(status_code=status_code, content=health_status)


@router.get(
    "/health/ready",
    response_model=dict[str, Any],
    summary="Readiness probe",
    tags=["Health"],
)
async def readiness_check(request: Request) -> Any:
    """Simple readiness check for container orchestration."""
    state = request.app.state
    if not all(
        hasattr(state, name) for name in ("cache_store", "option_store", "weather_client")
    ):
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Service not initialized"},
        )

    return {"status": "ready"}
