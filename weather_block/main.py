import logging
import sys
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from weather_block.api.errors import (
    INTERNAL_ERROR_CODE,
    INVALID_PARAM_CODE,
    error_response,
    weather_error_response,
)
from weather_block.api.routes import router
from weather_block.config.settings import Settings, settings
from weather_block.config.utils import get_config_summary, validate_configuration
from weather_block.providers.store.factory import create_cache_store, create_option_store
from weather_block.services.credentials import CredentialProvider
from weather_block.services.weather_client import WeatherClient
from weather_block.services.weather_service import create_weather_service
from weather_block.utils.exceptions import WeatherBlockError

API_PREFIX = "/weather-block/v1"


def setup_logging(settings_obj: Settings) -> None:
    """Configure structured logging for the application."""

    log_level = getattr(logging, settings_obj.log_level.upper())

    if settings_obj.log_format == "json" and not settings_obj.is_development:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifespan - startup and shutdown events.

    Opens the cache and option stores and the weather API client, and
    releases them on shutdown.
    """
    logger = structlog.get_logger(__name__)
    app_settings: Settings = app.state.settings

    logger.info(
        "Starting Weather Block service", **get_config_summary(app_settings)
    )

    validation = validate_configuration(app_settings)
    for warning in validation["warnings"]:
        logger.warning("Configuration warning", detail=warning)
    if not validation["valid"]:
        logger.error("Invalid configuration", errors=validation["errors"])
        raise RuntimeError("; ".join(validation["errors"]))

    cache_store = create_cache_store(app_settings)
    option_store = create_option_store(app_settings)

    async with WeatherClient(app_settings) as weather_client:
        app.state.cache_store = cache_store
        app.state.option_store = option_store
        app.state.weather_client = weather_client
        app.state.credentials = CredentialProvider(option_store, app_settings)

        if not await app.state.credentials.is_api_key_configured():
            logger.warning("Weather API key is not configured")

        logger.info("Weather Block service initialized successfully")

        yield  # Application is running

        logger.info("Shutting down Weather Block service")

        if app_settings.clear_cache_on_shutdown:
            service = create_weather_service("", cache_store, weather_client, app_settings)
            try:
                deleted_count = await service.clear_all_cache()
                logger.info("Cache purged on shutdown", deleted_entries=deleted_count)
            except WeatherBlockError as e:
                logger.error("Error purging cache on shutdown", error=str(e))

    await cache_store.close()
    await option_store.close()
    logger.info("Weather Block service cleanup completed")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    setup_logging(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Current weather block backed by OpenWeatherMap with TTL caching",
        docs_url="/docs" if app_settings.is_development else None,
        redoc_url="/redoc" if app_settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["*"] if app_settings.is_development else ["localhost", "127.0.0.1"],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if app_settings.is_development else [],
        allow_credentials=True,
        allow_methods=["GET", "PUT", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next) -> Response:
        """Log requests and add processing time headers."""
        logger = structlog.get_logger(__name__)

        start_time = time.time()
        request_id = f"req_{int(start_time * 1000000)}"

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        logger.info("Request started")

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "Request completed",
                status_code=response.status_code,
                process_time=process_time,
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                process_time=process_time,
            )
            raise

    @app.exception_handler(WeatherBlockError)
    async def weather_block_error_handler(
        _request: Request, exc: WeatherBlockError
    ) -> JSONResponse:
        """Handle weather block specific errors."""
        logger = structlog.get_logger(__name__)
        logger.warning(
            "Weather block error", error_code=exc.error_code, error_type=type(exc).__name__
        )
        return weather_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report invalid request parameters as 400 errors."""
        params = sorted({str(error["loc"][-1]) for error in exc.errors() if error.get("loc")})
        message = "Invalid parameter(s): " + ", ".join(params) if params else "Invalid parameter(s)."
        return error_response(INVALID_PARAM_CODE, message)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors gracefully."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unhandled exception", error=str(exc), error_type=type(exc).__name__
        )
        return error_response(INTERNAL_ERROR_CODE, "An internal server error occurred")

    app.include_router(router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint providing basic service information."""
        return {
            "service": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running",
            "docs": "/docs" if app_settings.is_development else "disabled",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "weather_block.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
