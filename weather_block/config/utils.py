from .settings import Settings, settings

PLACEHOLDER_API_KEY = "your_openweathermap_api_key_here"


def validate_configuration(
    settings_obj: Settings | None = None,
) -> dict[str, list[str] | bool]:
    """Validate configuration and return validation results."""
    settings_obj = settings_obj or settings
    errors = []
    warnings = []

    if not settings_obj.weather_api_key or settings_obj.weather_api_key == PLACEHOLDER_API_KEY:
        warnings.append(
            "WEATHER_API_KEY is not set; a key must be stored through the settings API"
        )

    if settings_obj.use_sqlite_store and not settings_obj.sqlite_db_path:
        errors.append("SQLITE_DB_PATH must be set when STORE_BACKEND is sqlite")

    if settings_obj.cache_ttl_minutes <= 0:
        errors.append("CACHE_TTL_MINUTES must be a positive integer")

    if settings_obj.weather_api_timeout <= 0:
        errors.append("WEATHER_API_TIMEOUT must be a positive integer")

    if settings_obj.nonce_lifetime_seconds < 2:
        errors.append("NONCE_LIFETIME_SECONDS must be at least 2")

    if settings_obj.is_production and settings_obj.nonce_secret == "change-me":
        errors.append("NONCE_SECRET must be changed in production")

    if not settings_obj.cache_key_prefix:
        errors.append("CACHE_KEY_PREFIX must not be empty")

    if not (1 <= settings_obj.port <= 65535):
        errors.append("PORT must be between 1 and 65535")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def get_config_summary(settings_obj: Settings | None = None) -> dict[str, str | int | bool]:
    """Get a summary of current configuration for logging/debugging."""
    settings_obj = settings_obj or settings
    return {
        "app_name": settings_obj.app_name,
        "version": settings_obj.app_version,
        "environment": settings_obj.environment,
        "store_backend": settings_obj.store_backend,
        "cache_ttl_minutes": settings_obj.cache_ttl_minutes,
        "debug": settings_obj.debug,
        "log_level": settings_obj.log_level,
        "api_endpoint": f"{settings_obj.host}:{settings_obj.port}",
        "weather_api_configured": bool(
            settings_obj.weather_api_key
            and settings_obj.weather_api_key != PLACEHOLDER_API_KEY
        ),
    }
