from typing import Any


class WeatherBlockError(Exception):
    """Base exception for weather block errors"""

    error_code = "weather_block_error"
    default_message = "An unexpected weather block error occurred."

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}


class InvalidLocationError(WeatherBlockError):
    """Exception raised when the requested location is empty"""

    error_code = "invalid_location"
    default_message = "Location cannot be empty."


class InvalidUnitsError(WeatherBlockError):
    """Exception raised when units are neither metric nor imperial"""

    error_code = "invalid_units"
    default_message = "Units must be either metric or imperial."

    def __init__(self, units: Any = None):
        super().__init__()
        self.units = units


class MissingAPIKeyError(WeatherBlockError):
    """Exception raised when the API key is empty or still the placeholder"""

    error_code = "missing_api_key"
    default_message = "Weather API key is not configured."


class UpstreamFetchError(WeatherBlockError):
    """Exception raised when the request to the weather API fails in transport"""

    error_code = "api_request_failed"
    default_message = "Could not fetch weather data. Please try again later."


class EmptyUpstreamResponseError(WeatherBlockError):
    """Exception raised when the weather API returns nothing usable"""

    error_code = "empty_response"
    default_message = "Received empty response from weather API."


class UpstreamAPIError(WeatherBlockError):
    """Exception raised when the weather API reports a non-success code"""

    error_code = "api_error"
    default_message = (
        "Could not fetch weather data. Please check the location and try again."
    )


class InvalidUpstreamResponseError(WeatherBlockError):
    """Exception raised when the weather API payload is missing required fields"""

    error_code = "invalid_api_response"
    default_message = "Invalid response from weather API."


class ConfigurationError(WeatherBlockError):
    """Exception raised when configuration is invalid"""

    error_code = "configuration_error"
    default_message = "Weather block is not configured correctly."


class CacheError(WeatherBlockError):
    """Exception raised when cache or option store operations fail"""

    error_code = "cache_error"
    default_message = "Weather cache is unavailable."

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class InvalidNonceError(WeatherBlockError):
    """Exception raised when a request carries a missing or stale nonce"""

    error_code = "invalid_nonce"
    default_message = "Invalid security token."


class InvalidAPIKeyFormatError(WeatherBlockError):
    """Exception raised when a submitted API key is not 32 alphanumerics"""

    error_code = "invalid_api_key_format"
    default_message = (
        "Invalid API key format. "
        "OpenWeatherMap API keys should be 32 alphanumeric characters."
    )
