"""Mapping of weather block error codes onto HTTP responses."""

from fastapi.responses import JSONResponse

from weather_block.models.weather import ErrorResponse
from weather_block.utils.exceptions import WeatherBlockError

INVALID_PARAM_CODE = "rest_invalid_param"
INTERNAL_ERROR_CODE = "internal_server_error"

ERROR_STATUS_CODES: dict[str, int] = {
    "invalid_location": 400,
    "invalid_units": 400,
    "invalid_api_key_format": 400,
    INVALID_PARAM_CODE: 400,
    # The provider rejected the query, usually an unknown location
    "api_error": 400,
    "invalid_nonce": 403,
    "missing_api_key": 500,
    "api_request_failed": 500,
    "empty_response": 500,
    "invalid_api_response": 500,
    "cache_error": 500,
    "configuration_error": 500,
}


def status_for_error(error_code: str) -> int:
    return ERROR_STATUS_CODES.get(error_code, 500)


def error_response(code: str, message: str) -> JSONResponse:
    status_code = status_for_error(code)
    body = ErrorResponse(code=code, message=message, httpStatus=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def weather_error_response(exc: WeatherBlockError) -> JSONResponse:
    return error_response(exc.error_code, exc.message)
