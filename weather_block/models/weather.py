from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Units = Literal["metric", "imperial"]
IconSize = Literal["2x", "4x"]

ALLOWED_UNITS: tuple[str, ...] = ("metric", "imperial")


class WeatherQuery(BaseModel):
    """A validated (location, units) lookup request"""

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., min_length=1, description="Location as requested")
    units: Units = Field(..., description="Unit system for the temperature")

    @property
    def normalized_location(self) -> str:
        return self.location.strip().lower()


class WeatherRecord(BaseModel):
    """Normalized current-weather record, the cached artifact"""

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., description="Place name reported by the provider")
    country: str = Field(..., description="ISO country code")
    temperature: float = Field(..., description="Temperature in the requested units")
    description: str = Field(..., description="Weather condition phrase")
    icon: str = Field(..., description="Provider icon code")
    humidity: int = Field(..., description="Humidity percentage as reported")
    units: Units = Field(..., description="Unit system echoed from the request")
    timestamp: int = Field(..., description="Unix time the record was created")


class BlockAttributes(BaseModel):
    """Attributes saved by the block editor"""

    location: str = ""
    units: str = "metric"
    displayMode: str = "auto"


class ErrorResponse(BaseModel):
    """Error body returned by the REST endpoints"""

    code: str
    message: str
    httpStatus: int


class ApiKeyUpdate(BaseModel):
    api_key: str = Field(..., max_length=200)


class SettingsStatus(BaseModel):
    api_key_configured: bool
    api_key: str = Field("", description="Stored API key, masked")
    has_stored_key: bool


class ApiKeyTestResult(BaseModel):
    success: bool
    message: str
    data: dict[str, Any] | None = None
