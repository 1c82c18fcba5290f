from typing import Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Weather Block"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "production"] = "development"

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    weather_api_key: str = Field(
        default="",
        description="Deployment default OpenWeatherMap API key, used when no key is stored",
    )
    weather_api_url: HttpUrl = Field(
        default="https://api.openweathermap.org/data/2.5/weather",
        description="Weather API base URL",
    )
    weather_api_timeout: int = Field(
        default=10, description="Weather API request timeout in seconds"
    )

    cache_ttl_minutes: int = Field(default=15, description="Cache TTL in minutes")
    cache_key_prefix: str = Field(
        default="weather_block_",
        description="Namespace prefix for every cached weather record",
    )
    clear_cache_on_shutdown: bool = Field(
        default=False,
        description="Purge all cached weather records when the service stops",
    )

    store_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Backend for the cache and option stores",
    )
    sqlite_db_path: str = Field(
        default="./data/weather_block.db",
        description="SQLite database path used when store_backend is sqlite",
    )

    nonce_secret: str = Field(
        default="change-me",
        description="Secret used to sign request nonces",
    )
    nonce_lifetime_seconds: int = Field(
        default=86400, description="Lifetime of a request nonce in seconds"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_minutes * 60

    @property
    def use_sqlite_store(self) -> bool:
        return self.store_backend == "sqlite"


settings = Settings()
