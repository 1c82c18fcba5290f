import logging

from weather_block.config.settings import Settings
from weather_block.providers.store.base import KeyValueStore
from weather_block.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CACHE_TABLE = "transients"
OPTION_TABLE = "options"


def _create_store(settings: Settings, table: str) -> KeyValueStore:
    if settings.store_backend == "memory":
        from weather_block.providers.store.memory import InMemoryStore

        logger.info(f"Creating in-memory store for {table}")
        return InMemoryStore()

    elif settings.use_sqlite_store:
        if not settings.sqlite_db_path:
            raise ConfigurationError(
                "sqlite_db_path is required when store_backend is sqlite"
            )

        from weather_block.providers.store.sqlite import SQLiteStore

        logger.info(f"Creating SQLite store for {table} at {settings.sqlite_db_path}")
        return SQLiteStore(settings.sqlite_db_path, table=table)

    else:
        raise ConfigurationError(
            f"Unsupported store backend: {settings.store_backend}. "
            "Supported backends: 'memory', 'sqlite'"
        )


def create_cache_store(settings: Settings) -> KeyValueStore:
    """Create the store holding cached weather records"""
    return _create_store(settings, CACHE_TABLE)


def create_option_store(settings: Settings) -> KeyValueStore:
    """Create the store holding persistent options such as the API key"""
    return _create_store(settings, OPTION_TABLE)
