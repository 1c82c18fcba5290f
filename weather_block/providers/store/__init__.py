from .base import KeyValueStore
from .factory import create_cache_store, create_option_store
from .memory import InMemoryStore
from .sqlite import SQLiteStore

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "SQLiteStore",
    "create_cache_store",
    "create_option_store",
]
