import pytest

from weather_block.config.settings import Settings
from weather_block.providers.store import (
    InMemoryStore,
    SQLiteStore,
    create_cache_store,
    create_option_store,
)
from weather_block.utils.exceptions import CacheError, ConfigurationError


class TestKeyValueStore:
    """Behaviour shared by every store backend"""

    @pytest.fixture(params=["memory", "sqlite"])
    def store(self, request, clock, tmp_path):
        """Create a store for each backend with a controllable clock"""
        if request.param == "memory":
            return InMemoryStore(clock=clock)
        return SQLiteStore(str(tmp_path / "store.db"), table="transients", clock=clock)

    async def test_set_and_get(self, store):
        """Test round trip of a JSON value"""
        value = {"location": "London", "temperature": 15.2, "humidity": 72}

        await store.set("weather_block_abc", value, ttl_seconds=900)

        assert await store.get("weather_block_abc") == value

    async def test_get_missing(self, store):
        """Test missing keys read as None"""
        assert await store.get("weather_block_missing") is None

    async def test_set_overwrites(self, store):
        await store.set("key", "first")
        await store.set("key", "second")

        assert await store.get("key") == "second"

    async def test_entry_expires(self, store, clock):
        """Test an entry is live until its TTL elapses"""
        await store.set("key", "value", ttl_seconds=900)

        clock.advance(899)
        assert await store.get("key") == "value"

        clock.advance(1)
        assert await store.get("key") is None

    @pytest.mark.parametrize("ttl_seconds", [None, 0])
    async def test_entry_without_ttl_never_expires(self, store, clock, ttl_seconds):
        await store.set("option", "value", ttl_seconds=ttl_seconds)

        clock.advance(10 * 365 * 24 * 3600)

        assert await store.get("option") == "value"

    async def test_delete_live_entry(self, store):
        await store.set("key", "value", ttl_seconds=60)

        assert await store.delete("key") is True
        assert await store.get("key") is None

    async def test_delete_missing_entry(self, store):
        assert await store.delete("key") is False

    async def test_delete_expired_entry(self, store, clock):
        """Test deleting an expired entry reports nothing was removed"""
        await store.set("key", "value", ttl_seconds=60)
        clock.advance(61)

        assert await store.delete("key") is False

    async def test_delete_by_prefix(self, store, clock):
        """Test prefix deletion counts only live, case-sensitively matching entries"""
        await store.set("weather_block_a", 1, ttl_seconds=900)
        await store.set("weather_block_b", 2, ttl_seconds=900)
        await store.set("weather_block_old", 3, ttl_seconds=10)
        await store.set("other_plugin_a", 4, ttl_seconds=900)
        await store.set("WEATHER_BLOCK_upper", 5, ttl_seconds=900)

        clock.advance(60)

        assert await store.delete_by_prefix("weather_block_") == 2
        assert await store.get("weather_block_a") is None
        assert await store.get("weather_block_b") is None
        assert await store.get("other_plugin_a") == 4
        assert await store.get("WEATHER_BLOCK_upper") == 5

    async def test_delete_by_prefix_treats_wildcards_literally(self, store):
        """Test underscores and percent signs in the prefix are not wildcards"""
        await store.set("weather_block_a", 1)
        await store.set("weatherXblockXa", 2)
        await store.set("100%_done", 3)
        await store.set("100abc", 4)

        assert await store.delete_by_prefix("weather_block_") == 1
        assert await store.delete_by_prefix("100%") == 1

        assert await store.get("weatherXblockXa") == 2
        assert await store.get("100abc") == 4

    async def test_delete_by_prefix_no_matches(self, store):
        await store.set("other", 1)

        assert await store.delete_by_prefix("weather_block_") == 0

    async def test_health_check(self, store):
        assert await store.health_check() is True

    async def test_non_serializable_value(self, store):
        """Test values that cannot be JSON-encoded raise CacheError"""
        with pytest.raises(CacheError) as exc_info:
            await store.set("key", object())

        assert exc_info.value.operation == "set"

    async def test_close(self, store):
        await store.close()


class TestInMemoryStore:
    """Test suite for InMemoryStore specifics"""

    async def test_len_counts_live_entries(self, clock):
        store = InMemoryStore(clock=clock)

        await store.set("a", 1, ttl_seconds=10)
        await store.set("b", 2, ttl_seconds=100)
        await store.set("c", 3)

        assert len(store) == 3

        clock.advance(50)
        assert len(store) == 2

    async def test_expired_entries_swept_on_set(self, clock):
        """Test expired entries never read again are dropped as the store grows"""
        store = InMemoryStore(clock=clock, sweep_threshold=3)

        await store.set("weather_block_a", 1, ttl_seconds=10)
        await store.set("weather_block_b", 2, ttl_seconds=10)
        clock.advance(20)

        await store.set("weather_block_c", 3, ttl_seconds=10)

        assert list(store._entries) == ["weather_block_c"]

        await store.set("weather_block_d", 4, ttl_seconds=10)
        await store.set("weather_block_e", 5, ttl_seconds=10)

        assert len(store._entries) == 3
        assert len(store) == 3

    async def test_values_are_copied(self):
        """Test mutating a stored value does not change the cached copy"""
        store = InMemoryStore()
        value = {"temperature": 15.2}

        await store.set("key", value)
        value["temperature"] = 99.0

        assert await store.get("key") == {"temperature": 15.2}


class TestSQLiteStore:
    """Test suite for SQLiteStore specifics"""

    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SQLiteStore(str(tmp_path / "store.db"), table="transients; DROP TABLE x")

    def test_creates_database_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "store.db"

        SQLiteStore(str(db_path))

        assert db_path.parent.is_dir()

    async def test_persists_across_instances(self, tmp_path):
        """Test entries survive a new store on the same file"""
        db_path = str(tmp_path / "store.db")

        await SQLiteStore(db_path).set("key", {"a": 1}, ttl_seconds=900)

        assert await SQLiteStore(db_path).get("key") == {"a": 1}

    async def test_tables_are_independent(self, tmp_path):
        """Test cache and option tables in one file do not see each other"""
        db_path = str(tmp_path / "store.db")
        cache = SQLiteStore(db_path, table="transients")
        options = SQLiteStore(db_path, table="options")

        await cache.set("weather_block_key", "cached")
        await options.set("weather_block_api_key", "secret")

        assert await cache.delete_by_prefix("weather_block_") == 1
        assert await options.get("weather_block_api_key") == "secret"
        assert await cache.get("weather_block_api_key") is None

    async def test_unreadable_database_raises_cache_error(self, tmp_path):
        """Test a corrupt database file surfaces as CacheError"""
        db_path = tmp_path / "store.db"
        db_path.write_bytes(b"this is not a sqlite database" * 100)

        store = SQLiteStore(str(db_path))

        with pytest.raises(CacheError):
            await store.get("key")

        assert await store.health_check() is False


class TestStoreFactory:
    """Test suite for store factory functions"""

    def test_memory_backend(self):
        settings = Settings(store_backend="memory")

        assert isinstance(create_cache_store(settings), InMemoryStore)
        assert isinstance(create_option_store(settings), InMemoryStore)

    def test_sqlite_backend(self, tmp_path):
        settings = Settings(
            store_backend="sqlite", sqlite_db_path=str(tmp_path / "weather.db")
        )

        cache_store = create_cache_store(settings)
        option_store = create_option_store(settings)

        assert isinstance(cache_store, SQLiteStore)
        assert cache_store.table == "transients"
        assert isinstance(option_store, SQLiteStore)
        assert option_store.table == "options"

    def test_sqlite_backend_requires_path(self):
        settings = Settings(store_backend="sqlite", sqlite_db_path="")

        with pytest.raises(ConfigurationError):
            create_cache_store(settings)
