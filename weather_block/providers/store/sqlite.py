import json
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from weather_block.providers.store.base import KeyValueStore
from weather_block.utils.exceptions import CacheError, ConfigurationError

_TABLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


class SQLiteStore(KeyValueStore):
    """SQLite implementation of the key-value store, one table per store"""

    def __init__(
        self,
        db_path: str,
        table: str = "transients",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not _TABLE_NAME_RE.match(table):
            raise ConfigurationError(f"Invalid store table name: {table}")

        self.db_path = db_path
        self.table = table
        self._clock = clock
        self._tables_ready = False
        self._ensure_db_directory()
        self.logger = structlog.get_logger(__name__).bind(
            provider="sqlite_store", db_path=self.db_path, table=self.table
        )

    def _ensure_db_directory(self) -> None:
        """Ensure the database directory exists"""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    async def _get_connection(self):
        """Get async SQLite connection"""
        return aiosqlite.connect(self.db_path)

    async def _initialize_tables(self) -> None:
        """Initialize the store table if it doesn't exist"""
        if self._tables_ready:
            return

        async with await self._get_connection() as db:
            await db.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    name TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    expires_at REAL
                )
                """
            )
            await db.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_expires_at "
                f"ON {self.table}(expires_at)"
            )
            await db.commit()

        self._tables_ready = True

    async def get(self, key: str) -> Any | None:
        try:
            await self._initialize_tables()

            async with await self._get_connection() as db:
                cursor = await db.execute(
                    f"SELECT value, expires_at FROM {self.table} WHERE name = ?",
                    (key,),
                )
                row = await cursor.fetchone()

                if row is None:
                    return None

                value, expires_at = row
                if expires_at is not None and expires_at <= self._clock():
                    await db.execute(
                        f"DELETE FROM {self.table} WHERE name = ?", (key,)
                    )
                    await db.commit()
                    self.logger.debug("expired_entry_dropped", key=key)
                    return None

                return json.loads(value)

        except (aiosqlite.Error, OSError, ValueError) as e:
            self.logger.error("sqlite_get_failed", key=key, error=str(e))
            raise CacheError(f"Failed to read {key} from SQLite: {e}", operation="get") from e

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise CacheError(
                f"Value for {key} is not JSON serializable: {e}", operation="set"
            ) from e

        expires_at = self._clock() + ttl_seconds if ttl_seconds else None

        try:
            await self._initialize_tables()

            async with await self._get_connection() as db:
                await db.execute(
                    f"""
                    INSERT OR REPLACE INTO {self.table} (name, value, expires_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, encoded, expires_at),
                )
                await db.commit()

        except (aiosqlite.Error, OSError) as e:
            self.logger.error("sqlite_set_failed", key=key, error=str(e))
            raise CacheError(f"Failed to write {key} to SQLite: {e}", operation="set") from e

    async def delete(self, key: str) -> bool:
        try:
            await self._initialize_tables()

            async with await self._get_connection() as db:
                cursor = await db.execute(
                    f"""
                    SELECT COUNT(*) FROM {self.table}
                    WHERE name = ? AND (expires_at IS NULL OR expires_at > ?)
                    """,
                    (key, self._clock()),
                )
                existed = (await cursor.fetchone())[0] > 0

                await db.execute(f"DELETE FROM {self.table} WHERE name = ?", (key,))
                await db.commit()

                return existed

        except (aiosqlite.Error, OSError) as e:
            self.logger.error("sqlite_delete_failed", key=key, error=str(e))
            raise CacheError(
                f"Failed to delete {key} from SQLite: {e}", operation="delete"
            ) from e

    async def delete_by_prefix(self, prefix: str) -> int:
        try:
            await self._initialize_tables()

            async with await self._get_connection() as db:
                cursor = await db.execute(
                    f"""
                    SELECT COUNT(*) FROM {self.table}
                    WHERE substr(name, 1, length(?)) = ?
                    AND (expires_at IS NULL OR expires_at > ?)
                    """,
                    (prefix, prefix, self._clock()),
                )
                deleted_count = (await cursor.fetchone())[0]

                await db.execute(
                    f"DELETE FROM {self.table} WHERE substr(name, 1, length(?)) = ?",
                    (prefix, prefix),
                )
                await db.commit()

            self.logger.info(
                "entries_deleted_by_prefix", prefix=prefix, deleted_count=deleted_count
            )
            return deleted_count

        except (aiosqlite.Error, OSError) as e:
            self.logger.error("sqlite_prefix_delete_failed", prefix=prefix, error=str(e))
            raise CacheError(
                f"Failed to delete entries with prefix {prefix}: {e}",
                operation="delete_by_prefix",
            ) from e

    async def health_check(self) -> bool:
        """Check SQLite database accessibility"""
        try:
            await self._initialize_tables()

            async with await self._get_connection() as db:
                cursor = await db.execute("SELECT 1")
                result = await cursor.fetchone()
                return result is not None and result[0] == 1

        except Exception as e:
            self.logger.error("health_check_failed", error=str(e))
            return False
