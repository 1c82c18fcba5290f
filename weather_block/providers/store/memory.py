import json
import logging
import time
from collections.abc import Callable
from typing import Any

from weather_block.providers.store.base import KeyValueStore
from weather_block.utils.exceptions import CacheError

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """Process-local key-value store; values are kept JSON-encoded"""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = 1000,
    ) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._sweep_threshold = sweep_threshold
        self._next_sweep_at = sweep_threshold

    def _is_live(self, expires_at: float | None) -> bool:
        return expires_at is None or expires_at > self._clock()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        encoded, expires_at = entry
        if not self._is_live(expires_at):
            self._entries.pop(key, None)
            logger.debug(f"Expired entry dropped: {key}")
            return None

        return json.loads(encoded)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise CacheError(
                f"Value for {key} is not JSON serializable: {e}", operation="set"
            ) from e

        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._entries[key] = (encoded, expires_at)

        if len(self._entries) >= self._next_sweep_at:
            self._sweep_expired()

    def _sweep_expired(self) -> None:
        """Drop expired entries; the next sweep waits until the store doubles"""
        expired = [
            key for key, (_, expires_at) in self._entries.items() if not self._is_live(expires_at)
        ]
        for key in expired:
            del self._entries[key]

        self._next_sweep_at = max(self._sweep_threshold, 2 * len(self._entries))
        if expired:
            logger.debug(f"Swept {len(expired)} expired entries")

    async def delete(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        return self._is_live(entry[1])

    async def delete_by_prefix(self, prefix: str) -> int:
        matching = [key for key in self._entries if key.startswith(prefix)]
        deleted_count = 0

        for key in matching:
            _, expires_at = self._entries.pop(key)
            if self._is_live(expires_at):
                deleted_count += 1

        if deleted_count > 0:
            logger.info(f"Deleted {deleted_count} entries with prefix {prefix}")

        return deleted_count

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return sum(1 for _, expires_at in self._entries.values() if self._is_live(expires_at))
