from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """Abstract base class for key-value stores with optional per-key expiry"""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """
        Retrieve a stored value

        Args:
            key: Entry name

        Returns:
            The stored value if present and not expired, None otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """
        Store a JSON-serializable value

        Args:
            key: Entry name
            value: Value to store
            ttl_seconds: Seconds until the entry expires, None or 0 for no expiry
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a single entry

        Args:
            key: Entry name

        Returns:
            True if a live entry existed, False otherwise
        """
        pass

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> int:
        """
        Delete every entry whose name starts with the prefix

        Args:
            prefix: Entry name prefix

        Returns:
            Number of live entries removed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the store is healthy and accessible

        Returns:
            True if healthy, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the store"""
        return None
