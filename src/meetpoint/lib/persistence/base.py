"""Key-value persistence interface for session snapshots."""

from enum import StrEnum
from typing import Protocol


class StorageKey(StrEnum):
    """The four independently readable and writable snapshot keys."""

    CITIES = "cities"
    AGGREGATE = "aggregate"
    VIEWPORT = "viewport"
    LOOKUP_CACHE = "lookup_cache"


class PersistenceError(Exception):
    """Raised when a store cannot read or write a key.

    Args:
        key: The storage key involved.
        message: Human-readable error description.
    """

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"{key}: {message}")


class PersistenceGateway(Protocol):
    """Durable key-value store for serialized snapshots.

    A missing key is a valid empty state, not an error.
    """

    async def load(self, key: StorageKey) -> str | None:
        """Return the payload stored under ``key``, or None if absent.

        Raises:
            PersistenceError: If the store exists but cannot be read.
        """
        ...

    async def save(self, key: StorageKey, payload: str) -> None:
        """Replace the payload stored under ``key``.

        Raises:
            PersistenceError: If the payload cannot be written.
        """
        ...

    async def delete(self, key: StorageKey) -> None:
        """Remove ``key``. Deleting a missing key is a no-op."""
        ...


class InMemoryStore:
    """Dict-backed PersistenceGateway, for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def load(self, key: StorageKey) -> str | None:
        return self.data.get(key.value)

    async def save(self, key: StorageKey, payload: str) -> None:
        self.data[key.value] = payload

    async def delete(self, key: StorageKey) -> None:
        self.data.pop(key.value, None)
