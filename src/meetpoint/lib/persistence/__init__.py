"""Persistence library: durable key-value storage for session snapshots.

Public API:
    - PersistenceGateway: Store protocol
    - StorageKey: The four snapshot keys
    - PersistenceError: Read/write failure
    - InMemoryStore: Dict-backed store
    - JsonFileStore: One JSON file per key on local disk
"""

from meetpoint.lib.persistence.base import InMemoryStore, PersistenceError, PersistenceGateway, StorageKey
from meetpoint.lib.persistence.file_store import JsonFileStore

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "PersistenceError",
    "PersistenceGateway",
    "StorageKey",
]
