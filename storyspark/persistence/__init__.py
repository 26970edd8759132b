"""
Persistence of story sessions in a single well-known key-value slot.
"""

from .gateway import STORAGE_KEY, PersistedSession, PersistenceGateway
from .store import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore

__all__ = [
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "PersistedSession",
    "PersistenceGateway",
    "STORAGE_KEY",
]
