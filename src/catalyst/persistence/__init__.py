"""Persistence for Catalyst: storage backends and the state gateway."""

from __future__ import annotations

from catalyst.persistence.gateway import DEFAULT_STATE_KEY, PersistenceGateway, SavedState
from catalyst.persistence.storage import JsonFileStorage, MemoryStorage, StorageBackend

__all__ = [
    "DEFAULT_STATE_KEY",
    "JsonFileStorage",
    "MemoryStorage",
    "PersistenceGateway",
    "SavedState",
    "StorageBackend",
]
