"""
Short-link storage module.

This module implements the Strategy Pattern for pluggable persistence:
one async contract, a JSON file backend and a SQL backend, selected by
configuration.
"""

from .exceptions import DuplicateCode, StorageCorrupted, StorageError, StorageUnavailable
from .strategies import StorageStrategy, JSONFileStorage, SQLStorage
from .factory import StorageFactory, StorageBackend

__all__ = [
    "StorageStrategy",
    "JSONFileStorage",
    "SQLStorage",
    "StorageFactory",
    "StorageBackend",
    "StorageError",
    "StorageUnavailable",
    "StorageCorrupted",
    "DuplicateCode",
]
