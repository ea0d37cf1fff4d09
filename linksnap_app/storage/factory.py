"""
Factory for creating short-link storage instances.

Two ways in:
- ``StorageFactory.create()`` builds a fresh backend for explicit injection.
- ``StorageFactory.get_storage()`` returns the process-wide instance,
  constructing and initializing it exactly once.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from linksnap_app.config import settings
from .strategies import JSONFileStorage, SQLStorage, StorageStrategy

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Available storage backends"""
    JSON = "json"
    POSTGRESQL = "postgresql"

    @classmethod
    def _missing_(cls, value):
        # Accept "Postgres", " SQL ", etc.
        if isinstance(value, str):
            key = value.strip().lower()
            key = {"postgres": "postgresql", "sql": "postgresql"}.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        return None


class StorageFactory:
    """
    Factory for storage backends with a lazily created, memoized instance.

    Gets configuration from settings unless arguments are passed explicitly.
    """

    _instance: Optional[StorageStrategy] = None  # Single cached instance
    _lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    def create(
        cls,
        backend: StorageBackend,
        json_storage_path: Optional[str] = None,
        database_url: Optional[str] = None,
    ) -> StorageStrategy:
        """
        Build a new, uninitialized storage backend (never cached).

        Args:
            backend: Type of storage backend (from enum)
            json_storage_path: Data file path (defaults to settings)
            database_url: Connection string (defaults to settings)

        Returns:
            StorageStrategy instance; the caller must await initialize()
        """
        if backend == StorageBackend.POSTGRESQL:
            url = settings.database_url if database_url is None else database_url
            if url:
                logger.info("Using PostgreSQL storage")
                return SQLStorage(
                    url,
                    pool_size=settings.db_pool_size,
                    max_overflow=settings.db_max_overflow,
                    echo=settings.db_echo,
                )
            logger.warning("DATABASE_URL not set, falling back to JSON file storage")
            backend = StorageBackend.JSON

        if backend == StorageBackend.JSON:
            path = json_storage_path or settings.json_storage_path
            logger.info("Using JSON file storage at %s", path)
            return JSONFileStorage(path, strict=settings.json_storage_strict)

        raise ValueError(f"Unknown storage backend: {backend}")

    @classmethod
    async def get_storage(cls, backend: Optional[StorageBackend] = None) -> StorageStrategy:
        """
        Return the process-wide storage instance, creating it on first use.

        Concurrent first callers wait on a lock; only one of them constructs
        and initializes the backend. The instance is cached only after
        initialize() succeeds.

        Args:
            backend: Backend to use on first call (defaults to settings.storage_type)
        """
        if cls._instance is not None:
            return cls._instance

        async with cls._lock:
            if cls._instance is None:
                if backend is None:
                    backend = StorageBackend(settings.storage_type)
                storage = cls.create(backend)
                try:
                    await storage.initialize()
                except Exception:
                    await storage.close()
                    raise
                cls._instance = storage

        return cls._instance

    @classmethod
    def set_storage(cls, storage: StorageStrategy) -> None:
        """Install an already initialized instance (tests, manual switching)."""
        cls._instance = storage

    @classmethod
    async def reset(cls) -> None:
        """Discard the cached instance, releasing its resources (for testing)."""
        instance, cls._instance = cls._instance, None
        # Fresh lock: the old one may be bound to an event loop that has finished
        cls._lock = asyncio.Lock()
        if instance is not None:
            await instance.close()
