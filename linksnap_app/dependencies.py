"""
FastAPI dependencies for dependency injection.

The storage handle is created once per process (see StorageFactory) and
injected into services and routes; tests swap it with
``StorageFactory.set_storage`` or ``app.dependency_overrides``.
"""

from fastapi import Depends

from linksnap_app.storage.factory import StorageFactory
from linksnap_app.storage.strategies import StorageStrategy
from linksnap_app.services.url_service import URLService


async def get_storage() -> StorageStrategy:
    """
    Get storage instance (singleton).

    Factory reads the backend from settings on first use and initializes it.

    Returns:
        StorageStrategy instance based on settings
    """
    return await StorageFactory.get_storage()


def get_url_service(storage: StorageStrategy = Depends(get_storage)) -> URLService:
    """Get URLService with its storage injected."""
    return URLService(storage=storage)
