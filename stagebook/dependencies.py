from typing import Annotated

from fastapi import Depends, Request

from stagebook.config import Settings, get_settings
from stagebook.services.artist_service import ArtistRepository
from stagebook.services.kv_store import KeyValueStore
from stagebook.services.storage_service import StorageService


def get_store(request: Request) -> KeyValueStore:
    """
    Dependency that returns the process-wide key-value store.

    The store is built once by the application lifespan and kept on
    ``app.state``; handlers never construct their own.
    """
    return request.app.state.store


def get_artist_repository(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ArtistRepository:
    """
    Dependency that provides the artist repository.

    Usage:
        @router.get("/artists")
        async def list_artists(repo: ArtistRepo):
            ...
    """
    return ArtistRepository(store, key=settings.artists_key)


def get_storage_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageService:
    return StorageService(settings)


# Type aliases for cleaner dependency injection
AppSettings = Annotated[Settings, Depends(get_settings)]
Store = Annotated[KeyValueStore, Depends(get_store)]
ArtistRepo = Annotated[ArtistRepository, Depends(get_artist_repository)]
Storage = Annotated[StorageService, Depends(get_storage_service)]
