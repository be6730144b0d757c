"""Key-value store diagnostics and the development reset endpoint."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from stagebook.core.exceptions import (
    ForbiddenException,
    InternalServerException,
    StoreError,
)
from stagebook.dependencies import AppSettings, ArtistRepo, Store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/kv-status", summary="Check the key-value store")
async def kv_status(store: Store):
    """
    Write, read back and delete a probe key.

    Returns whether the value read back matches the one written, plus
    backend details from ``info()``.
    """
    test_key = f"kv-test-{int(time.time() * 1000)}"
    test_value = {"test": "connection", "timestamp": datetime.now(timezone.utc).isoformat()}

    try:
        await store.set(test_key, test_value)
        retrieved = await store.get(test_key)
        await store.delete(test_key)
        info = await store.info()
    except StoreError as e:
        logger.error(f"KV status check failed: {e}")
        raise InternalServerException(f"Failed to access KV store: {e}")

    values_match = retrieved == test_value
    return {
        "success": True,
        "status": "KV store is working correctly" if values_match else "KV store returned unexpected value",
        "backend": store.backend,
        "info": info,
        "test": {
            "key": test_key,
            "setValue": test_value,
            "retrievedValue": retrieved,
            "valuesMatch": values_match,
        },
    }


@router.post("/dev/reset-kv", summary="Empty the artist collection (development only)")
async def reset_kv(repo: ArtistRepo, settings: AppSettings):
    if not settings.is_development:
        raise ForbiddenException("Not allowed in production")

    try:
        await repo.reset()
    except StoreError as e:
        logger.error(f"Error resetting KV store: {e}")
        raise InternalServerException(f"Failed to reset KV store: {e}")

    return {
        "success": True,
        "message": "Successfully reset artists KV store",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
