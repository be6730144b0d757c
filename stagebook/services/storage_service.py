import logging
import re
import time
import uuid

from stagebook.config import Settings, get_settings
from stagebook.core.exceptions import (
    InvalidUploadError,
    StorageError,
    StorageNotConfiguredError,
)
from stagebook.services.http_client import get_http_client

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class StorageService:
    """Uploads artist images to Supabase Storage and returns public URLs."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _storage_key(self) -> str:
        settings = self.settings
        if not settings.supabase_url:
            raise StorageNotConfiguredError("Storage service not configured")
        # Use service role key if available (bypasses RLS), otherwise fall back to anon key
        storage_key = settings.supabase_service_role_key or settings.supabase_key
        if not storage_key:
            raise StorageNotConfiguredError("Storage service not configured")
        return storage_key

    def validate_image(self, content_type: str | None, size: int) -> None:
        """Raise InvalidUploadError for empty, oversized or non-image files."""
        settings = self.settings
        if size == 0:
            raise InvalidUploadError("No file provided or file is empty")
        if content_type not in settings.allowed_image_types:
            raise InvalidUploadError(
                f"Invalid file type. Allowed: {', '.join(settings.allowed_image_types)}"
            )
        if size > settings.max_upload_size_bytes:
            raise InvalidUploadError(
                f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
            )

    @staticmethod
    def build_object_name(filename: str | None) -> str:
        """Unique object path for an uploaded file, e.g. ``1700000000000-ab12cd34-photo.jpg``."""
        safe_name = _UNSAFE_FILENAME_CHARS.sub("", filename or "") or "image"
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_name}"

    def public_url(self, object_name: str) -> str:
        bucket = self.settings.supabase_bucket_artists
        return f"{self.settings.supabase_url}/storage/v1/object/public/{bucket}/{object_name}"

    async def upload_image(
        self,
        contents: bytes,
        filename: str | None,
        content_type: str | None,
    ) -> str:
        """
        Upload an image and return its public URL.

        Args:
            contents: Raw file bytes
            filename: Original filename, sanitized into the object name
            content_type: MIME type reported by the client

        Raises:
            InvalidUploadError: the file is empty, too large or not an image
            StorageNotConfiguredError: Supabase settings are missing
            StorageError: the upload request failed
        """
        self.validate_image(content_type, len(contents))
        storage_key = self._storage_key()

        bucket = self.settings.supabase_bucket_artists
        object_name = self.build_object_name(filename)
        upload_url = f"{self.settings.supabase_url}/storage/v1/object/{bucket}/{object_name}"
        logger.info(f"[StorageService] Uploading {len(contents)} bytes to {bucket}/{object_name}")

        try:
            client = get_http_client()
            response = await client.post(
                upload_url,
                content=contents,
                headers={
                    "Authorization": f"Bearer {storage_key}",
                    "apikey": storage_key,
                    "Content-Type": content_type or "application/octet-stream",
                },
            )
        except Exception as e:
            logger.error(f"[StorageService] Exception in upload_image: {type(e).__name__}: {e}")
            raise StorageError(f"Failed to upload image: {e}") from e

        if response.status_code not in (200, 201):
            logger.warning(f"[StorageService] Upload failed, status: {response.status_code}")
            raise StorageError(f"Failed to upload: {response.text[:200]}")

        url = self.public_url(object_name)
        logger.info(f"[StorageService] Uploaded image: {url}")
        return url
