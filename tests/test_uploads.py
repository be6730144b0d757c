"""Blob storage client and the standalone upload endpoint."""

import httpx
import pytest
from httpx import AsyncClient

from stagebook.config import Settings, get_settings
from stagebook.core.exceptions import (
    InvalidUploadError,
    StorageError,
    StorageNotConfiguredError,
)
from stagebook.services.http_client import HTTPClientManager
from stagebook.services.storage_service import StorageService


async def test_upload_image_posts_to_bucket(settings, uploads):
    url = await StorageService(settings).upload_image(b"jpeg-bytes", "stage.jpg", "image/jpeg")

    assert url.startswith("https://project.supabase.co/storage/v1/object/public/artists/")
    request = uploads[0]
    assert request.url.path.startswith("/storage/v1/object/artists/")
    assert request.url.path.endswith("-stage.jpg")
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert request.headers["Content-Type"] == "image/jpeg"


async def test_service_role_key_preferred(uploads):
    settings = Settings(
        _env_file=None,
        supabase_url="https://project.supabase.co",
        supabase_key="anon-key",
        supabase_service_role_key="service-key",
    )
    await StorageService(settings).upload_image(b"png", "a.png", "image/png")
    assert uploads[0].headers["apikey"] == "service-key"


async def test_upload_requires_configuration(uploads):
    service = StorageService(Settings(_env_file=None, supabase_url=None))
    with pytest.raises(StorageNotConfiguredError):
        await service.upload_image(b"png", "a.png", "image/png")
    assert uploads == []


@pytest.mark.parametrize(
    "contents, content_type, message",
    [
        (b"", "image/png", "No file provided"),
        (b"text", "text/plain", "Invalid file type"),
        (b"x" * (1024 * 1024 + 1), "image/png", "File too large"),
    ],
)
async def test_upload_validation(contents, content_type, message):
    service = StorageService(Settings(_env_file=None, max_upload_size_mb=1))
    with pytest.raises(InvalidUploadError, match=message):
        await service.upload_image(contents, "file", content_type)


async def test_upload_failure_raises_storage_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="new row violates row-level security policy")

    HTTPClientManager.set_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    try:
        with pytest.raises(StorageError, match="row-level security"):
            await StorageService(settings).upload_image(b"png", "a.png", "image/png")
    finally:
        await HTTPClientManager.close()


def test_object_name_is_sanitized():
    name = StorageService.build_object_name("../My Photo (1).JPG")
    assert name.endswith("-..MyPhoto1.JPG")
    assert "/" not in name
    assert StorageService.build_object_name(None).endswith("-image")


async def test_upload_endpoint(client: AsyncClient, uploads):
    r = await client.post("/api/v1/upload", files={"file": ("a.webp", b"webp", "image/webp")})
    assert r.status_code == 200
    assert r.json()["url"].endswith("-a.webp")
    assert len(uploads) == 1


async def test_upload_endpoint_requires_file(client: AsyncClient):
    r = await client.post("/api/v1/upload", data={"other": "x"})
    assert r.status_code == 400
    assert r.json()["missingFields"] == ["file"]


async def test_upload_endpoint_rejects_empty_file(client: AsyncClient, uploads):
    r = await client.post("/api/v1/upload", files={"file": ("a.png", b"", "image/png")})
    assert r.status_code == 400
    assert r.json() == {"error": "No file provided or file is empty"}


async def test_upload_endpoint_unconfigured(app, client: AsyncClient, uploads):
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, supabase_url=None)
    r = await client.post("/api/v1/upload", files={"file": ("a.png", b"png", "image/png")})
    assert r.status_code == 500
    assert r.json() == {"error": "Storage service not configured"}


async def test_shared_client_uses_upload_timeouts():
    await HTTPClientManager.close()
    client = HTTPClientManager.get_client()
    try:
        assert client.timeout.write == 30.0
        assert client.timeout.read == 15.0
        assert HTTPClientManager.get_client() is client
    finally:
        await HTTPClientManager.close()
