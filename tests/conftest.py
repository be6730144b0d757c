"""Pytest fixtures. Tests run against the in-memory store; no Redis or Supabase needed."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from stagebook.config import Settings
from stagebook.main import create_app
from stagebook.services.artist_service import ArtistRepository
from stagebook.services.http_client import HTTPClientManager
from stagebook.services.kv_store import InMemoryStore

SUPABASE_URL = "https://project.supabase.co"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="development",
        store_backend="memory",
        supabase_url=SUPABASE_URL,
        supabase_key="anon-key",
        default_reviewer="reviewer@stagebook.test",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repo(store) -> ArtistRepository:
    return ArtistRepository(store)


@pytest.fixture
async def uploads():
    """Capture Supabase upload requests instead of sending them."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"Key": request.url.path})

    HTTPClientManager.set_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    yield requests
    await HTTPClientManager.close()


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, kv_store=store)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
