"""
Outbound HTTP for blob storage.

Artist photos are pushed to Supabase Storage through one pooled
``httpx.AsyncClient`` owned by the process. The application lifespan closes
it on shutdown; tests install a client backed by ``httpx.MockTransport``.
"""
import httpx
from typing import Optional

# Photos can be several megabytes, so writes get a longer window than reads
UPLOAD_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=30.0, pool=5.0)
UPLOAD_LIMITS = httpx.Limits(
    max_keepalive_connections=20,
    max_connections=50,
    keepalive_expiry=30.0,
)


class HTTPClientManager:
    """Holder for the process-wide upload client."""

    _client: Optional[httpx.AsyncClient] = None

    @classmethod
    def get_client(cls) -> httpx.AsyncClient:
        """Return the upload client, building it on first call."""
        if cls._client is None:
            cls._client = httpx.AsyncClient(
                limits=UPLOAD_LIMITS,
                timeout=UPLOAD_TIMEOUT,
                http2=True,
                follow_redirects=True,
            )
        return cls._client

    @classmethod
    def set_client(cls, client: httpx.AsyncClient) -> None:
        cls._client = client

    @classmethod
    async def close(cls) -> None:
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None


def get_http_client() -> httpx.AsyncClient:
    return HTTPClientManager.get_client()
