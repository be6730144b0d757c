import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stagebook.config import Settings, get_settings
from stagebook.routers import artists, store, uploads
from stagebook.services.http_client import HTTPClientManager
from stagebook.services.kv_store import KeyValueStore, create_store

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as ``{"error": ...}`` plus any extra fields."""
    body = {"error": exc.detail}
    body.update(getattr(exc, "extra", None) or {})
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with the offending fields."""
    fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    body = {"error": "Invalid request"}
    if fields:
        body["missingFields"] = fields
    return JSONResponse(status_code=400, content=body)


def create_app(
    settings: Optional[Settings] = None,
    kv_store: Optional[KeyValueStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        kv_store: Store to inject; when omitted the lifespan builds one from
            ``settings.store_backend`` and closes it on shutdown
    """
    explicit_settings = settings is not None
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup/shutdown events.
        """
        # Startup
        logging.basicConfig(level=settings.log_level.upper())
        owns_store = getattr(app.state, "store", None) is None
        if owns_store:
            app.state.store = create_store(settings)
        logger.info(f"Starting {settings.app_name} ({app.state.store.backend} store)...")
        yield
        # Shutdown
        logger.info(f"Shutting down {settings.app_name}...")
        if owns_store:
            await app.state.store.close()
        await HTTPClientManager.close()

    app = FastAPI(
        title=settings.app_name,
        description="API for StageBook - book performing artists",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    if explicit_settings:
        app.dependency_overrides[get_settings] = lambda: settings
    if kv_store is not None:
        app.state.store = kv_store

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include routers
    app.include_router(
        artists.router,
        prefix=f"{settings.api_v1_prefix}/artists",
        tags=["Artists"],
    )
    app.include_router(
        uploads.router,
        prefix=f"{settings.api_v1_prefix}/upload",
        tags=["Uploads"],
    )
    app.include_router(
        store.router,
        prefix=settings.api_v1_prefix,
        tags=["Store"],
    )

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - API info."""
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
