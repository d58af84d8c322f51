"""Travelgram media service - FastAPI application."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import TokenVerifier
from .config import Settings, get_settings
from .db.neo4j import Neo4jDatabase
from .db.postgres import PostgresDatabase
from .exceptions import AppException
from .media.staging import StagingArea
from .media.storage import BinaryStore
from .media.vision import VisionRelay
from .repositories.media_repo import MediaRepository
from .routers import ai_router, audio_router, images_router, users_router

logger = logging.getLogger(__name__)


def _error(status_code: int, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": detail})


def init_state(app: FastAPI, settings: Settings) -> None:
    """Create the (still disconnected) handles on ``app.state``."""
    app.state.settings = settings
    app.state.graph = Neo4jDatabase(settings)
    app.state.postgres = PostgresDatabase(
        settings.postgres_url,
        echo=settings.api_debug,
        query_timeout=settings.query_timeout_seconds,
    )
    app.state.store = BinaryStore(settings)
    app.state.staging = StagingArea(settings.staging_dir)
    app.state.verifier = TokenVerifier(settings)
    app.state.vision = VisionRelay(
        settings, app.state.store, MediaRepository(app.state.postgres)
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    A store that cannot be reached is logged and left disconnected; the
    endpoints depending on it answer with a 500 until the next restart.
    """
    settings = app.state.settings
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")

    app.state.staging.ensure()

    try:
        await app.state.graph.connect()
        logger.info(f"Connected to Neo4j: {settings.neo4j_uri}")
    except Exception:
        logger.exception("Neo4j connection failed")

    try:
        await app.state.postgres.connect()
        logger.info(f"Connected to PostgreSQL: {settings.postgres_host}")
    except Exception:
        logger.exception("PostgreSQL connection failed")

    try:
        await asyncio.to_thread(app.state.store.connect)
    except Exception:
        logger.exception("MinIO connection failed")

    yield

    # Shutdown
    await app.state.graph.disconnect()
    await app.state.postgres.disconnect()
    app.state.store.disconnect()
    logger.info("Shut down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Travelgram Media Service",
        description="Image and audio uploads, social feed and AI captions",
        version=settings.service_version,
        lifespan=lifespan,
    )
    init_state(app, settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return _error(exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return _error(400, message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error(500, "Internal server error")

    # Routers
    app.include_router(images_router, prefix="/api")
    app.include_router(audio_router, prefix="/api")
    app.include_router(ai_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "service": settings.service_name,
            "version": settings.service_version,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request) -> dict:
        """Health check endpoint."""
        state = request.app.state
        checks = {
            "neo4j": state.graph.is_ready(),
            "postgres": state.postgres.is_ready(),
            "minio": state.store.is_ready(),
        }
        return {"status": "healthy" if all(checks.values()) else "degraded", **checks}

    return app


settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.api_debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "travelgram.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
