"""FastAPI dependency providers.

Connection handles are created once in the app lifespan and kept on
``app.state``; everything built on top of them is assembled per request.
Tests swap any of these through ``app.dependency_overrides``.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from .auth import AuthUser, TokenVerifier, extract_bearer_token
from .config import Settings
from .db.neo4j import Neo4jDatabase
from .db.postgres import PostgresDatabase
from .exceptions import NotFoundError
from .media.feed import FeedComposer
from .media.staging import StagedFile, StagingArea
from .media.storage import BinaryStore, ObjectStream
from .media.uploads import UploadOrchestrator
from .media.vision import VisionRelay
from .models.media import MediaAsset, MediaKind
from .repositories.media_repo import MediaRepository
from .repositories.user_repo import UserRepository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_graph(request: Request) -> Neo4jDatabase:
    return request.app.state.graph


def get_postgres(request: Request) -> PostgresDatabase:
    return request.app.state.postgres


def get_store(request: Request) -> BinaryStore:
    return request.app.state.store


def get_staging(request: Request) -> StagingArea:
    return request.app.state.staging


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


def get_vision_relay(request: Request) -> VisionRelay:
    return request.app.state.vision


def get_media_repo(db: PostgresDatabase = Depends(get_postgres)) -> MediaRepository:
    return MediaRepository(db)


def get_user_repo(graph: Neo4jDatabase = Depends(get_graph)) -> UserRepository:
    return UserRepository(graph)


def get_upload_orchestrator(
    store: BinaryStore = Depends(get_store),
    media: MediaRepository = Depends(get_media_repo),
    settings: Settings = Depends(get_app_settings),
) -> UploadOrchestrator:
    return UploadOrchestrator(store, media, settings)


def get_feed_composer(
    media: MediaRepository = Depends(get_media_repo),
    users: UserRepository = Depends(get_user_repo),
    settings: Settings = Depends(get_app_settings),
) -> FeedComposer:
    return FeedComposer(media, users, settings)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthUser:
    """Authenticated caller. 401 without a bearer token, 403 if it is rejected."""
    token = extract_bearer_token(authorization)
    return await verifier.verify(token)


async def stage_upload(
    staging: StagingArea, upload: Optional[UploadFile]
) -> Optional[StagedFile]:
    """Copy a multipart file into the staging area. ``None`` if none was sent."""
    if upload is None or not upload.filename:
        return None
    try:
        return await staging.stage(
            upload.file,
            upload.filename,
            upload.content_type or "application/octet-stream",
        )
    finally:
        await upload.close()


def parse_media_id(value: str, kind: MediaKind) -> UUID:
    """Path id as a UUID. Anything else cannot name a stored asset."""
    try:
        return UUID(value)
    except ValueError:
        raise NotFoundError(f"{kind.value.capitalize()} not found")


def media_response(asset: MediaAsset, stream: ObjectStream) -> StreamingResponse:
    """Stream an asset; the store connection is released even if the client leaves early."""
    return StreamingResponse(
        stream,
        media_type=asset.content_type,
        headers={"Content-Length": str(asset.size)},
        background=BackgroundTask(stream.close),
    )
