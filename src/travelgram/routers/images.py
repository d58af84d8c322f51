"""Image API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse

from ..auth import AuthUser
from ..deps import (
    get_current_user,
    get_feed_composer,
    get_media_repo,
    get_staging,
    get_store,
    get_upload_orchestrator,
    media_response,
    parse_media_id,
    stage_upload,
)
from ..media.feed import FeedComposer
from ..media.staging import StagingArea
from ..media.storage import BinaryStore
from ..media.uploads import UploadOrchestrator
from ..models.media import MediaExtraFields, MediaKind
from ..repositories.media_repo import MediaRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["Images"])


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.get("/health")
async def images_health(
    store: BinaryStore = Depends(get_store),
    media: MediaRepository = Depends(get_media_repo),
) -> dict:
    """Readiness of the stores behind the image endpoints."""
    return {
        "status": "ok",
        "binaryStore": store.is_ready(),
        "metadata": media.is_ready(),
    }


@router.post("/upload", status_code=201)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    description: str = Form(""),
    location: str = Form(""),
    user: AuthUser = Depends(get_current_user),
    staging: StagingArea = Depends(get_staging),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    """Upload an image with an optional description and location."""
    staged = await stage_upload(staging, image)
    result = await orchestrator.upload_media(
        MediaKind.IMAGE,
        user.uid,
        staged.path if staged else None,
        staged.original_name if staged else "",
        staged.content_type if staged else "",
        MediaExtraFields(description=description, location=location),
    )
    return {
        "success": True,
        "imageId": str(result.asset_id),
        "filename": result.stored_name,
        "message": "Image uploaded successfully",
    }


@router.get("/myimages")
async def my_images(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    """Images of the caller, newest first."""
    images = await orchestrator.list_owner_media(MediaKind.IMAGE, user.uid)
    base = _base_url(request)
    return {
        "success": True,
        "count": len(images),
        "data": [
            {**image.model_dump(mode="json", by_alias=True), "url": f"{base}/api/images/{image.id}"}
            for image in images
        ],
    }


@router.get("/feed")
async def feed(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    composer: FeedComposer = Depends(get_feed_composer),
) -> dict:
    """Home feed: the caller's images and those of the users they follow."""
    entries = await composer.compose_feed(user.uid)
    base = _base_url(request)
    return {
        "feed": [e.with_urls(base).model_dump(mode="json", by_alias=True) for e in entries],
    }


@router.get("/profile/{user_id}")
async def profile_images(
    user_id: str,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    composer: FeedComposer = Depends(get_feed_composer),
) -> dict:
    """All images of one user, newest first."""
    entries = await composer.compose_profile_feed(user_id)
    base = _base_url(request)
    return {
        "images": [e.with_urls(base).model_dump(mode="json", by_alias=True) for e in entries],
    }


@router.get("/{image_id}")
async def get_image(
    image_id: str,
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> StreamingResponse:
    """Stream the image bytes with their stored content type."""
    asset, stream = await orchestrator.open_media(
        MediaKind.IMAGE, parse_media_id(image_id, MediaKind.IMAGE)
    )
    return media_response(asset, stream)


@router.delete("/{image_id}")
async def delete_image(
    image_id: str,
    user: AuthUser = Depends(get_current_user),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    """Delete one of the caller's images."""
    await orchestrator.delete_media(
        MediaKind.IMAGE, parse_media_id(image_id, MediaKind.IMAGE), user.uid
    )
    return {"success": True, "message": "Image deleted successfully"}
