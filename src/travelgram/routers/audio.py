"""Audio note API endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse

from ..auth import AuthUser
from ..deps import (
    get_current_user,
    get_media_repo,
    get_staging,
    get_store,
    get_upload_orchestrator,
    media_response,
    parse_media_id,
    stage_upload,
)
from ..exceptions import ValidationError
from ..media.staging import StagingArea
from ..media.storage import BinaryStore
from ..media.uploads import UploadOrchestrator
from ..models.media import MediaExtraFields, MediaKind
from ..repositories.media_repo import MediaRepository

router = APIRouter(prefix="/audio", tags=["Audio"])


def _parse_image_id(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError("imageId must be a valid image id")


@router.get("/health")
async def audio_health(
    store: BinaryStore = Depends(get_store),
    media: MediaRepository = Depends(get_media_repo),
) -> dict:
    return {
        "status": "ok",
        "binaryStore": store.is_ready(),
        "metadata": media.is_ready(),
    }


@router.post("/upload", status_code=201)
async def upload_audio(
    audio: Optional[UploadFile] = File(None),
    duration: float = Form(0, ge=0),
    transcript: str = Form(""),
    image_id: Optional[str] = Form(None, alias="imageId"),
    user: AuthUser = Depends(get_current_user),
    staging: StagingArea = Depends(get_staging),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    """Upload an audio note, optionally linked to one of the caller's images."""
    extra = MediaExtraFields(
        duration=duration,
        transcript=transcript,
        image_id=_parse_image_id(image_id),
    )
    staged = await stage_upload(staging, audio)
    result = await orchestrator.upload_media(
        MediaKind.AUDIO,
        user.uid,
        staged.path if staged else None,
        staged.original_name if staged else "",
        staged.content_type if staged else "",
        extra,
    )
    return {
        "success": True,
        "audioId": str(result.asset_id),
        "filename": result.stored_name,
        "message": "Audio uploaded successfully",
    }


@router.get("/myaudios")
async def my_audios(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    """Audio notes of the caller, newest first."""
    audios = await orchestrator.list_owner_media(MediaKind.AUDIO, user.uid)
    base = str(request.base_url).rstrip("/")
    return {
        "success": True,
        "count": len(audios),
        "data": [
            {**audio.model_dump(mode="json", by_alias=True), "url": f"{base}/api/audio/{audio.id}"}
            for audio in audios
        ],
    }


@router.get("/{audio_id}")
async def get_audio(
    audio_id: str,
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> StreamingResponse:
    asset, stream = await orchestrator.open_media(
        MediaKind.AUDIO, parse_media_id(audio_id, MediaKind.AUDIO)
    )
    return media_response(asset, stream)


@router.delete("/{audio_id}")
async def delete_audio(
    audio_id: str,
    user: AuthUser = Depends(get_current_user),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> dict:
    await orchestrator.delete_media(
        MediaKind.AUDIO, parse_media_id(audio_id, MediaKind.AUDIO), user.uid
    )
    return {"success": True, "message": "Audio deleted successfully"}
