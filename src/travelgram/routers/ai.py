"""AI caption endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..auth import AuthUser
from ..deps import get_current_user, get_vision_relay
from ..media.vision import VisionRelay

router = APIRouter(prefix="/ai", tags=["AI"])


class ImageRequest(BaseModel):
    """Body of the caption endpoints: an image URL or ``/api/images/<id>`` path."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_url: str = ""


@router.get("/health")
async def ai_health(vision: VisionRelay = Depends(get_vision_relay)) -> dict:
    if vision.settings.gemini_api_key:
        provider = "gemini"
    elif vision.settings.openai_api_key:
        provider = "openai"
    else:
        provider = None
    return {"status": "ok", "provider": provider}


@router.post("/generate-description")
async def generate_description(
    data: ImageRequest,
    user: AuthUser = Depends(get_current_user),
    vision: VisionRelay = Depends(get_vision_relay),
) -> dict:
    """Caption an image for a new post."""
    text = await vision.generate_description(data.image_url)
    return {"success": True, "analysis": {"analysisText": text}}


@router.post("/analyze-image")
async def analyze_image(
    data: ImageRequest,
    user: AuthUser = Depends(get_current_user),
    vision: VisionRelay = Depends(get_vision_relay),
) -> dict:
    """Longer analysis paragraph with a few tags."""
    text, tags = await vision.analyze_image(data.image_url)
    return {"success": True, "analysis": {"analysisText": text, "tags": tags}}
