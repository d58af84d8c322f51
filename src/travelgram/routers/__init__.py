"""API routers."""

from .images import router as images_router
from .audio import router as audio_router
from .ai import router as ai_router
from .users import router as users_router

__all__ = [
    "images_router",
    "audio_router",
    "ai_router",
    "users_router",
]
