"""Pydantic models."""

from .media import MediaAsset, MediaExtraFields, MediaKind, StoredObject, UploadResult
from .user import UserCreate, UserProfile, UserUpdate
from .feed import FeedEntry

__all__ = [
    "MediaAsset",
    "MediaExtraFields",
    "MediaKind",
    "StoredObject",
    "UploadResult",
    "UserCreate",
    "UserProfile",
    "UserUpdate",
    "FeedEntry",
]
