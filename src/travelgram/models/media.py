"""Media data models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MediaKind(str, Enum):
    """Types of uploaded media."""
    IMAGE = "image"
    AUDIO = "audio"


class StoredObject(BaseModel):
    """Binary store reference returned by a write."""
    object_id: str
    stored_name: str


class MediaAsset(BaseModel):
    """Media file metadata."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: Optional[UUID] = None
    kind: MediaKind

    # Storage
    object_id: str
    filename: str
    original_name: str
    content_type: str
    size: int
    owner_id: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)

    # Image
    description: str = ""
    location: str = ""

    # Audio
    duration: float = 0
    transcript: str = ""
    image_id: Optional[UUID] = None


class MediaExtraFields(BaseModel):
    """Free-form fields sent alongside an upload."""
    description: str = ""
    location: str = ""
    duration: float = Field(default=0, ge=0)
    transcript: str = ""
    image_id: Optional[UUID] = None


class UploadResult(BaseModel):
    asset_id: UUID
    stored_name: str
