"""Feed entry model (read-time composition, never persisted)."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FeedEntry(BaseModel):
    """One image, its correlated audio note and the owner's display fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    audio_id: Optional[UUID] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    description: str = ""
    location: str = ""
    uploaded_at: datetime
    user_id: str
    username: Optional[str] = None
    user_photo_url: Optional[str] = None

    def with_urls(self, base_url: str) -> "FeedEntry":
        """Fill download URLs relative to the API base."""
        base = base_url.rstrip("/")
        return self.model_copy(update={
            "image_url": f"{base}/api/images/{self.id}",
            "audio_url": f"{base}/api/audio/{self.audio_id}" if self.audio_id else None,
        })
