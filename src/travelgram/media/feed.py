"""Feed composition.

Joins image rows from the metadata repository with the social graph:
the home feed covers the viewer and everyone they follow, the profile feed
a single user. Each image is paired with at most one audio note, chosen by
explicit ``image_id`` link first and otherwise by the same owner uploading
within the correlation window (closest upload wins). The window match is a
lossy fallback: two rapid uploads without a link can be paired wrongly.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from ..config import Settings
from ..exceptions import AppException
from ..models.feed import FeedEntry
from ..models.media import MediaAsset, MediaKind
from ..models.user import UserProfile
from ..repositories.media_repo import MediaRepository
from ..repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "Traveller"


class FeedComposer:
    def __init__(
        self,
        media: MediaRepository,
        users: UserRepository,
        settings: Settings,
    ):
        self.media = media
        self.users = users
        self.limit = settings.feed_limit
        self.window = timedelta(seconds=settings.audio_match_window_seconds)

    async def compose_feed(self, viewer_id: str) -> list[FeedEntry]:
        """Newest images of the viewer and the users they follow."""
        following = await self.users.get_following_ids(viewer_id)
        owner_ids = [viewer_id, *following]

        images = await self.media.find_by_owner_set(
            owner_ids, kind=MediaKind.IMAGE, limit=self.limit
        )
        logger.info(
            f"Feed for {viewer_id}: {len(images)} images from {len(owner_ids)} users"
        )
        return await self._compose(images)

    async def compose_profile_feed(self, subject_id: str) -> list[FeedEntry]:
        """Every image of one user, newest first."""
        images = await self.media.find_by_owner(subject_id, kind=MediaKind.IMAGE)
        return await self._compose(images)

    async def _compose(self, images: list[MediaAsset]) -> list[FeedEntry]:
        if not images:
            return []

        owners = list(dict.fromkeys(image.owner_id for image in images))
        profiles = dict(zip(
            owners,
            await asyncio.gather(*(self._profile(owner) for owner in owners)),
        ))
        audios = await asyncio.gather(*(self.correlate_audio(image) for image in images))

        return [
            self._entry(image, audio, profiles.get(image.owner_id))
            for image, audio in zip(images, audios)
        ]

    async def correlate_audio(self, image: MediaAsset) -> Optional[MediaAsset]:
        """Audio note for ``image``; ``None`` when absent or the lookup fails."""
        try:
            linked = await self.media.find_linked_audio(image.id)
            if linked is not None:
                return linked
            return await self.media.find_audio_near(
                image.owner_id, image.uploaded_at, self.window
            )
        except AppException as e:
            logger.warning(f"Audio lookup failed for image {image.id}: {e.detail}")
            return None

    async def _profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            return await self.users.get_by_id(user_id)
        except AppException as e:
            logger.warning(f"Profile lookup failed for user {user_id}: {e.detail}")
            return None

    @staticmethod
    def _entry(
        image: MediaAsset,
        audio: Optional[MediaAsset],
        profile: Optional[UserProfile],
    ) -> FeedEntry:
        return FeedEntry(
            id=image.id,
            audio_id=audio.id if audio else None,
            description=image.description or "",
            location=image.location or "",
            uploaded_at=image.uploaded_at,
            user_id=image.owner_id,
            username=profile.username if profile else DEFAULT_USERNAME,
            user_photo_url=profile.photo_url if profile else None,
        )
