"""Upload orchestration: staging -> binary store -> metadata repository."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

from ..config import Settings
from ..exceptions import (
    AuthorizationError,
    DependencyUnavailable,
    MissingFileError,
    NotFoundError,
    RepositoryError,
    StorageError,
    ValidationError,
)
from ..models.media import MediaAsset, MediaExtraFields, MediaKind, UploadResult
from ..repositories.media_repo import MediaRepository
from .staging import StagingArea
from .storage import BinaryStore, ObjectStream

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("jpeg", "jpg", "png", "gif", "webp")
AUDIO_EXTENSIONS = ("mp3", "wav", "ogg", "m4a", "aac")


@dataclass(frozen=True)
class UploadRule:
    """Allow-list for one media kind."""

    extensions: tuple[str, ...]
    mime_prefix: str
    mime_subtypes: Optional[tuple[str, ...]]
    max_bytes: int

    def extension_allowed(self, filename: str) -> bool:
        ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
        return ext in self.extensions

    def mime_allowed(self, content_type: str) -> bool:
        mime = (content_type or "").split(";")[0].strip().lower()
        if not mime.startswith(self.mime_prefix):
            return False
        if self.mime_subtypes is None:
            return True
        return mime[len(self.mime_prefix):] in self.mime_subtypes


def upload_rules(settings: Settings) -> dict[MediaKind, UploadRule]:
    return {
        MediaKind.IMAGE: UploadRule(
            extensions=IMAGE_EXTENSIONS,
            mime_prefix="image/",
            mime_subtypes=IMAGE_EXTENSIONS,
            max_bytes=settings.image_max_bytes,
        ),
        MediaKind.AUDIO: UploadRule(
            extensions=AUDIO_EXTENSIONS,
            mime_prefix="audio/",
            mime_subtypes=None,
            max_bytes=settings.audio_max_bytes,
        ),
    }


class UploadOrchestrator:
    """Coordinates the upload, download and delete paths of media assets."""

    def __init__(
        self,
        store: BinaryStore,
        repository: MediaRepository,
        settings: Settings,
    ):
        self.store = store
        self.repository = repository
        self.rules = upload_rules(settings)

    def ensure_ready(self) -> None:
        """Fail fast before any transfer if a store is not connected."""
        if not self.store.is_ready():
            raise DependencyUnavailable("Binary store connection is not ready")
        if not self.repository.is_ready():
            raise DependencyUnavailable("Metadata repository is not ready")

    def validate(
        self,
        kind: MediaKind,
        temp_path: Optional[Path],
        original_name: str,
        content_type: str,
    ) -> int:
        """Check the staged file against the allow-list. Returns its size."""
        if temp_path is None or not temp_path.is_file():
            raise MissingFileError(f"No {kind.value} file was uploaded")

        rule = self.rules[kind]
        if not rule.extension_allowed(original_name) or not rule.mime_allowed(content_type):
            allowed = ", ".join(e.upper() for e in rule.extensions)
            raise ValidationError(f"Only {kind.value} files can be uploaded ({allowed})")

        size = temp_path.stat().st_size
        if size > rule.max_bytes:
            raise ValidationError(
                f"File too large. Max size: {rule.max_bytes // 1024 // 1024}MB"
            )
        return size

    async def _check_image_link(self, owner_id: str, image_id: UUID) -> None:
        try:
            image = await self.repository.find_by_id(image_id, MediaKind.IMAGE)
        except NotFoundError:
            raise ValidationError("Linked image not found")
        if image.owner_id != owner_id:
            raise ValidationError("Audio can only be linked to your own image")

    async def upload_media(
        self,
        kind: MediaKind,
        owner_id: str,
        temp_path: Optional[str | Path],
        original_name: str,
        content_type: str,
        extra: Optional[MediaExtraFields] = None,
    ) -> UploadResult:
        """Relay a staged upload into the binary store and record its metadata.

        The staged file is removed on every exit path. If the metadata write
        fails after the binary write succeeded, the binary object is left
        behind and logged.
        """
        path = Path(temp_path) if temp_path else None
        extra = extra or MediaExtraFields()

        try:
            size = self.validate(kind, path, original_name, content_type)
            self.ensure_ready()

            if kind is MediaKind.AUDIO and extra.image_id is not None:
                await self._check_image_link(owner_id, extra.image_id)

            logger.info(f"Uploading {kind.value} for user {owner_id}: {original_name}")
            with open(path, "rb") as stream:
                stored = await self.store.put(
                    stream,
                    size,
                    original_name,
                    content_type=content_type,
                    metadata={"owner-id": owner_id, "kind": kind.value},
                )

            asset = MediaAsset(
                kind=kind,
                object_id=stored.object_id,
                filename=stored.stored_name,
                original_name=original_name,
                content_type=content_type,
                size=size,
                owner_id=owner_id,
            )
            if kind is MediaKind.IMAGE:
                asset.description = extra.description
                asset.location = extra.location
            else:
                asset.duration = extra.duration
                asset.transcript = extra.transcript
                asset.image_id = extra.image_id

            try:
                asset_id = await self.repository.insert(asset)
            except (RepositoryError, DependencyUnavailable):
                logger.error(
                    f"Metadata write failed, binary object {stored.object_id} is orphaned"
                )
                raise

            logger.info(f"{kind.value.capitalize()} saved: id={asset_id} file={stored.stored_name}")
            return UploadResult(asset_id=asset_id, stored_name=stored.stored_name)
        finally:
            if path is not None:
                StagingArea.discard(path)

    async def open_media(
        self, kind: MediaKind, asset_id: UUID
    ) -> tuple[MediaAsset, ObjectStream]:
        """Metadata row plus a byte stream of its binary object."""
        asset = await self.repository.find_by_id(asset_id, kind)
        stream = await self.store.open_read_stream(asset.filename)
        return asset, stream

    async def list_owner_media(self, kind: MediaKind, owner_id: str) -> list[MediaAsset]:
        return await self.repository.find_by_owner(owner_id, kind)

    async def delete_media(self, kind: MediaKind, asset_id: UUID, requester_id: str) -> None:
        """Owner-only delete: binary object first (best effort), then the row."""
        asset = await self.repository.find_by_id(asset_id, kind)
        if asset.owner_id != requester_id:
            raise AuthorizationError(f"You are not allowed to delete this {kind.value}")

        try:
            await self.store.delete(asset.object_id)
        except (StorageError, DependencyUnavailable) as e:
            logger.warning(
                f"Binary object {asset.object_id} could not be removed, deleting metadata anyway: {e}"
            )

        await self.repository.delete_by_id(asset.id)
        logger.info(f"{kind.value.capitalize()} deleted: id={asset.id}")
