"""Media metadata repository (PostgreSQL)."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncGenerator, Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import MediaAssetRecord
from ..db.postgres import PostgresDatabase
from ..exceptions import NotFoundError, RepositoryError
from ..models.media import MediaAsset, MediaKind

logger = logging.getLogger(__name__)


class MediaRepository:
    """Repository for image and audio metadata rows."""

    def __init__(self, db: PostgresDatabase):
        self.db = db

    def is_ready(self) -> bool:
        return self.db.is_ready()

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.db.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Metadata repository error: {e}")
            raise RepositoryError(f"Metadata repository error: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error("Metadata query timed out")
            raise RepositoryError("Metadata query timed out") from e

    async def insert(self, asset: MediaAsset) -> UUID:
        """Insert a metadata row and return its id."""
        record = MediaAssetRecord(
            kind=asset.kind.value,
            object_id=asset.object_id,
            filename=asset.filename,
            original_name=asset.original_name,
            content_type=asset.content_type,
            size=asset.size,
            owner_id=asset.owner_id,
            uploaded_at=asset.uploaded_at,
            description=asset.description,
            location=asset.location,
            duration=asset.duration,
            transcript=asset.transcript,
            image_id=asset.image_id,
        )
        async with self._session() as session:
            session.add(record)
            await session.flush()
            return record.id

    async def find_by_id(
        self, asset_id: UUID, kind: Optional[MediaKind] = None
    ) -> MediaAsset:
        """Get a row by id. Raises NotFoundError if absent or of another kind."""
        stmt = select(MediaAssetRecord).where(MediaAssetRecord.id == asset_id)
        if kind is not None:
            stmt = stmt.where(MediaAssetRecord.kind == kind.value)

        async with self._session() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()

        if record is None:
            label = kind.value.capitalize() if kind else "Media"
            raise NotFoundError(f"{label} not found")
        return MediaAsset.model_validate(record)

    async def find_by_owner(
        self, owner_id: str, kind: MediaKind = MediaKind.IMAGE
    ) -> list[MediaAsset]:
        """All rows of one owner, newest first."""
        return await self.find_by_owner_set([owner_id], kind=kind, limit=None)

    async def find_by_owner_set(
        self,
        owner_ids: Iterable[str],
        kind: MediaKind = MediaKind.IMAGE,
        limit: Optional[int] = 20,
    ) -> list[MediaAsset]:
        """Rows owned by any of ``owner_ids``, newest first, ties by id."""
        owner_ids = list(dict.fromkeys(owner_ids))
        if not owner_ids:
            return []

        stmt = (
            select(MediaAssetRecord)
            .where(
                MediaAssetRecord.kind == kind.value,
                MediaAssetRecord.owner_id.in_(owner_ids),
            )
            .order_by(MediaAssetRecord.uploaded_at.desc(), MediaAssetRecord.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session() as session:
            records = (await session.execute(stmt)).scalars().all()
        return [MediaAsset.model_validate(r) for r in records]

    async def find_linked_audio(self, image_id: UUID) -> Optional[MediaAsset]:
        """Newest audio row explicitly linked to ``image_id``."""
        stmt = (
            select(MediaAssetRecord)
            .where(
                MediaAssetRecord.kind == MediaKind.AUDIO.value,
                MediaAssetRecord.image_id == image_id,
            )
            .order_by(MediaAssetRecord.uploaded_at.desc())
            .limit(1)
        )
        async with self._session() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
        return MediaAsset.model_validate(record) if record else None

    async def find_audio_near(
        self, owner_id: str, at: datetime, window: timedelta
    ) -> Optional[MediaAsset]:
        """Audio row of ``owner_id`` uploaded closest to ``at`` within ``window``."""
        stmt = select(MediaAssetRecord).where(
            MediaAssetRecord.kind == MediaKind.AUDIO.value,
            MediaAssetRecord.owner_id == owner_id,
            # Audio linked to another image is never borrowed
            MediaAssetRecord.image_id.is_(None),
            MediaAssetRecord.uploaded_at >= at - window,
            MediaAssetRecord.uploaded_at <= at + window,
        )
        async with self._session() as session:
            records = (await session.execute(stmt)).scalars().all()

        if not records:
            return None
        closest = min(records, key=lambda r: (abs(r.uploaded_at - at), str(r.id)))
        return MediaAsset.model_validate(closest)

    async def delete_by_id(self, asset_id: UUID) -> None:
        """Delete a row. Raises NotFoundError if nothing was deleted."""
        stmt = delete(MediaAssetRecord).where(MediaAssetRecord.id == asset_id)
        async with self._session() as session:
            result = await session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Media not found")
