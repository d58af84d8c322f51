"""PostgreSQL models for media metadata."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Float,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .postgres import Base


class MediaAssetRecord(Base):
    """Metadata row for an uploaded image or audio file.

    ``object_id`` and ``filename`` point back at the binary store object.
    """

    __tablename__ = "media_assets"
    __table_args__ = (
        Index("ix_media_assets_owner_kind_uploaded", "owner_id", "kind", "uploaded_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    kind: Mapped[str] = mapped_column(
        Enum("image", "audio", name="media_kind"),
        nullable=False,
    )

    # Binary store reference
    object_id: Mapped[str] = mapped_column(String(255), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    # Upload info
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    owner_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    # Image fields
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(255), default="")

    # Audio fields
    duration: Mapped[float] = mapped_column(Float, default=0)
    transcript: Mapped[str] = mapped_column(Text, default="")
    image_id: Mapped[Optional[UUID]] = mapped_column(Uuid, index=True, nullable=True)
