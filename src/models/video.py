"""Video and converted-format model definitions."""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import VideoStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_video_id() -> str:
    return uuid.uuid4().hex


class Video(Base):
    """One uploaded video and its conversion state."""

    __tablename__ = "videos"
    __table_args__ = (
        UniqueConstraint("user_email", "filename", name="uq_videos_user_filename"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_video_id)
    user_email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[VideoStatus] = mapped_column(
        Enum(VideoStatus, values_callable=lambda e: [m.value for m in e]),
        default=VideoStatus.UPLOADED,
        nullable=False,
    )
    raw_file_path: Mapped[str] = mapped_column(String, nullable=False)
    output_file_path: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    output_format: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Probed metadata
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    converted_formats: Mapped[List["VideoFormat"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
        order_by="VideoFormat.id",
        lazy="selectin",
    )


class VideoFormat(Base):
    """A completed conversion of a video into one output format."""

    __tablename__ = "video_formats"
    __table_args__ = (
        UniqueConstraint("video_id", "format", name="uq_video_formats_video_format"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    format: Mapped[str] = mapped_column(String(8), nullable=False)
    file_path: Mapped[str] = mapped_column(String, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    video: Mapped[Video] = relationship(back_populates="converted_formats")
