"""
Video model for uploaded media and its descriptive metadata.

Media files live on the external media host; this table stores their URLs and
host identifiers together with the title, description, view counter and
publication flag.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from videotube.models.base import Base, TimestampMixin, UUIDMixin


class Video(Base, UUIDMixin, TimestampMixin):
    """
    A video uploaded by a user.

    Deleting the owning user deletes the video as well.
    """

    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner_id", "owner_id"),
        Index("ix_videos_is_published", "is_published"),
        Index("ix_videos_created_at", "created_at"),
    )

    owner_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User who uploaded the video",
    )

    video_file = Column(Text, nullable=False, comment="Hosted video URL")

    video_public_id = Column(
        String(255),
        nullable=True,
        comment="Media host identifier of the video file",
    )

    thumbnail = Column(Text, nullable=False, comment="Hosted thumbnail URL")

    thumbnail_public_id = Column(
        String(255),
        nullable=True,
        comment="Media host identifier of the thumbnail",
    )

    title = Column(String(200), nullable=False, comment="Video title")

    description = Column(Text, nullable=False, comment="Video description")

    duration = Column(
        Float,
        nullable=False,
        default=0.0,
        comment="Duration in seconds as reported by the media host",
    )

    views = Column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Number of times the video was read",
    )

    is_published = Column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the video is visible to users other than its owner",
    )

    owner = relationship("User", back_populates="videos")

    def __repr__(self):
        return f"<Video(id={self.id}, title='{self.title}', owner_id={self.owner_id})>"
