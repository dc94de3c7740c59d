"""
User model for authentication, channel identity and video ownership.

Architecture:
    User → Video

Key Features:
    - bcrypt password hashes, never plaintext
    - Unique lower-case username and email
    - A single stored refresh token (latest session only)
    - Hosted avatar and optional cover image URLs
"""

from sqlalchemy import Column, Index, String, Text
from sqlalchemy.orm import relationship

from videotube.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """
    Registered account that can upload and manage videos.

    The refresh token column holds the value issued by the most recent login
    or refresh; it is overwritten on each new session and cleared on logout.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_username", "username", unique=True),
        Index("ix_users_email", "email", unique=True),
    )

    username = Column(
        String(50),
        nullable=False,
        comment="Unique lower-case username used for login and channel URLs",
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique lower-case email address",
    )

    full_name = Column(
        String(100),
        nullable=False,
        comment="Display name",
    )

    hashed_password = Column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password",
    )

    avatar = Column(
        Text,
        nullable=False,
        comment="Hosted avatar image URL",
    )

    avatar_public_id = Column(
        String(255),
        nullable=True,
        comment="Media host identifier of the avatar, used to delete it",
    )

    cover_image = Column(
        Text,
        nullable=True,
        comment="Hosted cover image URL",
    )

    cover_image_public_id = Column(
        String(255),
        nullable=True,
        comment="Media host identifier of the cover image",
    )

    refresh_token = Column(
        Text,
        nullable=True,
        comment="Refresh token of the latest session; null when logged out",
    )

    videos = relationship(
        "Video",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Videos uploaded by this user",
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
