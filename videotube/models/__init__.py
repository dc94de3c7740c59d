"""
Database models for the VideoTube backend.

Architecture: User → Video ownership.
"""

from videotube.models.user import User
from videotube.models.video import Video

__all__ = [
    "User",
    "Video",
]
