"""VideoTube: a video-sharing backend API."""

__version__ = "0.1.0"
