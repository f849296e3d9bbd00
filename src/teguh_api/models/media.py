"""Typed results of the downloader and AI proxies."""

from enum import Enum

from pydantic import BaseModel, Field


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    THREADS = "threads"


class ChatModel(str, Enum):
    DEEPSEEK = "deepseek"
    COPILOT = "copilot"
    GPT5 = "gpt5"


class MediaItem(BaseModel):
    """A single downloadable file."""

    type: str = "unknown"
    url: str | None = None
    thumbnail: str | None = None


class MediaResult(BaseModel):
    """
    Normalized downloader payload.

    Every field has a default so a sparse upstream answer still produces a
    complete document.
    """

    platform: Platform
    source_url: str
    title: str = "Untitled"
    author: str = "Unknown"
    thumbnail: str | None = None
    duration_seconds: int = 0
    quality: str | None = None
    items: list[MediaItem] = Field(default_factory=list)

    @property
    def total_media(self) -> int:
        return len(self.items)


class ChatReply(BaseModel):
    """Answer from an AI proxy."""

    model: str
    query: str
    response: str
    source: str = Field(..., description="'external-api' or 'fallback'")
