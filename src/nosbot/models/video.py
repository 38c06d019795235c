"""Pydantic models describing YouTube video metadata."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from nosbot.models.base import NosbotBaseModel


class SourceVideo(NosbotBaseModel):
    """A single video as delivered by the upstream catalog, durations already decoded."""

    youtube_video_id: str = Field(min_length=1, max_length=20)
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_at: datetime
    duration: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)


class ChannelPage(NosbotBaseModel):
    """One page of a channel's uploads plus the continuation token, if any.

    ``skipped`` counts playlist items dropped because they were malformed.
    """

    videos: List[SourceVideo] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    skipped: int = Field(default=0, ge=0)


class Video(NosbotBaseModel):
    """Domain model representing a row in the ``videos`` table.

    ``view_count`` is a plain Python ``int`` (stored as ``BIGINT``) so counts beyond 2**31 are
    never truncated.
    """

    id: Optional[UUID] = None
    youtube_video_id: str = Field(min_length=1, max_length=20)
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_at: datetime
    duration: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    channel_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_source(cls, source: SourceVideo, *, channel_id: Optional[UUID]) -> "Video":
        """Build a storable video from an upstream record."""

        return cls(**source.model_dump(), channel_id=channel_id)


__all__ = ["ChannelPage", "SourceVideo", "Video"]
