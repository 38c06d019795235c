"""Pydantic models describing YouTube channels and their indexing state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from nosbot.models.base import NosbotBaseModel


class IndexStatus(str, Enum):
    """Lifecycle states for a channel's catalog index."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class ChannelInfo(NosbotBaseModel):
    """Channel metadata as resolved from the upstream catalog."""

    youtube_id: str = Field(min_length=1, max_length=50)
    title: str
    handle: Optional[str] = None
    thumbnail_url: Optional[str] = None
    upload_playlist_id: str = Field(min_length=1)
    total_video_count: int = Field(default=0, ge=0)


class ChannelSearchHit(NosbotBaseModel):
    """A channel returned by a free-text catalog search."""

    youtube_id: str = Field(min_length=1, max_length=50)
    title: str = ""
    handle: Optional[str] = None
    thumbnail_url: Optional[str] = None
    description: str = ""


class Channel(NosbotBaseModel):
    """Domain model representing a row in the ``channels`` table.

    ``indexed_video_count`` is the authoritative count maintained by the indexer, while
    ``total_video_count`` is whatever the source declared at lookup time and may be stale.
    """

    id: Optional[UUID] = None
    youtube_id: str = Field(min_length=1, max_length=50)
    title: str
    handle: Optional[str] = None
    thumbnail_url: Optional[str] = None
    upload_playlist_id: str = Field(min_length=1)
    total_video_count: int = Field(default=0, ge=0)
    indexed_video_count: int = Field(default=0, ge=0)
    index_status: IndexStatus = IndexStatus.PENDING
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = ["Channel", "ChannelInfo", "ChannelSearchHit", "IndexStatus"]
