"""Database utilities, connection helpers, and storage protocols for Nosbot."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from psycopg2.extensions import connection as PsycopgConnection

from nosbot.models.channel import Channel, ChannelInfo, IndexStatus
from nosbot.models.playlist import GeneratedPlaylist
from nosbot.models.video import Video


class ConnectionFactory(Protocol):
    """Callable protocol that yields a managed psycopg2 connection."""

    def __call__(self) -> AbstractContextManager[PsycopgConnection]:
        """Return a context manager that produces a live database connection."""


class ChannelStore(Protocol):
    """Channel persistence operations used by the indexer, generator, and channel service."""

    def find_by_youtube_id(self, youtube_id: str) -> Optional[Channel]:
        """Return the channel with the given external id, if stored."""

    def find_by_query(self, query: str) -> Optional[Channel]:
        """Return a channel matching a normalised ``@handle`` or ``UC…`` id."""

    def upsert_from_source(self, info: ChannelInfo) -> Channel:
        """Create or refresh channel metadata without touching indexing fields."""

    def update_progress(self, youtube_id: str, indexed_count: int) -> None:
        """Persist the running indexed-video count."""

    def mark_complete(self, youtube_id: str, indexed_count: int, synced_at: datetime) -> None:
        """Set ``COMPLETE`` with the final count and sync timestamp."""

    def set_status(self, youtube_id: str, status: IndexStatus) -> None:
        """Unconditionally set the indexing status."""

    def transition_status(self, youtube_id: str, expected: IndexStatus, target: IndexStatus) -> bool:
        """Atomically move ``expected`` to ``target``; return whether the row changed."""


class VideoStore(Protocol):
    """Video persistence operations."""

    def upsert(self, video: Video) -> Video:
        """Insert a video or refresh its mutable fields, keyed by external id."""

    def list_for_channel(self, channel_id: UUID) -> List[Video]:
        """Return every stored video for a channel in natural (newest first) order."""


class PlaylistStore(Protocol):
    """Generated playlist persistence operations."""

    def create(self, playlist: GeneratedPlaylist) -> GeneratedPlaylist:
        """Persist a playlist and return it with its generated id."""

    def list_for_user(self, user_id: str, *, limit: int = 50) -> List[GeneratedPlaylist]:
        """Return a user's most recent playlists."""


class QuotaStore(Protocol):
    """Quota log persistence operations."""

    def record(self, endpoint: str, units: int) -> None:
        """Append a quota usage entry."""

    def usage_since(self, since: datetime) -> int:
        """Return total units recorded at or after ``since``."""


__all__ = ["ChannelStore", "ConnectionFactory", "PlaylistStore", "QuotaStore", "VideoStore"]
