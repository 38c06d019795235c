"""Repository for interacting with the `channels` table."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from nosbot.db import ConnectionFactory
from nosbot.db.repositories import BaseRepository
from nosbot.models.channel import Channel, ChannelInfo, IndexStatus


class ChannelRepository(BaseRepository[Channel]):
    """Data access object encapsulating channel persistence and indexing state."""

    table_name = "channels"
    model_type = Channel
    insert_fields = (
        "youtube_id",
        "title",
        "handle",
        "thumbnail_url",
        "upload_playlist_id",
        "total_video_count",
        "index_status",
    )
    update_fields = (
        "title",
        "handle",
        "thumbnail_url",
        "total_video_count",
    )
    conflict_field = "youtube_id"
    auto_timestamp_field = "updated_at"

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def find_by_youtube_id(self, youtube_id: str) -> Optional[Channel]:
        """Return a stored channel by its external id, if present."""

        return self.fetch_optional("youtube_id = %(youtube_id)s", {"youtube_id": youtube_id})

    def find_by_query(self, query: str) -> Optional[Channel]:
        """Return a channel whose handle or external id matches a normalised query."""

        handle = query if query.startswith("@") else f"@{query}"
        return self.fetch_optional(
            "LOWER(handle) = LOWER(%(handle)s) OR youtube_id = %(query)s",
            {"handle": handle, "query": query},
        )

    def upsert_from_source(self, info: ChannelInfo) -> Channel:
        """Create a channel or refresh its metadata, leaving indexing fields untouched."""

        return self.upsert(Channel(**info.model_dump()))

    def update_progress(self, youtube_id: str, indexed_count: int) -> None:
        self._execute(
            f"UPDATE {self.table_name} SET indexed_video_count = %(count)s, updated_at = NOW() "
            "WHERE youtube_id = %(youtube_id)s",
            {"count": indexed_count, "youtube_id": youtube_id},
        )

    def mark_complete(self, youtube_id: str, indexed_count: int, synced_at: datetime) -> None:
        self._execute(
            f"UPDATE {self.table_name} SET index_status = %(status)s, indexed_video_count = %(count)s, "
            "last_synced_at = %(synced_at)s, updated_at = NOW() WHERE youtube_id = %(youtube_id)s",
            {
                "status": IndexStatus.COMPLETE.value,
                "count": indexed_count,
                "synced_at": synced_at,
                "youtube_id": youtube_id,
            },
        )

    def set_status(self, youtube_id: str, status: IndexStatus) -> None:
        self._execute(
            f"UPDATE {self.table_name} SET index_status = %(status)s, updated_at = NOW() "
            "WHERE youtube_id = %(youtube_id)s",
            {"status": status.value, "youtube_id": youtube_id},
        )

    def transition_status(self, youtube_id: str, expected: IndexStatus, target: IndexStatus) -> bool:
        """Compare-and-set the indexing status; ``False`` means another caller got there first."""

        affected = self._execute(
            f"UPDATE {self.table_name} SET index_status = %(target)s, updated_at = NOW() "
            "WHERE youtube_id = %(youtube_id)s AND index_status = %(expected)s",
            {"target": target.value, "expected": expected.value, "youtube_id": youtube_id},
        )
        return affected == 1


__all__ = ["ChannelRepository"]
