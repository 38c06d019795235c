"""Repository for interacting with the `videos` table."""

from __future__ import annotations

from typing import List
from uuid import UUID

from nosbot.db import ConnectionFactory
from nosbot.db.repositories import BaseRepository
from nosbot.models.video import Video


class VideoRepository(BaseRepository[Video]):
    """Data access object encapsulating video persistence logic."""

    table_name = "videos"
    model_type = Video
    insert_fields = (
        "youtube_video_id",
        "title",
        "description",
        "thumbnail_url",
        "published_at",
        "duration",
        "view_count",
        "channel_id",
    )
    # Duration and publish date are immutable upstream; only these fields drift.
    update_fields = (
        "title",
        "description",
        "thumbnail_url",
        "view_count",
    )
    conflict_field = "youtube_video_id"
    auto_timestamp_field = "updated_at"

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def list_for_channel(self, channel_id: UUID) -> List[Video]:
        """Return a channel's videos, newest first."""

        return self.fetch_all(
            "channel_id = %(channel_id)s",
            {"channel_id": self._normalise_identifier(channel_id)},
            order_by="published_at DESC, youtube_video_id",
        )


__all__ = ["VideoRepository"]
