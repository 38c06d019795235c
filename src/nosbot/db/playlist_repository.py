"""Repository for interacting with the `generated_playlists` table."""

from __future__ import annotations

from typing import List

from psycopg2.extras import Json

from nosbot.db import ConnectionFactory
from nosbot.db.repositories import BaseRepository
from nosbot.models.playlist import GeneratedPlaylist


class PlaylistRepository(BaseRepository[GeneratedPlaylist]):
    """Persistence for playlists generated on behalf of a user."""

    table_name = "generated_playlists"
    model_type = GeneratedPlaylist
    insert_fields = ("video_ids", "filters", "watch_url", "user_id", "channel_id")

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def create(self, playlist: GeneratedPlaylist) -> GeneratedPlaylist:
        """Persist a playlist and return it with database-generated fields populated."""

        return self.insert(playlist)

    def list_for_user(self, user_id: str, *, limit: int = 50) -> List[GeneratedPlaylist]:
        """Return a user's playlists, most recent first."""

        return self.fetch_all(
            "user_id = %(user_id)s",
            {"user_id": user_id},
            order_by="created_at DESC",
            limit=limit,
        )

    def _transform_value(self, field: str, value: object) -> object:
        if field == "filters" and value is not None:
            return Json(value)
        return value


__all__ = ["PlaylistRepository"]
