"""Playlist generation over a channel's indexed videos."""

from __future__ import annotations

import asyncio
import random
import time
from typing import List, Optional

from rich.console import Console

from nosbot.db import ChannelStore, PlaylistStore, VideoStore
from nosbot.errors import EmptyResultError, InputValidationError, NotFoundError, NotReadyError
from nosbot.models.channel import IndexStatus
from nosbot.models.playlist import GeneratedPlaylist, PlaylistFilters, PlaylistResult, PlaylistVideo
from nosbot.models.video import Video
from nosbot.services.filters import apply_filters, shuffle_array
from nosbot.services.topic_selection import TopicSelector

WATCH_URL_PREFIX = "https://www.youtube.com/watch_videos?video_ids="
MIN_PLAYLIST_SIZE = 1
MAX_PLAYLIST_SIZE = 25
HISTORY_LIMIT = 50


def build_watch_url(video_ids: List[str]) -> str:
    """Return the anonymous watch-queue URL for the ids, in order."""

    return f"{WATCH_URL_PREFIX}{','.join(video_ids)}"


class PlaylistGenerator:
    """Turn a channel's index plus user filters into an ordered playlist."""

    def __init__(
        self,
        *,
        channel_store: ChannelStore,
        video_store: VideoStore,
        playlist_store: PlaylistStore,
        topic_selector: TopicSelector,
        console: Optional[Console] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._channels = channel_store
        self._videos = video_store
        self._playlists = playlist_store
        self._selector = topic_selector
        self._console = console or Console()
        self._rng = rng

    async def generate_playlist(
        self,
        channel_id: str,
        filters: PlaylistFilters,
        count: int = 10,
        shuffle: bool = True,
        user_id: Optional[str] = None,
    ) -> PlaylistResult:
        """Generate a playlist for a fully indexed channel.

        A non-blank ``filters.topic_prompt`` selects topic mode: year, duration, and shorts
        constraints narrow the candidates, then the topic selector picks and orders them.
        Otherwise every filter applies and the survivors are optionally shuffled before
        truncation to ``count``.

        Parameters
        ----------
        channel_id:
            External YouTube id of the channel.
        filters:
            User constraints.
        count:
            Requested playlist length, 1 to 25.
        shuffle:
            Shuffle filtered videos before truncation (ignored in topic mode).
        user_id:
            Owner to persist the playlist for; anonymous playlists are not stored.

        Returns
        -------
        PlaylistResult
            Playlist id, watch URL, ordered videos, and the selector's reasoning if any.

        Raises
        ------
        InputValidationError
            If ``count`` is outside 1 to 25.
        NotFoundError
            If the channel is unknown.
        NotReadyError
            If the channel is not ``COMPLETE``.
        EmptyResultError
            If the channel has no videos or nothing survives filtering.
        """

        if not MIN_PLAYLIST_SIZE <= count <= MAX_PLAYLIST_SIZE:
            raise InputValidationError(
                f"count must be between {MIN_PLAYLIST_SIZE} and {MAX_PLAYLIST_SIZE}, got {count}."
            )

        channel = await asyncio.to_thread(self._channels.find_by_youtube_id, channel_id)
        if channel is None:
            raise NotFoundError("Channel not found. Please index it first.")
        if channel.index_status is not IndexStatus.COMPLETE:
            raise NotReadyError("Channel indexing is not complete.")

        videos = await asyncio.to_thread(self._videos.list_for_channel, channel.id)
        if not videos:
            raise EmptyResultError("No videos found for this channel.")

        ai_reasoning: Optional[str] = None
        shortfall = False
        topic = filters.topic

        if topic is not None:
            candidates = apply_filters(videos, filters.without_topic_fields())
            if not candidates:
                raise EmptyResultError("No videos match your year/duration filters. Try adjusting them.")

            selection = await self._selector.select_videos_by_topic(candidates, topic, count)
            by_id = {video.youtube_video_id: video for video in candidates}
            selected = [by_id[video_id] for video_id in selection.selected_video_ids if video_id in by_id]
            ai_reasoning = selection.reasoning
            if len(selected) < count:
                shortfall = True
                self._console.log(
                    f"Topic selection returned {len(selected)} of {count} requested videos; keeping strict matches"
                )
        else:
            filtered = apply_filters(videos, filters)
            if not filtered:
                raise EmptyResultError("No videos match your filters. Try adjusting them.")
            if shuffle:
                filtered = shuffle_array(filtered, self._rng)
            selected = filtered[:count]

        video_ids = [video.youtube_video_id for video in selected]
        watch_url = build_watch_url(video_ids)

        if user_id:
            stored = await asyncio.to_thread(
                self._playlists.create,
                GeneratedPlaylist(
                    video_ids=video_ids,
                    filters=filters.to_storage(),
                    watch_url=watch_url,
                    user_id=user_id,
                    channel_id=channel.id,
                ),
            )
            playlist_id = str(stored.id)
        else:
            playlist_id = f"temp_{int(time.time() * 1000)}"

        self._console.log(f"[green]Generated playlist {playlist_id} with {len(selected)} videos[/green]")
        return PlaylistResult(
            playlist_id=playlist_id,
            watch_url=watch_url,
            videos=[_to_playlist_video(video) for video in selected],
            ai_reasoning=ai_reasoning,
            requested_count=count,
            shortfall=shortfall,
        )

    async def list_history(self, user_id: str, *, limit: int = HISTORY_LIMIT) -> List[GeneratedPlaylist]:
        """Return a user's stored playlists, most recent first."""

        return await asyncio.to_thread(self._playlists.list_for_user, user_id, limit=limit)


def _to_playlist_video(video: Video) -> PlaylistVideo:
    return PlaylistVideo(
        id=video.youtube_video_id,
        title=video.title,
        published_at=video.published_at,
        duration=video.duration,
        view_count=str(video.view_count),
        thumbnail_url=video.thumbnail_url,
    )


__all__ = ["MAX_PLAYLIST_SIZE", "PlaylistGenerator", "WATCH_URL_PREFIX", "build_watch_url"]
