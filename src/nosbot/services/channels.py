"""Channel lookup, indexing trigger, and status reads."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from rich.console import Console

from nosbot.config.settings import Settings, get_settings
from nosbot.db import ChannelStore
from nosbot.errors import NotFoundError
from nosbot.models.channel import Channel, ChannelSearchHit, IndexStatus
from nosbot.services.indexer import ChannelIndexer, IndexingSummary, ProgressCallback
from nosbot.services.youtube import VideoSource
from nosbot.utils.validation import normalize_channel_query

Dispatcher = Callable[[str, str], Awaitable[None]]

ALREADY_COMPLETE = "already_complete"
IN_PROGRESS = "in_progress"
STARTED = "started"


@dataclass(slots=True)
class ChannelLookup:
    """A stored channel and whether it was served without calling the source."""

    channel: Channel
    cached: bool


@dataclass(slots=True)
class IndexingTrigger:
    """Outcome of asking for a channel to be indexed."""

    status: str
    message: str
    indexed_video_count: int = 0
    summary: Optional[IndexingSummary] = None


class ChannelService:
    """Coordinate channel metadata and the indexing lifecycle."""

    def __init__(
        self,
        *,
        video_source: VideoSource,
        channel_store: ChannelStore,
        indexer: ChannelIndexer,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._source = video_source
        self._channels = channel_store
        self._indexer = indexer
        self._settings = settings or get_settings()
        self._console = console or Console()

    async def lookup_channel(self, query: str, *, now: Optional[datetime] = None) -> ChannelLookup:
        """Return channel metadata, from storage when fresh enough, otherwise from the source.

        Parameters
        ----------
        query:
            ``@handle``, bare handle, ``UC…`` id, or a channel URL.
        now:
            Reference time for the cache window; defaults to the current UTC time.

        Returns
        -------
        ChannelLookup
            The stored channel and a flag telling whether the source was skipped.

        Raises
        ------
        InvalidChannelQueryError
            If the query cannot identify a channel.
        NotFoundError
            If the source has no such channel.
        """

        normalized = normalize_channel_query(query)
        stored = await asyncio.to_thread(self._channels.find_by_query, normalized)
        if stored is not None and self._is_fresh(stored, now or datetime.now(timezone.utc)):
            return ChannelLookup(channel=stored, cached=True)

        info = await self._source.resolve_channel(normalized)
        channel = await asyncio.to_thread(self._channels.upsert_from_source, info)
        self._console.log(f"Stored channel {channel.title} ({channel.youtube_id})")
        return ChannelLookup(channel=channel, cached=False)

    async def search_channels(self, query: str, *, limit: int = 5) -> List[ChannelSearchHit]:
        """Return channels matching free text; nothing is stored until a hit is looked up."""

        hits = await self._source.search_channels(query, limit)
        self._console.log(f"Channel search {query!r} returned {len(hits)} hits")
        return hits

    async def start_indexing(
        self,
        channel_youtube_id: str,
        *,
        dispatcher: Optional[Dispatcher] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IndexingTrigger:
        """Claim a channel for indexing and run or dispatch the indexer.

        ``COMPLETE`` and ``IN_PROGRESS`` channels are reported as-is. A ``FAILED`` channel is
        reset to ``PENDING`` before the ``PENDING`` to ``IN_PROGRESS`` claim, which is atomic:
        losing the claim to a concurrent trigger reports ``in_progress``. A failing dispatcher
        falls back to indexing inline.

        Raises
        ------
        NotFoundError
            If the channel is not stored.
        Exception
            Any indexing error, after the channel is reset to ``PENDING``.
        """

        channel = await asyncio.to_thread(self._channels.find_by_youtube_id, channel_youtube_id)
        if channel is None:
            raise NotFoundError(f"Channel not found: {channel_youtube_id}")

        if channel.index_status is IndexStatus.COMPLETE:
            return IndexingTrigger(ALREADY_COMPLETE, "Channel is already indexed.", channel.indexed_video_count)
        if channel.index_status is IndexStatus.IN_PROGRESS:
            return IndexingTrigger(IN_PROGRESS, "Indexing is already running.", channel.indexed_video_count)

        try:
            if channel.index_status is IndexStatus.FAILED:
                await asyncio.to_thread(
                    self._channels.transition_status, channel_youtube_id, IndexStatus.FAILED, IndexStatus.PENDING
                )

            claimed = await asyncio.to_thread(
                self._channels.transition_status, channel_youtube_id, IndexStatus.PENDING, IndexStatus.IN_PROGRESS
            )
            if not claimed:
                return IndexingTrigger(IN_PROGRESS, "Indexing is already running.", channel.indexed_video_count)

            if dispatcher is not None:
                try:
                    await dispatcher(channel.youtube_id, channel.upload_playlist_id)
                    return IndexingTrigger(STARTED, "Indexing dispatched.")
                except Exception as exc:
                    self._console.log(f"[yellow]Dispatch failed, indexing synchronously:[/yellow] {exc}")
                    summary = await self._indexer.index_channel_videos(
                        channel.youtube_id, channel.upload_playlist_id, on_progress=on_progress
                    )
                    return IndexingTrigger(STARTED, "Indexing completed (sync fallback).", summary.indexed, summary)

            summary = await self._indexer.index_channel_videos(
                channel.youtube_id, channel.upload_playlist_id, on_progress=on_progress
            )
            return IndexingTrigger(STARTED, "Indexing completed.", summary.indexed, summary)
        except Exception:
            try:
                await asyncio.to_thread(self._channels.set_status, channel_youtube_id, IndexStatus.PENDING)
            except Exception as reset_exc:
                self._console.log(f"[red]Failed to reset channel status:[/red] {reset_exc}")
            raise

    async def indexing_status(self, channel_youtube_id: str) -> Channel:
        """Return the stored channel with its current indexing state."""

        channel = await asyncio.to_thread(self._channels.find_by_youtube_id, channel_youtube_id)
        if channel is None:
            raise NotFoundError(f"Channel not found: {channel_youtube_id}")
        return channel

    def _is_fresh(self, channel: Channel, now: datetime) -> bool:
        refreshed = channel.updated_at or channel.created_at
        if refreshed is None:
            return False
        if refreshed.tzinfo is None:
            refreshed = refreshed.replace(tzinfo=timezone.utc)
        return now - refreshed < timedelta(days=int(self._settings.channel_cache_days))


__all__ = [
    "ALREADY_COMPLETE",
    "ChannelLookup",
    "ChannelService",
    "Dispatcher",
    "IN_PROGRESS",
    "IndexingTrigger",
    "STARTED",
]
