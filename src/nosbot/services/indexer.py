"""Incremental indexer that copies a channel's uploads into local storage."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from rich.console import Console

from nosbot.db import ChannelStore, VideoStore
from nosbot.errors import NotFoundError
from nosbot.models.channel import IndexStatus
from nosbot.models.video import Video
from nosbot.services.youtube import VideoSource
from nosbot.utils.progress import IndexingProgress, IndexingStage

ProgressCallback = Callable[[IndexingProgress], None]


@dataclass(slots=True)
class IndexingSummary:
    """Outcome of a completed indexing run."""

    channel_id: str
    pages: int
    indexed: int
    failed_upserts: int
    elapsed_seconds: float
    stored_total: int = 0


class ChannelIndexer:
    """Walk a channel's upload playlist page by page and upsert every video."""

    def __init__(
        self,
        *,
        video_source: VideoSource,
        channel_store: ChannelStore,
        video_store: VideoStore,
        console: Optional[Console] = None,
    ) -> None:
        self._source = video_source
        self._channels = channel_store
        self._videos = video_store
        self._console = console or Console()

    async def index_channel_videos(
        self,
        channel_youtube_id: str,
        upload_playlist_id: str,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IndexingSummary:
        """Index every upload of a channel and mark it ``COMPLETE``.

        The caller is expected to have claimed the channel (``IN_PROGRESS``) beforehand.

        Parameters
        ----------
        channel_youtube_id:
            External id of a channel already present in storage.
        upload_playlist_id:
            The channel's uploads playlist.
        on_progress:
            Optional callback receiving an :class:`IndexingProgress` after each page.

        Returns
        -------
        IndexingSummary
            Pages fetched, videos stored this run and in total, per-video failures, and elapsed time.

        Raises
        ------
        NotFoundError
            If the channel is not stored.
        Exception
            Any page fetch or final status write failure, after the channel is marked ``FAILED``.
        """

        self._console.log(f"Starting index for channel {channel_youtube_id} (playlist {upload_playlist_id})")
        started = time.perf_counter()
        page = 0
        indexed = 0
        failed = 0

        try:
            channel = await asyncio.to_thread(self._channels.find_by_youtube_id, channel_youtube_id)
            if channel is None:
                raise NotFoundError(f"Channel not found: {channel_youtube_id}")
            expected_total = channel.total_video_count or None

            page_token: Optional[str] = None
            while True:
                page += 1
                self._emit(on_progress, IndexingStage.FETCHING, channel_youtube_id, page, indexed, expected_total)
                result = await self._source.fetch_channel_page(upload_playlist_id, page_token)
                self._console.log(
                    f"Page {page}: received {len(result.videos)} videos "
                    f"(more={'yes' if result.next_page_token else 'no'})"
                )
                if result.skipped:
                    failed += result.skipped
                    self._console.log(f"[yellow]Page {page}: skipped {result.skipped} malformed items[/yellow]")

                if result.videos:
                    for source_video in result.videos:
                        video = Video.from_source(source_video, channel_id=channel.id)
                        try:
                            await asyncio.to_thread(self._videos.upsert, video)
                        except Exception as exc:
                            failed += 1
                            self._console.log(
                                f"[yellow]Failed to upsert video {source_video.youtube_video_id}:[/yellow] {exc}"
                            )
                            continue
                        indexed += 1

                    try:
                        await asyncio.to_thread(self._channels.update_progress, channel_youtube_id, indexed)
                    except Exception as exc:
                        self._console.log(f"[yellow]Failed to update channel progress:[/yellow] {exc}")
                    self._emit(on_progress, IndexingStage.STORING, channel_youtube_id, page, indexed, expected_total)

                page_token = result.next_page_token
                if not page_token:
                    break

            # The row keeps this run's running total; stored_total also covers rows kept from earlier syncs.
            stored_total = await self._stored_total(channel.id, indexed)
            await asyncio.to_thread(
                self._channels.mark_complete, channel_youtube_id, indexed, datetime.now(timezone.utc)
            )
        except Exception as exc:
            self._console.log(f"[red]Indexing failed for channel {channel_youtube_id}:[/red] {exc}")
            try:
                await asyncio.to_thread(self._channels.set_status, channel_youtube_id, IndexStatus.FAILED)
            except Exception as status_exc:
                self._console.log(f"[red]Failed to mark channel {channel_youtube_id} as FAILED:[/red] {status_exc}")
            self._emit(on_progress, IndexingStage.FAILED, channel_youtube_id, page, indexed, None, str(exc))
            raise

        elapsed = time.perf_counter() - started
        self._console.log(
            f"[green]Indexed {indexed} videos for channel {channel_youtube_id} "
            f"in {elapsed:.2f}s ({page} pages, {failed} failures)[/green]"
        )
        self._emit(on_progress, IndexingStage.COMPLETE, channel_youtube_id, page, indexed, expected_total)
        return IndexingSummary(
            channel_id=channel_youtube_id,
            pages=page,
            indexed=indexed,
            failed_upserts=failed,
            elapsed_seconds=elapsed,
            stored_total=stored_total,
        )

    async def _stored_total(self, channel_id: Optional[UUID], fallback: int) -> int:
        """Count the videos stored for ``channel_id``, including rows kept from earlier runs."""

        try:
            stored = await asyncio.to_thread(self._videos.list_for_channel, channel_id)
        except Exception as exc:
            self._console.log(f"[yellow]Failed to count stored videos, using this run's total:[/yellow] {exc}")
            return fallback
        return max(len(stored), fallback)

    def _emit(
        self,
        callback: Optional[ProgressCallback],
        stage: IndexingStage,
        channel_id: str,
        page: int,
        indexed: int,
        expected_total: Optional[int],
        message: Optional[str] = None,
    ) -> None:
        if callback is None:
            return
        callback(
            IndexingProgress(
                stage=stage,
                channel_id=channel_id,
                page=page,
                indexed_count=indexed,
                expected_total=expected_total,
                message=message or _STAGE_MESSAGES[stage].format(page=page, indexed=indexed),
            )
        )


_STAGE_MESSAGES = {
    IndexingStage.FETCHING: "Fetching page {page}",
    IndexingStage.STORING: "Stored {indexed} videos",
    IndexingStage.COMPLETE: "Indexed {indexed} videos",
    IndexingStage.FAILED: "Indexing failed",
}


__all__ = ["ChannelIndexer", "IndexingSummary", "ProgressCallback"]
