"""YouTube Data API v3 client used as the indexer's video source."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

import httpx
from pydantic import ValidationError
from rich.console import Console

from nosbot.config.settings import Settings, get_settings
from nosbot.errors import NotFoundError, UnconfiguredError, UpstreamError
from nosbot.models.channel import ChannelInfo, ChannelSearchHit
from nosbot.models.video import ChannelPage, SourceVideo
from nosbot.utils.duration import parse_duration_strict
from nosbot.utils.validation import is_channel_id

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
MAX_PAGE_SIZE = 50
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_TIMEOUT_SECONDS = 30.0

QuotaRecorder = Callable[[str, int], None]


class VideoSource(Protocol):
    """Upstream catalog able to resolve channels and page through their uploads."""

    async def resolve_channel(self, query: str) -> ChannelInfo:
        """Return metadata for a ``@handle`` or ``UC…`` channel id."""

    async def fetch_channel_page(self, upload_playlist_id: str, page_token: Optional[str] = None) -> ChannelPage:
        """Return one page of uploads and the continuation token, if any."""

    async def search_channels(self, query: str, limit: int = 5) -> List[ChannelSearchHit]:
        """Return up to ``limit`` channels matching free-text ``query``."""


class YouTubeClient:
    """Thin async wrapper around the channels, playlistItems, and videos endpoints."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        quota_recorder: Optional[QuotaRecorder] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._quota_recorder = quota_recorder
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=YOUTUBE_API_BASE,
            timeout=httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
            transport=transport,
        )
        self._page_size = min(int(self._settings.index_page_size), MAX_PAGE_SIZE)

    async def resolve_channel(self, query: str) -> ChannelInfo:
        """Resolve a channel handle or id to its metadata.

        Parameters
        ----------
        query:
            ``@handle``, bare handle, or canonical ``UC…`` channel id.

        Returns
        -------
        ChannelInfo
            Title, handle, thumbnail, uploads playlist id, and declared video count.

        Raises
        ------
        UnconfiguredError
            If no YouTube API key is configured.
        NotFoundError
            If the API returns no channel for the query.
        UpstreamError
            If the API responds with a non-success status.
        """

        params: Dict[str, Any] = {"part": "snippet,contentDetails,statistics"}
        if query.startswith("@"):
            params["forHandle"] = query
        elif is_channel_id(query):
            params["id"] = query
        else:
            params["forHandle"] = f"@{query}"

        data = await self._get("/channels", "channels.list", params)
        items = data.get("items") or []
        if not items:
            raise NotFoundError(f"Channel not found: {query}")

        channel = items[0]
        snippet = channel.get("snippet", {})
        statistics = channel.get("statistics", {})
        info = ChannelInfo(
            youtube_id=channel["id"],
            title=snippet.get("title", ""),
            handle=snippet.get("customUrl") or None,
            thumbnail_url=_thumbnail(snippet, "default"),
            upload_playlist_id=channel["contentDetails"]["relatedPlaylists"]["uploads"],
            total_video_count=int(statistics.get("videoCount") or 0),
        )
        self._console.log(f"Resolved channel {info.title} ({info.youtube_id}, {info.total_video_count} videos)")
        return info

    async def fetch_channel_page(self, upload_playlist_id: str, page_token: Optional[str] = None) -> ChannelPage:
        """Fetch one page of a channel's uploads with durations and view counts attached."""

        params: Dict[str, Any] = {
            "part": "snippet",
            "playlistId": upload_playlist_id,
            "maxResults": self._page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self._get("/playlistItems", "playlistItems.list", params)
        items = data.get("items") or []
        video_ids = [video_id for video_id in map(_playlist_video_id, items) if video_id]
        details = await self._video_details(video_ids)

        videos: List[SourceVideo] = []
        skipped = 0
        for item in items:
            try:
                videos.append(_source_video(item, details))
            except (KeyError, TypeError, ValidationError) as exc:
                skipped += 1
                self._console.log(
                    f"[yellow]Skipping malformed playlist item {_playlist_video_id(item) or '?'}:[/yellow] {exc!r}"
                )

        return ChannelPage(videos=videos, next_page_token=data.get("nextPageToken") or None, skipped=skipped)

    async def search_channels(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[ChannelSearchHit]:
        """Search channels by free text.

        ``search.list`` costs 100 quota units per call, so lookups by handle or id should
        prefer :meth:`resolve_channel`.

        Parameters
        ----------
        query:
            Free-text search terms; blank input returns no hits without calling the API.
        limit:
            Maximum number of hits, 1 to 50.

        Returns
        -------
        list[ChannelSearchHit]
            Matching channels in API order, or an empty list when the API call fails.

        Raises
        ------
        UnconfiguredError
            If no YouTube API key is configured.
        """

        terms = query.strip()
        if not terms:
            return []

        params = {
            "part": "snippet",
            "q": terms,
            "type": "channel",
            "maxResults": max(1, min(limit, MAX_PAGE_SIZE)),
        }
        try:
            data = await self._get("/search", "search.list", params)
        except UpstreamError as exc:
            self._console.log(f"[yellow]Channel search failed for {terms!r}:[/yellow] {exc}")
            return []

        hits: List[ChannelSearchHit] = []
        for item in data.get("items") or []:
            snippet = item.get("snippet") or {}
            channel_id = snippet.get("channelId") or (item.get("id") or {}).get("channelId")
            if not channel_id:
                continue
            hits.append(
                ChannelSearchHit(
                    youtube_id=channel_id,
                    title=snippet.get("title") or "",
                    handle=snippet.get("customUrl") or None,
                    thumbnail_url=_thumbnail(snippet, "default"),
                    description=snippet.get("description") or "",
                )
            )
        return hits

    async def close(self) -> None:
        """Release the underlying HTTP client if this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    async def _video_details(self, video_ids: List[str]) -> Dict[str, tuple[int, int]]:
        if not video_ids:
            return {}

        data = await self._get(
            "/videos",
            "videos.list",
            {"part": "contentDetails,statistics", "id": ",".join(video_ids)},
        )
        details: Dict[str, tuple[int, int]] = {}
        for item in data.get("items") or []:
            raw_duration = item.get("contentDetails", {}).get("duration", "")
            seconds = parse_duration_strict(raw_duration)
            if seconds is None:
                self._console.log(f"[yellow]Unparsed duration {raw_duration!r} for {item['id']}; using 0[/yellow]")
                seconds = 0
            views = int(item.get("statistics", {}).get("viewCount") or 0)
            details[item["id"]] = (seconds, views)
        return details

    async def _get(self, path: str, endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        api_key = self._api_key()
        try:
            response = await self._client.get(path, params={**params, "key": api_key})
        except httpx.HTTPError as exc:
            raise UpstreamError(f"YouTube API request failed: {exc}") from exc

        await self._record_quota(endpoint)

        if response.is_error:
            self._console.log(f"[red]YouTube API error {response.status_code} on {endpoint}[/red]")
            raise UpstreamError(f"YouTube API error: {response.status_code}", status_code=response.status_code)
        return response.json()

    async def _record_quota(self, endpoint: str) -> None:
        if self._quota_recorder is None:
            return
        units = self._settings.quota_costs.cost_for(endpoint)
        try:
            await asyncio.to_thread(self._quota_recorder, endpoint, units)
        except Exception as exc:
            self._console.log(f"[yellow]Failed to record quota for {endpoint}:[/yellow] {exc}")

    def _api_key(self) -> str:
        if self._settings.youtube_api_key is None:
            raise UnconfiguredError("YouTube API key not configured. Set YOUTUBE_API_KEY.")
        return self._settings.youtube_api_key.get_secret_value()


def _thumbnail(snippet: Mapping[str, Any], size: str) -> Optional[str]:
    return (snippet.get("thumbnails") or {}).get(size, {}).get("url")


def _playlist_video_id(item: Mapping[str, Any]) -> Optional[str]:
    resource = (item.get("snippet") or {}).get("resourceId") or {}
    return resource.get("videoId")


def _source_video(item: Mapping[str, Any], details: Mapping[str, tuple[int, int]]) -> SourceVideo:
    snippet = item["snippet"]
    video_id = snippet["resourceId"]["videoId"]
    duration, view_count = details.get(video_id, (0, 0))
    return SourceVideo(
        youtube_video_id=video_id,
        title=snippet.get("title", ""),
        description=snippet.get("description"),
        thumbnail_url=_thumbnail(snippet, "medium"),
        published_at=snippet["publishedAt"],
        duration=duration,
        view_count=view_count,
    )


__all__ = ["QuotaRecorder", "VideoSource", "YouTubeClient", "YOUTUBE_API_BASE"]
