"""Lazily constructed services shared by CLI commands."""

from __future__ import annotations

import asyncio
from functools import cached_property
from typing import Awaitable, Callable, Optional, TypeVar

from rich.console import Console

from nosbot.config.settings import Settings, get_settings
from nosbot.db import ChannelStore, ConnectionFactory, PlaylistStore, QuotaStore, VideoStore
from nosbot.db.channel_repository import ChannelRepository
from nosbot.db.connection import close_pool, get_connection
from nosbot.db.playlist_repository import PlaylistRepository
from nosbot.db.quota_repository import QuotaRepository
from nosbot.db.video_repository import VideoRepository
from nosbot.services import SupportsClose
from nosbot.services.channels import ChannelService
from nosbot.services.completion import create_completion_provider
from nosbot.services.generator import PlaylistGenerator
from nosbot.services.indexer import ChannelIndexer
from nosbot.services.quota import QuotaTracker
from nosbot.services.topic_selection import TopicSelector
from nosbot.services.youtube import VideoSource, YouTubeClient
from nosbot.utils.validation import is_channel_id

T = TypeVar("T")


class ServiceRegistry:
    """Build each service on first use; any piece can be supplied up front instead."""

    def __init__(
        self,
        console: Console,
        *,
        settings: Optional[Settings] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        channel_store: Optional[ChannelStore] = None,
        video_store: Optional[VideoStore] = None,
        playlist_store: Optional[PlaylistStore] = None,
        quota_store: Optional[QuotaStore] = None,
        video_source: Optional[VideoSource] = None,
        topic_selector: Optional[TopicSelector] = None,
    ) -> None:
        self.console = console
        self._settings = settings
        self._connection_factory = connection_factory
        self._channel_store = channel_store
        self._video_store = video_store
        self._playlist_store = playlist_store
        self._quota_store = quota_store
        self._video_source = video_source
        self._topic_selector = topic_selector
        self._youtube_client: Optional[SupportsClose] = None

    @cached_property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @cached_property
    def connection_factory(self) -> ConnectionFactory:
        return self._connection_factory or get_connection

    @cached_property
    def channel_store(self) -> ChannelStore:
        return self._channel_store or ChannelRepository(self.connection_factory)

    @cached_property
    def video_store(self) -> VideoStore:
        return self._video_store or VideoRepository(self.connection_factory)

    @cached_property
    def playlist_store(self) -> PlaylistStore:
        return self._playlist_store or PlaylistRepository(self.connection_factory)

    @cached_property
    def quota_store(self) -> QuotaStore:
        return self._quota_store or QuotaRepository(self.connection_factory)

    @cached_property
    def quota_tracker(self) -> QuotaTracker:
        return QuotaTracker(self.quota_store, settings=self.settings, console=self.console)

    @cached_property
    def video_source(self) -> VideoSource:
        if self._video_source is not None:
            return self._video_source
        client = YouTubeClient(
            settings=self.settings,
            console=self.console,
            quota_recorder=self.quota_tracker.record,
        )
        self._youtube_client = client
        return client

    @cached_property
    def indexer(self) -> ChannelIndexer:
        return ChannelIndexer(
            video_source=self.video_source,
            channel_store=self.channel_store,
            video_store=self.video_store,
            console=self.console,
        )

    @cached_property
    def channel_service(self) -> ChannelService:
        return ChannelService(
            video_source=self.video_source,
            channel_store=self.channel_store,
            indexer=self.indexer,
            settings=self.settings,
            console=self.console,
        )

    @cached_property
    def topic_selector(self) -> TopicSelector:
        if self._topic_selector is not None:
            return self._topic_selector
        provider = create_completion_provider(self.settings, console=self.console)
        return TopicSelector(completion_provider=provider, console=self.console)

    @cached_property
    def playlist_generator(self) -> PlaylistGenerator:
        return PlaylistGenerator(
            channel_store=self.channel_store,
            video_store=self.video_store,
            playlist_store=self.playlist_store,
            topic_selector=self.topic_selector,
            console=self.console,
        )

    async def resolve_channel_id(self, query: str) -> str:
        """Return a ``UC…`` id, looking up handles and URLs through the channel service."""

        candidate = query.strip()
        if is_channel_id(candidate):
            return candidate
        lookup = await self.channel_service.lookup_channel(candidate)
        return lookup.channel.youtube_id

    def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run a coroutine to completion, then release network and database resources."""

        async def _runner() -> T:
            try:
                return await factory()
            finally:
                await self.aclose()

        return asyncio.run(_runner())

    async def aclose(self) -> None:
        if self._youtube_client is not None:
            await self._youtube_client.close()
            self._youtube_client = None
            for name in ("video_source", "indexer", "channel_service"):
                self.__dict__.pop(name, None)
        if self._connection_factory is None and "connection_factory" in self.__dict__:
            await asyncio.to_thread(close_pool)


__all__ = ["ServiceRegistry"]
