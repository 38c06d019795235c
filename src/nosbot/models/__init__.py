"""Domain models for channels, videos, playlists, and quota accounting."""

from nosbot.models.channel import Channel, ChannelInfo, ChannelSearchHit, IndexStatus
from nosbot.models.playlist import GeneratedPlaylist, PlaylistFilters, PlaylistResult, PlaylistVideo
from nosbot.models.quota import QuotaLogEntry
from nosbot.models.video import ChannelPage, SourceVideo, Video

__all__ = [
    "Channel",
    "ChannelInfo",
    "ChannelPage",
    "ChannelSearchHit",
    "GeneratedPlaylist",
    "IndexStatus",
    "PlaylistFilters",
    "PlaylistResult",
    "PlaylistVideo",
    "QuotaLogEntry",
    "SourceVideo",
    "Video",
]
