import httpx
import pytest

from conftest import CHANNEL_ID, UPLOADS_ID
from nosbot.config.settings import Settings
from nosbot.errors import NotFoundError, UnconfiguredError, UpstreamError
from nosbot.services.youtube import YouTubeClient

CHANNEL_PAYLOAD = {
    "items": [
        {
            "id": CHANNEL_ID,
            "snippet": {
                "title": "Retro Gamer",
                "customUrl": "@retrogamer",
                "thumbnails": {"default": {"url": "https://yt3.ggpht.com/retro-default.jpg"}},
            },
            "contentDetails": {"relatedPlaylists": {"uploads": UPLOADS_ID}},
            "statistics": {"videoCount": "321"},
        }
    ]
}

PLAYLIST_PAYLOAD = {
    "nextPageToken": "CAUQAA",
    "items": [
        {
            "snippet": {
                "title": "First upload",
                "description": "hello",
                "publishedAt": "2019-04-01T10:00:00Z",
                "resourceId": {"videoId": "vid00000001"},
                "thumbnails": {"medium": {"url": "https://i.ytimg.com/vi/vid00000001/mqdefault.jpg"}},
            }
        },
        {
            "snippet": {
                "title": "Second upload",
                "publishedAt": "2020-04-01T10:00:00Z",
                "resourceId": {"videoId": "vid00000002"},
            }
        },
    ],
}

VIDEOS_PAYLOAD = {
    "items": [
        {"id": "vid00000001", "contentDetails": {"duration": "PT1H2M3S"}, "statistics": {"viewCount": "98765432101"}},
        {"id": "vid00000002", "contentDetails": {"duration": "garbage"}, "statistics": {}},
    ]
}

SEARCH_PAYLOAD = {
    "items": [
        {
            "id": {"kind": "youtube#channel", "channelId": CHANNEL_ID},
            "snippet": {
                "channelId": CHANNEL_ID,
                "title": "Retro Gamer",
                "description": "Old games, new videos",
                "customUrl": "@retrogamer",
                "thumbnails": {"default": {"url": "https://yt3.ggpht.com/retro-default.jpg"}},
            },
        },
        {"id": {"kind": "youtube#channel", "channelId": "UCzyxwvutsrqponmlkjihgfe"}, "snippet": {"title": "Retro Clips"}},
        {"id": {"kind": "youtube#channel"}, "snippet": {"title": "No id"}},
    ]
}


class Recorder:
    def __init__(self):
        self.entries = []

    def __call__(self, endpoint, units):
        self.entries.append((endpoint, units))


def _client(handler, settings, console, **kwargs):
    return YouTubeClient(settings=settings, console=console, transport=httpx.MockTransport(handler), **kwargs)


def _routes(requests):
    def handler(request):
        requests.append(request)
        path = request.url.path.rsplit("/", 1)[-1]
        payload = {"channels": CHANNEL_PAYLOAD, "playlistItems": PLAYLIST_PAYLOAD, "videos": VIDEOS_PAYLOAD, "search": SEARCH_PAYLOAD}[path]
        return httpx.Response(200, json=payload)

    return handler


async def test_resolve_channel_by_handle(settings, console):
    requests = []
    client = _client(_routes(requests), settings, console)

    info = await client.resolve_channel("@retrogamer")
    await client.close()

    assert requests[0].url.path == "/youtube/v3/channels"
    assert requests[0].url.params["forHandle"] == "@retrogamer"
    assert requests[0].url.params["key"] == "test-youtube-key"
    assert info.youtube_id == CHANNEL_ID
    assert info.handle == "@retrogamer"
    assert info.upload_playlist_id == UPLOADS_ID
    assert info.total_video_count == 321
    assert info.thumbnail_url == "https://yt3.ggpht.com/retro-default.jpg"


async def test_resolve_channel_by_id_and_bare_handle(settings, console):
    requests = []
    client = _client(_routes(requests), settings, console)

    await client.resolve_channel(CHANNEL_ID)
    await client.resolve_channel("retrogamer")
    await client.close()

    assert requests[0].url.params["id"] == CHANNEL_ID
    assert "forHandle" not in requests[0].url.params
    assert requests[1].url.params["forHandle"] == "@retrogamer"


async def test_resolve_channel_without_items_raises_not_found(settings, console):
    client = _client(lambda request: httpx.Response(200, json={"items": []}), settings, console)

    with pytest.raises(NotFoundError):
        await client.resolve_channel("@missing")


async def test_error_status_raises_upstream_error(settings, console):
    client = _client(lambda request: httpx.Response(500, json={"error": {}}), settings, console)

    with pytest.raises(UpstreamError) as exc_info:
        await client.resolve_channel("@retrogamer")

    assert exc_info.value.status_code == 500


async def test_transport_failure_raises_upstream_error(settings, console):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler, settings, console)

    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_channel_page(UPLOADS_ID)

    assert exc_info.value.status_code is None


async def test_missing_api_key_raises_unconfigured(console):
    settings = Settings(DATABASE_URL="postgresql://nosbot@localhost/nosbot", YOUTUBE_API_KEY=None, _env_file=None)
    requests = []
    client = _client(_routes(requests), settings, console)

    with pytest.raises(UnconfiguredError):
        await client.resolve_channel("@retrogamer")

    assert requests == []


async def test_fetch_channel_page_merges_video_details(settings, console):
    requests = []
    client = _client(_routes(requests), settings, console)

    page = await client.fetch_channel_page(UPLOADS_ID, "CAQQAA")

    playlist_request, videos_request = requests
    assert playlist_request.url.params["playlistId"] == UPLOADS_ID
    assert playlist_request.url.params["pageToken"] == "CAQQAA"
    assert playlist_request.url.params["maxResults"] == "50"
    assert videos_request.url.params["id"] == "vid00000001,vid00000002"

    assert page.next_page_token == "CAUQAA"
    first, second = page.videos
    assert first.youtube_video_id == "vid00000001"
    assert first.duration == 3723
    assert first.view_count == 98765432101
    assert first.thumbnail_url == "https://i.ytimg.com/vi/vid00000001/mqdefault.jpg"
    assert first.published_at.year == 2019
    assert second.duration == 0
    assert second.view_count == 0
    assert second.description is None
    assert second.thumbnail_url is None


async def test_first_page_omits_page_token(settings, console):
    requests = []
    client = _client(_routes(requests), settings, console)

    await client.fetch_channel_page(UPLOADS_ID)

    assert "pageToken" not in requests[0].url.params


async def test_empty_playlist_page_skips_video_lookup(settings, console):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"items": []})

    page = await _client(handler, settings, console).fetch_channel_page(UPLOADS_ID)

    assert page.videos == []
    assert page.next_page_token is None
    assert len(requests) == 1


async def test_quota_is_recorded_per_call(settings, console):
    recorder = Recorder()
    client = _client(_routes([]), settings, console, quota_recorder=recorder)

    await client.resolve_channel("@retrogamer")
    await client.fetch_channel_page(UPLOADS_ID)

    assert recorder.entries == [("channels.list", 1), ("playlistItems.list", 1), ("videos.list", 1)]


async def test_quota_is_recorded_for_error_responses(settings, console):
    recorder = Recorder()
    client = _client(lambda request: httpx.Response(403), settings, console, quota_recorder=recorder)

    with pytest.raises(UpstreamError):
        await client.resolve_channel("@retrogamer")

    assert recorder.entries == [("channels.list", 1)]


async def test_failing_quota_recorder_does_not_break_requests(settings, console):
    def recorder(endpoint, units):
        raise RuntimeError("quota table missing")

    client = _client(_routes([]), settings, console, quota_recorder=recorder)

    info = await client.resolve_channel("@retrogamer")

    assert info.youtube_id == CHANNEL_ID


async def test_malformed_playlist_items_are_skipped_and_counted(settings, console):
    playlist = {
        "items": [
            PLAYLIST_PAYLOAD["items"][0],
            {"snippet": {"title": "No publish date", "resourceId": {"videoId": "vid00000003"}}},
            {"snippet": {"title": "No resource", "publishedAt": "2020-04-01T10:00:00Z"}},
            {"snippet": {"publishedAt": "yesterday", "resourceId": {"videoId": "vid00000004"}}},
        ]
    }
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.path.endswith("/playlistItems"):
            return httpx.Response(200, json=playlist)
        return httpx.Response(200, json=VIDEOS_PAYLOAD)

    page = await _client(handler, settings, console).fetch_channel_page(UPLOADS_ID)

    assert [video.youtube_video_id for video in page.videos] == ["vid00000001"]
    assert page.skipped == 3
    assert requests[1].url.params["id"] == "vid00000001,vid00000003,vid00000004"
    assert "Skipping malformed playlist item" in console.file.getvalue()


async def test_search_channels_maps_hits_and_records_quota(settings, console):
    requests = []
    recorder = Recorder()
    client = _client(_routes(requests), settings, console, quota_recorder=recorder)

    hits = await client.search_channels("  retro gamer ", limit=3)

    params = requests[0].url.params
    assert requests[0].url.path == "/youtube/v3/search"
    assert params["part"] == "snippet"
    assert params["q"] == "retro gamer"
    assert params["type"] == "channel"
    assert params["maxResults"] == "3"
    assert recorder.entries == [("search.list", 100)]

    first, second = hits
    assert first.youtube_id == CHANNEL_ID
    assert first.handle == "@retrogamer"
    assert first.thumbnail_url == "https://yt3.ggpht.com/retro-default.jpg"
    assert first.description == "Old games, new videos"
    assert second.youtube_id == "UCzyxwvutsrqponmlkjihgfe"
    assert second.handle is None
    assert second.thumbnail_url is None


async def test_search_channels_returns_nothing_on_upstream_error(settings, console):
    client = _client(lambda request: httpx.Response(500, json={"error": {}}), settings, console)

    assert await client.search_channels("retro") == []


async def test_blank_search_does_not_call_the_api(settings, console):
    requests = []
    client = _client(_routes(requests), settings, console)

    assert await client.search_channels("   ") == []
    assert requests == []
