import random
import re
from datetime import datetime, timezone

import pytest

from conftest import CHANNEL_ID, make_channel, make_video
from nosbot.errors import EmptyResultError, InputValidationError, NotFoundError, NotReadyError
from nosbot.models.channel import IndexStatus
from nosbot.models.playlist import PlaylistFilters
from nosbot.services import generator as generator_module
from nosbot.services.generator import PlaylistGenerator, build_watch_url
from nosbot.services.topic_selection import TopicSelection, TopicSelector


class RecordingSelector:
    def __init__(self, selection):
        self.selection = selection
        self.calls = []

    async def select_videos_by_topic(self, videos, topic_prompt, max_videos):
        self.calls.append(([video.youtube_video_id for video in videos], topic_prompt, max_videos))
        return self.selection


def _generator(channel_store, video_store, playlist_store, console, selector=None, rng=None):
    return PlaylistGenerator(
        channel_store=channel_store,
        video_store=video_store,
        playlist_store=playlist_store,
        topic_selector=selector or TopicSelector(console=console),
        console=console,
        rng=rng,
    )


def _seed_channel(channel_store, video_store, videos, status=IndexStatus.COMPLETE):
    stored = channel_store.add(make_channel(status=status))
    for video in videos:
        video_store.upsert(video.model_copy(update={"channel_id": stored.id}))
    return stored


def _year(year):
    return datetime(year, 3, 1, tzinfo=timezone.utc)


def _mixed_catalog():
    return [
        make_video("mc2015", title="Minecraft basics", published=_year(2015), duration=600),
        make_video("mc2017", title="Minecraft in 30 seconds", published=_year(2017), duration=30),
        make_video("zelda2019", title="Zelda any% run", published=_year(2019), duration=600),
        make_video("mc2021", title="Minecraft update tour", published=_year(2021), duration=600),
        make_video("portal2022", title="Portal commentary", published=_year(2022), duration=900),
    ]


def test_watch_url_joins_ids_in_order():
    assert build_watch_url(["a", "b", "c"]) == "https://www.youtube.com/watch_videos?video_ids=a,b,c"


async def test_filters_combine_to_a_single_deterministic_match(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())
    filters = PlaylistFilters(year_end=2020, keywords=["minecraft"], exclude_shorts=True)

    result = await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
        CHANNEL_ID, filters, count=10, shuffle=False
    )

    assert [video.id for video in result.videos] == ["mc2015"]
    assert result.watch_url == "https://www.youtube.com/watch_videos?video_ids=mc2015"
    assert result.videos[0].view_count == "1000"
    assert result.ai_reasoning is None
    assert result.shortfall is False


async def test_anonymous_playlists_get_temporary_ids_and_are_not_stored(
    channel_store, video_store, playlist_store, console
):
    _seed_channel(channel_store, video_store, _mixed_catalog())

    result = await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
        CHANNEL_ID, PlaylistFilters(), count=3
    )

    assert re.fullmatch(r"temp_\d+", result.playlist_id)
    assert len(result.videos) == 3
    assert playlist_store.playlists == []


async def test_playlists_with_a_user_are_persisted(channel_store, video_store, playlist_store, console):
    stored_channel = _seed_channel(channel_store, video_store, _mixed_catalog())
    filters = PlaylistFilters(keywords=["minecraft"])

    result = await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
        CHANNEL_ID, filters, count=5, shuffle=False, user_id="user-1"
    )

    assert len(playlist_store.playlists) == 1
    saved = playlist_store.playlists[0]
    assert result.playlist_id == str(saved.id)
    assert saved.user_id == "user-1"
    assert saved.channel_id == stored_channel.id
    assert saved.video_ids == [video.id for video in result.videos]
    assert saved.watch_url == result.watch_url
    assert saved.filters == {"keywords": ["minecraft"], "deepCuts": False, "excludeShorts": False}

    history = await _generator(channel_store, video_store, playlist_store, console).list_history("user-1")
    assert [playlist.id for playlist in history] == [saved.id]


async def test_unshuffled_playlists_keep_newest_first_order(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())

    result = await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
        CHANNEL_ID, PlaylistFilters(), count=2, shuffle=False
    )

    assert [video.id for video in result.videos] == ["portal2022", "mc2021"]


async def test_shuffle_uses_injected_rng(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())

    first = await _generator(
        channel_store, video_store, playlist_store, console, rng=random.Random(9)
    ).generate_playlist(CHANNEL_ID, PlaylistFilters(), count=5)
    second = await _generator(
        channel_store, video_store, playlist_store, console, rng=random.Random(9)
    ).generate_playlist(CHANNEL_ID, PlaylistFilters(), count=5)

    assert [video.id for video in first.videos] == [video.id for video in second.videos]
    assert sorted(video.id for video in first.videos) == sorted(video.youtube_video_id for video in _mixed_catalog())


@pytest.mark.parametrize("count", [0, 26, -3])
async def test_count_must_be_between_one_and_twenty_five(channel_store, video_store, playlist_store, console, count):
    with pytest.raises(InputValidationError):
        await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
            CHANNEL_ID, PlaylistFilters(), count=count
        )


async def test_unknown_channel_raises_not_found(channel_store, video_store, playlist_store, console):
    with pytest.raises(NotFoundError):
        await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
            CHANNEL_ID, PlaylistFilters()
        )


@pytest.mark.parametrize("status", [IndexStatus.PENDING, IndexStatus.IN_PROGRESS, IndexStatus.FAILED])
async def test_incomplete_channel_raises_not_ready_before_filtering(
    channel_store, video_store, playlist_store, console, monkeypatch, status
):
    _seed_channel(channel_store, video_store, _mixed_catalog(), status=status)

    def _unexpected(*args, **kwargs):
        raise AssertionError("filters must not run for an unindexed channel")

    monkeypatch.setattr(generator_module, "apply_filters", _unexpected)

    with pytest.raises(NotReadyError):
        await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
            CHANNEL_ID, PlaylistFilters()
        )


async def test_channel_without_videos_raises_empty(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, [])

    with pytest.raises(EmptyResultError):
        await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
            CHANNEL_ID, PlaylistFilters()
        )


async def test_filters_matching_nothing_raise_empty(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())

    with pytest.raises(EmptyResultError):
        await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
            CHANNEL_ID, PlaylistFilters(keywords=["tetris"])
        )


async def test_topic_mode_prefilters_then_keeps_selector_order(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())
    selector = RecordingSelector(
        TopicSelection(selected_video_ids=["zelda2019", "mc2015"], reasoning="Two fit", strategy="ai")
    )
    filters = PlaylistFilters(year_end=2020, exclude_shorts=True, keywords=["portal"], topic_prompt="  adventure ")

    result = await _generator(channel_store, video_store, playlist_store, console, selector).generate_playlist(
        CHANNEL_ID, filters, count=5
    )

    candidates, topic, max_videos = selector.calls[0]
    assert sorted(candidates) == ["mc2015", "zelda2019"]
    assert topic == "adventure"
    assert max_videos == 5
    assert [video.id for video in result.videos] == ["zelda2019", "mc2015"]
    assert result.ai_reasoning == "Two fit"
    assert result.shortfall is True
    assert result.requested_count == 5


async def test_topic_mode_with_no_prefilter_matches_raises_empty(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())
    selector = RecordingSelector(TopicSelection())

    with pytest.raises(EmptyResultError):
        await _generator(channel_store, video_store, playlist_store, console, selector).generate_playlist(
            CHANNEL_ID, PlaylistFilters(year_start=2030, topic_prompt="anything")
        )

    assert selector.calls == []


async def test_blank_topic_uses_traditional_filtering(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())
    selector = RecordingSelector(TopicSelection())

    result = await _generator(channel_store, video_store, playlist_store, console, selector).generate_playlist(
        CHANNEL_ID, PlaylistFilters(topic_prompt="   "), count=2, shuffle=False
    )

    assert selector.calls == []
    assert len(result.videos) == 2


async def test_topic_mode_with_keyword_fallback(channel_store, video_store, playlist_store, console):
    _seed_channel(channel_store, video_store, _mixed_catalog())

    result = await _generator(channel_store, video_store, playlist_store, console).generate_playlist(
        CHANNEL_ID, PlaylistFilters(topic_prompt="minecraft"), count=10
    )

    assert {video.id for video in result.videos} == {"mc2015", "mc2017", "mc2021"}
    assert result.ai_reasoning == "Matched 3 videos using keywords: minecraft"
    assert result.shortfall is True
