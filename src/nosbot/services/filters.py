"""Pure filtering and shuffling helpers applied to a channel's indexed videos."""

from __future__ import annotations

import math
import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TypeVar

from nosbot.models.playlist import PlaylistFilters
from nosbot.models.video import Video

SHORTS_MAX_SECONDS = 60
DEEP_CUT_FRACTION = 0.25

T = TypeVar("T")


def apply_filters(videos: Sequence[Video], filters: PlaylistFilters) -> List[Video]:
    """Return the videos satisfying every constraint in ``filters``.

    Filters are conjunctive and applied in a fixed order: year start, year end,
    keywords (OR across the list), minimum and maximum duration, shorts exclusion,
    then deep cuts. Surviving videos keep their input order and ``videos`` is not
    mutated.

    Parameters
    ----------
    videos:
        Candidate videos, typically a channel's full index.
    filters:
        User constraints; unset fields do not filter.

    Returns
    -------
    list[Video]
        A new list containing the matching videos.
    """

    result = list(videos)

    if filters.year_start is not None:
        start = datetime(filters.year_start, 1, 1, tzinfo=timezone.utc)
        result = [video for video in result if _as_utc(video.published_at) >= start]

    if filters.year_end is not None:
        end = datetime(filters.year_end, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        result = [video for video in result if _as_utc(video.published_at) <= end]

    if filters.keywords:
        lowered = [keyword.lower() for keyword in filters.keywords]
        result = [video for video in result if _matches_any(video, lowered)]

    if filters.min_duration:
        result = [video for video in result if video.duration >= filters.min_duration]

    if filters.max_duration:
        result = [video for video in result if video.duration <= filters.max_duration]

    if filters.exclude_shorts:
        result = [video for video in result if video.duration >= SHORTS_MAX_SECONDS]

    if filters.deep_cuts and result:
        ranked = sorted(video.view_count for video in result)
        threshold = ranked[math.ceil(len(ranked) * DEEP_CUT_FRACTION) - 1]
        result = [video for video in result if video.view_count <= threshold]

    return result


def shuffle_array(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""

    generator = rng or random.Random()
    result = list(items)
    for index in range(len(result) - 1, 0, -1):
        swap = generator.randint(0, index)
        result[index], result[swap] = result[swap], result[index]
    return result


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _matches_any(video: Video, keywords: Sequence[str]) -> bool:
    title = video.title.lower()
    description = (video.description or "").lower()
    return any(keyword in title or keyword in description for keyword in keywords)


__all__ = ["apply_filters", "shuffle_array", "SHORTS_MAX_SECONDS"]
