"""Pydantic models for playlist filters, stored playlists, and generator output."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from nosbot.models.base import NosbotBaseModel

MIN_FILTER_YEAR = 2005
MAX_FILTER_YEAR = 2030
MAX_TOPIC_PROMPT_LENGTH = 500


class PlaylistFilters(NosbotBaseModel):
    """User-supplied constraints applied when generating a playlist.

    Field names serialise to camelCase (``yearStart``, ``topicPrompt``) so stored filter
    payloads keep the shape clients send.
    """

    year_start: Optional[int] = Field(default=None, ge=MIN_FILTER_YEAR, le=MAX_FILTER_YEAR)
    year_end: Optional[int] = Field(default=None, ge=MIN_FILTER_YEAR, le=MAX_FILTER_YEAR)
    keywords: Optional[List[str]] = None
    min_duration: Optional[int] = Field(default=None, ge=0)
    max_duration: Optional[int] = Field(default=None, ge=0)
    deep_cuts: bool = False
    exclude_shorts: bool = False
    topic_prompt: Optional[str] = Field(default=None, max_length=MAX_TOPIC_PROMPT_LENGTH)

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("keywords")
    @classmethod
    def _drop_blank_keywords(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return [keyword.strip() for keyword in value if keyword.strip()]

    @property
    def topic(self) -> Optional[str]:
        """Return the trimmed topic prompt, or ``None`` when it is blank."""

        if self.topic_prompt is None:
            return None
        trimmed = self.topic_prompt.strip()
        return trimmed or None

    def without_topic_fields(self) -> "PlaylistFilters":
        """Return a copy keeping only the year and duration constraints used before topic ranking."""

        return self.model_copy(update={"keywords": None, "deep_cuts": False, "topic_prompt": None})

    def to_storage(self) -> Dict[str, Any]:
        """Serialise the filters for persistence alongside a generated playlist."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GeneratedPlaylist(NosbotBaseModel):
    """Domain model representing a row in the ``generated_playlists`` table."""

    id: Optional[UUID] = None
    video_ids: List[str] = Field(default_factory=list)
    filters: Dict[str, Any] = Field(default_factory=dict)
    watch_url: str
    user_id: str = Field(min_length=1)
    channel_id: UUID
    created_at: Optional[datetime] = None

    @field_validator("video_ids")
    @classmethod
    def _require_unique_ids(cls, value: List[str]) -> List[str]:
        if len(set(value)) != len(value):
            raise ValueError("video_ids must not contain duplicates")
        return value


class PlaylistVideo(NosbotBaseModel):
    """A single entry in a generated playlist response."""

    id: str
    title: str
    published_at: datetime
    duration: int = Field(ge=0)
    view_count: str
    thumbnail_url: Optional[str] = None


class PlaylistResult(NosbotBaseModel):
    """Ordered playlist returned by :class:`nosbot.services.generator.PlaylistGenerator`.

    ``shortfall`` is informational: topic mode may return fewer videos than requested when
    only a few are genuinely relevant.
    """

    playlist_id: str
    watch_url: str
    videos: List[PlaylistVideo] = Field(default_factory=list)
    ai_reasoning: Optional[str] = None
    requested_count: int = Field(ge=1)
    shortfall: bool = False


__all__ = [
    "GeneratedPlaylist",
    "MAX_FILTER_YEAR",
    "MAX_TOPIC_PROMPT_LENGTH",
    "MIN_FILTER_YEAR",
    "PlaylistFilters",
    "PlaylistResult",
    "PlaylistVideo",
]
