"""Topic-driven video selection: AI ranking with a deterministic keyword fallback."""

from __future__ import annotations

import json
import random
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence, Set, TypedDict

from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console

from nosbot.errors import InputValidationError
from nosbot.models.video import Video
from nosbot.services.completion import CompletionProvider

MAX_AI_CANDIDATES = 200
MAX_DESCRIPTION_CHARS = 150
MIN_TOKEN_LENGTH = 3
TITLE_HIT_SCORE = 3
DESCRIPTION_HIT_SCORE = 1
RANDOM_FALLBACK_REASONING = "No keyword matches found, returning random selection"

_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


@dataclass(slots=True)
class TopicSelection:
    """Ordered video ids chosen for a topic, plus how they were chosen."""

    selected_video_ids: List[str] = field(default_factory=list)
    reasoning: Optional[str] = None
    strategy: str = "keyword"


class SelectionStrategy(Protocol):
    """A way of picking at most ``max_videos`` ids relevant to a topic."""

    name: str

    async def select(
        self,
        videos: Sequence[Video],
        topic_prompt: str,
        max_videos: int,
    ) -> Optional[TopicSelection]:
        """Return a selection, or ``None`` to signal that the next strategy should run."""


class _RankingResponse(BaseModel):
    """Loose shape of the model's JSON answer; unknown keys are ignored."""

    selected_ids: List[Any] = Field(default_factory=list, alias="selectedIds")
    reasoning: Optional[Any] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def parse_ranking_response(text: str, known_ids: Set[str], max_videos: int) -> Optional[TopicSelection]:
    """Validate raw model output against the ids actually offered.

    The first ``{...}`` block is parsed; ids that are not strings, not in ``known_ids``,
    or repeated are dropped, and the remainder is truncated to ``max_videos``.

    Returns
    -------
    TopicSelection | None
        ``None`` when the text holds no parsable object or no usable id survives.
    """

    match = _JSON_OBJECT_PATTERN.search(text or "")
    if match is None:
        return None

    try:
        parsed = _RankingResponse.model_validate_json(match.group(0))
    except ValidationError:
        return None

    selected: List[str] = []
    for candidate in parsed.selected_ids:
        if isinstance(candidate, str) and candidate in known_ids and candidate not in selected:
            selected.append(candidate)

    if not selected:
        return None

    reasoning = None if parsed.reasoning is None else str(parsed.reasoning)
    return TopicSelection(selected_video_ids=selected[:max_videos], reasoning=reasoning, strategy="ai")


class AIRanking:
    """Ask a generative model to rank the candidates against the topic."""

    name = "ai"

    def __init__(self, provider: CompletionProvider, *, console: Optional[Console] = None) -> None:
        self._provider = provider
        self._console = console or Console()

    async def select(
        self,
        videos: Sequence[Video],
        topic_prompt: str,
        max_videos: int,
    ) -> Optional[TopicSelection]:
        prompt = build_ranking_prompt(videos, topic_prompt, max_videos)
        try:
            text = await self._provider.complete(prompt)
        except Exception as exc:
            self._console.log(f"[yellow]AI ranking failed, falling back:[/yellow] {exc}")
            return None

        known_ids = {video.youtube_video_id for video in videos}
        selection = parse_ranking_response(text, known_ids, max_videos)
        if selection is None:
            self._console.log("[yellow]AI ranking returned no usable ids, falling back[/yellow]")
        return selection


class KeywordScoring:
    """Score titles and descriptions against prompt tokens."""

    name = "keyword"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    async def select(
        self,
        videos: Sequence[Video],
        topic_prompt: str,
        max_videos: int,
    ) -> TopicSelection:
        tokens = [token for token in topic_prompt.lower().split() if len(token) >= MIN_TOKEN_LENGTH]

        scored = [(self._score(video, tokens), video) for video in videos]
        ranked = sorted(
            (item for item in scored if item[0] > 0),
            key=lambda item: (-item[0], -item[1].view_count),
        )
        selected = [video.youtube_video_id for _, video in ranked[:max_videos]]

        if not selected:
            sample = self._rng.sample(list(videos), min(max_videos, len(videos)))
            return TopicSelection(
                selected_video_ids=[video.youtube_video_id for video in sample],
                reasoning=RANDOM_FALLBACK_REASONING,
                strategy="random",
            )

        return TopicSelection(
            selected_video_ids=selected,
            reasoning=f"Matched {len(selected)} videos using keywords: {', '.join(tokens)}",
            strategy=self.name,
        )

    @staticmethod
    def _score(video: Video, tokens: Sequence[str]) -> int:
        title = video.title.lower()
        description = (video.description or "").lower()
        score = 0
        for token in tokens:
            if token in title:
                score += TITLE_HIT_SCORE
            if token in description:
                score += DESCRIPTION_HIT_SCORE
        return score


def build_ranking_prompt(videos: Sequence[Video], topic_prompt: str, max_videos: int) -> str:
    """Compose the ranking request sent to the model."""

    summaries = [
        {
            "idx": index,
            "id": video.youtube_video_id,
            "title": video.title,
            "desc": (video.description or "")[:MAX_DESCRIPTION_CHARS],
            "year": video.published_at.year,
            "views": video.view_count,
        }
        for index, video in enumerate(videos[:MAX_AI_CANDIDATES])
    ]

    return (
        f'Listener request: "{topic_prompt}"\n\n'
        "Videos (JSON array with idx, id, title, desc, year, views):\n"
        f"{json.dumps(summaries, separators=(',', ':'))}\n\n"
        "Instructions:\n"
        "1. Work out the channel's dominant theme from this sample.\n"
        "2. Weigh the request against that theme. Specific qualifiers in the request "
        "(a place, a format, a person) matter more than general overlap with the theme.\n"
        "3. Return only videos that genuinely match. If only two match, return two; never "
        "pad the list with unrelated videos.\n\n"
        'Respond with only a JSON object: {"selectedIds": ["id1", "id2"], "reasoning": "..."}\n'
        f"Select at most {max_videos} videos."
    )


class SelectionState(TypedDict, total=False):
    """Workflow state propagated through the selection graph."""

    videos: Sequence[Video]
    topic_prompt: str
    max_videos: int
    selection: Optional[TopicSelection]
    error: Optional[str]


class TopicSelector:
    """Pick the videos most relevant to a free-text topic.

    AI ranking runs first when a completion provider is configured; an unconfigured
    provider, a failing call, or an unusable answer routes to keyword scoring.
    """

    def __init__(
        self,
        *,
        completion_provider: Optional[CompletionProvider] = None,
        console: Optional[Console] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._console = console or Console()
        self._ai = AIRanking(completion_provider, console=self._console) if completion_provider else None
        self._keywords = KeywordScoring(rng)
        self._workflow = self._build_workflow()

    async def select_videos_by_topic(
        self,
        videos: Sequence[Video],
        topic_prompt: str,
        max_videos: int,
    ) -> TopicSelection:
        """Select up to ``max_videos`` ids relevant to ``topic_prompt``.

        Parameters
        ----------
        videos:
            Candidate videos; only the first 200 are shown to the model.
        topic_prompt:
            Free-text description of what the listener wants.
        max_videos:
            Upper bound on the number of ids returned.

        Returns
        -------
        TopicSelection
            Unique ids drawn from ``videos``, in relevance order, with the reasoning and
            the strategy that produced them.

        Raises
        ------
        InputValidationError
            If ``max_videos`` is less than one.
        """

        if max_videos < 1:
            raise InputValidationError("max_videos must be at least 1.")

        state: SelectionState = {
            "videos": list(videos),
            "topic_prompt": topic_prompt.strip(),
            "max_videos": max_videos,
            "selection": None,
            "error": None,
        }
        final_state = await self._workflow.ainvoke(state)
        selection: TopicSelection = final_state["selection"]
        self._console.log(
            f"Topic selection via {selection.strategy}: {len(selection.selected_video_ids)} videos "
            f"({selection.reasoning or 'no reasoning'})"
        )
        return selection

    def _build_workflow(self) -> object:
        graph = StateGraph(SelectionState)
        graph.add_node("ai_ranking", self._ai_ranking_node)
        graph.add_node("keyword_scoring", self._keyword_scoring_node)
        graph.add_edge(START, "ai_ranking")
        graph.add_conditional_edges(
            "ai_ranking",
            self._route_post_ranking,
            {
                "complete": END,
                "fallback": "keyword_scoring",
            },
        )
        graph.add_edge("keyword_scoring", END)
        return graph.compile()

    async def _ai_ranking_node(self, state: SelectionState) -> SelectionState:
        if self._ai is None:
            return {"selection": None, "error": "unconfigured"}
        if not state["videos"]:
            return {"selection": None, "error": "no candidates"}

        selection = await self._ai.select(state["videos"], state["topic_prompt"], state["max_videos"])
        if selection is None:
            return {"selection": None, "error": "unusable response"}
        return {"selection": selection, "error": None}

    async def _keyword_scoring_node(self, state: SelectionState) -> SelectionState:
        selection = await self._keywords.select(state["videos"], state["topic_prompt"], state["max_videos"])
        return {"selection": selection}

    def _route_post_ranking(self, state: SelectionState) -> str:
        if state.get("selection") is not None:
            return "complete"
        return "fallback"


__all__ = [
    "AIRanking",
    "KeywordScoring",
    "SelectionStrategy",
    "TopicSelection",
    "TopicSelector",
    "build_ranking_prompt",
    "parse_ranking_response",
]
