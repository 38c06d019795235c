"""Progress tracking types shared across CLI and services."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class IndexingStage(str, Enum):
    """Lifecycle stages reported while indexing a channel."""

    FETCHING = "fetching"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"


class IndexingProgress(BaseModel):
    """Structured progress payload for UI rendering and logging."""

    stage: IndexingStage
    channel_id: str
    page: int = Field(ge=0)
    indexed_count: int = Field(ge=0)
    expected_total: Optional[int] = Field(default=None, ge=0)
    message: str

    model_config = ConfigDict(extra="forbid")

    @property
    def percent(self) -> Optional[int]:
        """Return completion percentage when the declared total is known."""

        if not self.expected_total:
            return None
        return max(0, min(100, int(self.indexed_count * 100 / self.expected_total)))


__all__ = ["IndexingProgress", "IndexingStage"]
