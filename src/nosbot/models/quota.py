"""Pydantic model for YouTube API quota accounting."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from nosbot.models.base import NosbotBaseModel


class QuotaLogEntry(NosbotBaseModel):
    """Domain model representing a row in the ``quota_logs`` table."""

    id: Optional[UUID] = None
    endpoint: str = Field(min_length=1)
    units: int = Field(ge=0)
    created_at: Optional[datetime] = None


__all__ = ["QuotaLogEntry"]
