"""Shared base model definitions for Nosbot domain objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class NosbotBaseModel(BaseModel):
    """Base model configured for Nosbot-wide defaults."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


__all__ = ["NosbotBaseModel"]
