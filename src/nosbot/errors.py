"""Error taxonomy shared by the curation pipeline."""

from __future__ import annotations

from typing import Optional


class NosbotError(RuntimeError):
    """Base exception for all user-facing pipeline failures."""


class NotFoundError(NosbotError):
    """Raised when a channel or video cannot be located."""


class NotReadyError(NosbotError):
    """Raised when a channel has not finished indexing."""


class EmptyResultError(NosbotError):
    """Raised when no videos survive filtering or a channel has no videos."""


class UpstreamError(NosbotError):
    """Raised when an external API (catalog or AI provider) fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InputValidationError(NosbotError):
    """Raised for malformed filter, topic, or count input."""


class UnconfiguredError(NosbotError):
    """Raised when a credential required by an external dependency is missing."""


__all__ = [
    "EmptyResultError",
    "InputValidationError",
    "NosbotError",
    "NotFoundError",
    "NotReadyError",
    "UnconfiguredError",
    "UpstreamError",
]
