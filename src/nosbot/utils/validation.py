"""Validation helpers for YouTube channel queries and identifiers."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from nosbot.errors import InputValidationError


class InvalidChannelQueryError(InputValidationError):
    """Raised when a provided value cannot identify a YouTube channel."""


_CHANNEL_ID_PATTERN = re.compile(r"^UC[0-9A-Za-z_-]{22}$")
_HANDLE_PATTERN = re.compile(r"^@?[0-9A-Za-z_.\-]{3,100}$")


def is_channel_id(value: str) -> bool:
    """Return ``True`` when ``value`` looks like a canonical ``UC…`` channel id."""

    return bool(_CHANNEL_ID_PATTERN.fullmatch(value))


def normalize_channel_query(query: str) -> str:
    """Reduce a handle, channel id, or channel URL to ``@handle`` or ``UC…`` form."""

    stripped = query.strip()
    if not stripped:
        raise InvalidChannelQueryError("Channel query must not be empty.")

    if is_channel_id(stripped):
        return stripped

    parsed = urlparse(stripped if "://" in stripped else f"https://{stripped}")
    if parsed.netloc.endswith("youtube.com"):
        segments = [segment for segment in parsed.path.split("/") if segment]
        if segments and segments[0].startswith("@"):
            return _as_handle(segments[0])
        if len(segments) >= 2 and segments[0] == "channel" and is_channel_id(segments[1]):
            return segments[1]
        if len(segments) >= 2 and segments[0] in {"c", "user"}:
            return _as_handle(segments[1])
        raise InvalidChannelQueryError(f"Unsupported YouTube channel URL: {query!r}")

    return _as_handle(stripped)


def _as_handle(value: str) -> str:
    if not _HANDLE_PATTERN.fullmatch(value):
        raise InvalidChannelQueryError(f"Invalid YouTube channel handle: {value!r}")
    return value if value.startswith("@") else f"@{value}"


__all__ = ["InvalidChannelQueryError", "is_channel_id", "normalize_channel_query"]
