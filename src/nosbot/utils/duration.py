"""Conversions between ISO-8601 durations, seconds, and display strings."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional, Union

_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)

_ONE_DECIMAL = Decimal("0.1")

ViewCount = Union[int, str]


def parse_duration_strict(text: str) -> Optional[int]:
    """Parse an ISO-8601 duration such as ``PT1H30M45S`` into seconds.

    Returns ``None`` when no component could be captured, so callers can tell
    an unparsed value apart from a genuine zero-length duration.
    """

    match = _DURATION_PATTERN.fullmatch(text.strip()) if text else None
    if match is None:
        return None

    parts = match.groupdict()
    if all(value is None for value in parts.values()):
        return None

    days = int(parts["days"] or 0)
    hours = int(parts["hours"] or 0)
    minutes = int(parts["minutes"] or 0)
    seconds = int(parts["seconds"] or 0)
    return days * 86_400 + hours * 3600 + minutes * 60 + seconds


def parse_duration(text: str) -> int:
    """Parse an ISO-8601 duration, returning ``0`` for malformed input."""

    parsed = parse_duration_strict(text)
    return parsed if parsed is not None else 0


def format_duration(seconds: int) -> str:
    """Render seconds as ``H:MM:SS`` (or ``M:SS`` below one hour)."""

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_view_count(count: ViewCount) -> str:
    """Render a view count with ``K``/``M`` suffixes and one decimal place."""

    value = int(count.strip()) if isinstance(count, str) else int(count)

    if value >= 1_000_000:
        return f"{_scaled(value, 1_000_000)}M"
    if value >= 1_000:
        return f"{_scaled(value, 1_000)}K"
    return str(value)


def _scaled(value: int, divisor: int) -> Decimal:
    # Decimal keeps integers beyond float precision exact before rounding.
    with localcontext() as context:
        context.prec = max(context.prec, len(str(value)) + 2)
        return (Decimal(value) / Decimal(divisor)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)


__all__ = [
    "format_duration",
    "format_view_count",
    "parse_duration",
    "parse_duration_strict",
]
