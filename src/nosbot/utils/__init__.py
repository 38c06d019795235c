"""Utility helpers shared across Nosbot modules."""

from nosbot.utils.duration import format_duration, format_view_count, parse_duration

__all__ = ["format_duration", "format_view_count", "parse_duration"]
