"""Daily YouTube Data API quota accounting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console

from nosbot.config.settings import Settings, get_settings
from nosbot.db import QuotaStore


@dataclass(slots=True)
class QuotaUsage:
    """Units consumed since midnight UTC against the configured daily allowance."""

    used: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit


class QuotaTracker:
    """Record per-call quota costs and report today's consumption."""

    def __init__(
        self,
        store: QuotaStore,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._console = console or Console()

    def record(self, endpoint: str, units: int) -> None:
        """Append a usage entry; suitable as a :class:`YouTubeClient` quota recorder."""

        self._store.record(endpoint, units)

    def usage_today(self, *, now: Optional[datetime] = None) -> QuotaUsage:
        """Return units consumed since the start of the current UTC day."""

        current = now or datetime.now(timezone.utc)
        midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
        used = self._store.usage_since(midnight)
        usage = QuotaUsage(used=used, limit=int(self._settings.youtube_daily_quota))
        if usage.exhausted:
            self._console.log(f"[red]Daily YouTube quota exhausted ({usage.used}/{usage.limit} units)[/red]")
        return usage


__all__ = ["QuotaTracker", "QuotaUsage"]
