"""Repository for interacting with the `quota_logs` table."""

from __future__ import annotations

from datetime import datetime

from nosbot.db import ConnectionFactory
from nosbot.db.repositories import BaseRepository
from nosbot.models.quota import QuotaLogEntry


class QuotaRepository(BaseRepository[QuotaLogEntry]):
    """Append-only log of YouTube Data API quota consumption."""

    table_name = "quota_logs"
    model_type = QuotaLogEntry
    insert_fields = ("endpoint", "units")

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def record(self, endpoint: str, units: int) -> None:
        self.insert(QuotaLogEntry(endpoint=endpoint, units=units))

    def usage_since(self, since: datetime) -> int:
        """Return the total units consumed at or after ``since``."""

        row = self._fetch_one(
            f"SELECT COALESCE(SUM(units), 0) AS total FROM {self.table_name} WHERE created_at >= %(since)s",
            {"since": since},
        )
        return int(row["total"])


__all__ = ["QuotaRepository"]
