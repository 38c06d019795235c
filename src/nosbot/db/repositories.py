"""Generic repository abstractions for Postgres-backed persistence."""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar
from uuid import UUID

from psycopg2.extras import RealDictCursor

from nosbot.db import ConnectionFactory
from nosbot.models.base import NosbotBaseModel

ModelT = TypeVar("ModelT", bound=NosbotBaseModel)


class RepositoryError(RuntimeError):
    """Base exception raised for repository layer failures."""


class RecordNotFoundError(RepositoryError):
    """Raised when a query that must return a row returns nothing."""


class BaseRepository(Generic[ModelT]):
    """Table-bound helper turning pydantic models into parameterised SQL.

    Subclasses declare ``table_name`` and ``model_type``, the columns written on insert,
    and the columns refreshed when an insert collides on ``conflict_field``. When
    ``auto_timestamp_field`` is set, every upsert also stamps it with ``NOW()``.
    """

    table_name: ClassVar[str]
    model_type: ClassVar[Type[ModelT]]
    insert_fields: ClassVar[Sequence[str]]
    update_fields: ClassVar[Sequence[str]] = ()
    conflict_field: ClassVar[Optional[str]] = None
    auto_timestamp_field: ClassVar[Optional[str]] = None

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, model: ModelT) -> ModelT:
        """Insert ``model`` and return the stored row, database defaults included."""

        values = self._column_values(model, keep_nulls=False)
        statement = f"INSERT INTO {self.table_name} {self._values_clause(values)} RETURNING *"
        return self._to_model(self._fetch_one(statement, values))

    def upsert(self, model: ModelT) -> ModelT:
        """Insert ``model``; on a ``conflict_field`` collision refresh only ``update_fields``.

        Raises
        ------
        RepositoryError
            If the repository declares no conflict field or nothing to refresh.
        """

        if self.conflict_field is None:
            raise RepositoryError(f"{type(self).__name__} cannot upsert without a conflict field.")

        values = self._column_values(model, keep_nulls=True)
        refreshed = [f"{column} = EXCLUDED.{column}" for column in self.update_fields if column in values]
        if self.auto_timestamp_field:
            refreshed.append(f"{self.auto_timestamp_field} = NOW()")
        if not refreshed:
            raise RepositoryError(f"{type(self).__name__} has no columns to refresh on conflict.")

        statement = (
            f"INSERT INTO {self.table_name} {self._values_clause(values)} "
            f"ON CONFLICT ({self.conflict_field}) DO UPDATE SET {', '.join(refreshed)} RETURNING *"
        )
        return self._to_model(self._fetch_one(statement, values))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_by_id(self, record_id: object) -> ModelT:
        """Return the row with primary key ``record_id``; raise if it does not exist."""

        statement = f"SELECT * FROM {self.table_name} WHERE id = %(id)s"
        return self._to_model(self._fetch_one(statement, {"id": self._normalise_identifier(record_id)}))

    def fetch_optional(self, where_clause: str, params: Mapping[str, object]) -> Optional[ModelT]:
        """Return the first row matching ``where_clause``, or ``None``."""

        rows = self._fetch_many(f"SELECT * FROM {self.table_name} WHERE {where_clause} LIMIT 1", params)
        return self._to_model(rows[0]) if rows else None

    def fetch_all(
        self,
        where_clause: Optional[str] = None,
        params: Optional[Mapping[str, object]] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        """Return every matching row, optionally ordered and capped."""

        clauses = [f"SELECT * FROM {self.table_name}"]
        if where_clause:
            clauses.append(f"WHERE {where_clause}")
        if order_by:
            clauses.append(f"ORDER BY {order_by}")
        if limit is not None:
            clauses.append(f"LIMIT {int(limit)}")
        return [self._to_model(row) for row in self._fetch_many(" ".join(clauses), params or {})]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _column_values(self, model: ModelT, *, keep_nulls: bool) -> Dict[str, Any]:
        dumped = model.model_dump(mode="json", include=set(self.insert_fields))
        return {
            column: self._transform_value(column, dumped[column])
            for column in self.insert_fields
            if column in dumped and (keep_nulls or dumped[column] is not None)
        }

    def _transform_value(self, field: str, value: object) -> object:
        """Adapt a JSON-mode value before it is bound as a query parameter."""

        return value

    @staticmethod
    def _values_clause(values: Mapping[str, object]) -> str:
        columns = ", ".join(values)
        placeholders = ", ".join(f"%({column})s" for column in values)
        return f"({columns}) VALUES ({placeholders})"

    def _to_model(self, row: Mapping[str, object]) -> ModelT:
        return self.model_type.model_validate(dict(row))

    def _fetch_one(self, query: str, params: Mapping[str, object]) -> Mapping[str, object]:
        rows = self._fetch_many(query, params)
        if not rows:
            raise RecordNotFoundError(f"{self.table_name}: query returned no rows")
        return rows[0]

    def _fetch_many(self, query: str, params: Mapping[str, object]) -> List[Mapping[str, object]]:
        with self._connection_factory() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]

    def _execute(self, query: str, params: Mapping[str, object]) -> int:
        """Run a write statement and return the number of affected rows."""

        with self._connection_factory() as connection:
            with connection.cursor() as cursor:
                cursor.execute(query, params)
                return cursor.rowcount

    @staticmethod
    def _normalise_identifier(value: object) -> object:
        return str(value) if isinstance(value, UUID) else value


__all__ = [
    "BaseRepository",
    "RecordNotFoundError",
    "RepositoryError",
]
