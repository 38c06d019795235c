"""Utilities for executing SQL migrations stored under `db/migrations`."""

from __future__ import annotations

from pathlib import Path
from typing import List, Set

from psycopg2.extensions import cursor as PsycopgCursor
from rich.console import Console
from rich.table import Table

from nosbot.config.settings import get_settings
from nosbot.db.connection import connection_from_dsn

MIGRATIONS_ROOT = Path(__file__).resolve().parent / "migrations"

_TRACKING_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    name TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def _load_migration_files(directory: Path) -> List[Path]:
    return sorted(directory.glob("*.sql"))


def _applied_migrations(db_cursor: PsycopgCursor) -> Set[str]:
    db_cursor.execute(_TRACKING_TABLE_SQL)
    db_cursor.execute("SELECT name FROM schema_migrations")
    return {row[0] for row in db_cursor.fetchall()}


def _apply_migration(db_cursor: PsycopgCursor, migration_file: Path) -> None:
    db_cursor.execute(migration_file.read_text(encoding="utf-8"))
    db_cursor.execute("INSERT INTO schema_migrations (name) VALUES (%(name)s)", {"name": migration_file.name})


def run_migrations(console: Console | None = None, *, dsn: str | None = None) -> List[str]:
    """Apply pending SQL migrations in filename order and return the names applied."""

    console = console or Console()
    migrations = _load_migration_files(MIGRATIONS_ROOT)

    if not migrations:
        console.print("[yellow]No migrations found.[/yellow]")
        return []

    connection = connection_from_dsn(dsn or str(get_settings().database_url))

    table = Table(title="Database Migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status", style="green")

    applied: List[str] = []
    try:
        with connection.cursor() as db_cursor:
            already_applied = _applied_migrations(db_cursor)
            for migration in migrations:
                if migration.name in already_applied:
                    table.add_row(migration.name, "skipped")
                    continue
                _apply_migration(db_cursor, migration)
                applied.append(migration.name)
                table.add_row(migration.name, "applied")
        connection.commit()
    except Exception as exc:  # pragma: no cover - surface migration errors
        connection.rollback()
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise
    finally:
        connection.close()

    console.print(table)
    return applied


def main() -> None:
    """Entry point for running migrations via `python -m nosbot.db.migrate`."""

    run_migrations()


if __name__ == "__main__":  # pragma: no cover
    main()
