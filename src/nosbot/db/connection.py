"""Pooled psycopg2 connections shared by the repositories."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg2 import connect
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.pool import ThreadedConnectionPool

from nosbot.config.settings import Settings, get_settings


class DatabasePool:
    """Thread-safe pool; repositories borrow from it inside ``asyncio.to_thread`` workers."""

    def __init__(self, dsn: str, *, min_size: int = 1, max_size: int = 8) -> None:
        if min_size > max_size:
            raise ValueError(f"Pool minimum ({min_size}) exceeds maximum ({max_size}).")
        self._pool = ThreadedConnectionPool(min_size, max_size, dsn)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabasePool":
        """Build a pool sized by ``DB_POOL_MIN_SIZE`` and ``DB_POOL_MAX_SIZE``."""

        return cls(
            str(settings.database_url),
            min_size=int(settings.db_pool_min_size),
            max_size=int(settings.db_pool_max_size),
        )

    @contextmanager
    def connection(self) -> Iterator[PsycopgConnection]:
        """Borrow a connection for one unit of work.

        The transaction commits when the block exits cleanly and rolls back otherwise;
        the connection always returns to the pool.
        """

        borrowed = self._pool.getconn()
        try:
            yield borrowed
        except Exception:
            borrowed.rollback()
            raise
        else:
            borrowed.commit()
        finally:
            self._pool.putconn(borrowed)

    def close(self) -> None:
        self._pool.closeall()


_shared_pool: Optional[DatabasePool] = None
_shared_lock = threading.Lock()


@contextmanager
def get_connection() -> Iterator[PsycopgConnection]:
    """Default :class:`~nosbot.db.ConnectionFactory`: a connection from the process-wide pool."""

    global _shared_pool
    with _shared_lock:
        if _shared_pool is None:
            _shared_pool = DatabasePool.from_settings(get_settings())
        pool = _shared_pool

    with pool.connection() as borrowed:
        yield borrowed


def close_pool() -> None:
    """Close the process-wide pool; the next :func:`get_connection` opens a fresh one."""

    global _shared_pool
    with _shared_lock:
        pool, _shared_pool = _shared_pool, None
    if pool is not None:
        pool.close()


def connection_from_dsn(dsn: str) -> PsycopgConnection:
    """Open an unpooled connection, as used by the migration runner."""

    return connect(dsn)


__all__ = ["DatabasePool", "close_pool", "connection_from_dsn", "get_connection"]
