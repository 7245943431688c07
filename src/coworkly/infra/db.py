"""Database access layer using psycopg2.

Provides:
- Database: explicitly constructed connection pool (one per process)
- txn(): Context manager for short, safe transactions
- advisory_xact_lock(): transaction-scoped named mutex
- fetchone/fetchall: Query helpers
- for_update(): SELECT ... FOR UPDATE helper
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from psycopg2.extensions import connection as PgConnection, cursor as PgCursor
from psycopg2.pool import ThreadedConnectionPool


class Database:
    """Thread-safe psycopg2 connection pool.

    Created at process start and closed at shutdown; never a module global.
    """

    def __init__(self, dsn: str, *, min_conn: int = 1, max_conn: int = 10) -> None:
        if not dsn:
            raise RuntimeError("DATABASE_URL is required for the postgres store")
        self._pool = ThreadedConnectionPool(min_conn, max_conn, dsn)

    @contextmanager
    def connection(self) -> Iterator[PgConnection]:
        """Borrow a pooled connection, returning it on exit."""
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    def close(self) -> None:
        self._pool.closeall()


@contextmanager
def txn(conn: PgConnection) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    Commits on successful exit, rolls back on exception.

    Args:
        conn: Open connection (usually borrowed from Database.connection()).

    Yields:
        Cursor for executing queries within the transaction.

    Example:
        with db.connection() as conn, txn(conn) as cur:
            cur.execute("INSERT INTO t (x) VALUES (%s)", (1,))
    """
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def advisory_xact_lock(cur: PgCursor, key: str) -> None:
    """Block until the transaction holds the advisory lock for key.

    Released automatically at commit or rollback. Different keys never
    contend (modulo 32-bit hashtext collisions).
    """
    cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,))


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row.

    Args:
        cur: Database cursor.
        query: SQL query with %s placeholders.
        params: Query parameters.

    Returns:
        Single row tuple or None if no results.
    """
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
    *,
    nowait: bool = False,
) -> tuple[Any, ...] | None:
    """Execute SELECT ... FOR UPDATE and fetch one row.

    Use within a transaction to lock the selected row until commit/rollback.

    Args:
        cur: Database cursor.
        query: SELECT query (without FOR UPDATE).
        params: Query parameters.
        nowait: If True, fail immediately if row is locked.

    Returns:
        Single row tuple or None if no results.
    """
    suffix = " FOR UPDATE"
    if nowait:
        suffix += " NOWAIT"

    full_query = query.rstrip().rstrip(";") + suffix
    cur.execute(full_query, params)
    return cur.fetchone()
