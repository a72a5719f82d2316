"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from a DSN (default DATABASE_URL)
- txn(): Context manager for short, safe transactions
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor


def get_conn(dsn: str | None = None, *, connect_timeout: int | None = None) -> PgConnection:
    """Get a new database connection.

    Args:
        dsn: libpq DSN or URL. Defaults to DATABASE_URL.
        connect_timeout: Optional connect timeout in seconds.

    Returns:
        psycopg2 connection object.

    Raises:
        RuntimeError: If no DSN is given and DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = dsn or os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    if connect_timeout is not None:
        return psycopg2.connect(dsn, connect_timeout=connect_timeout)
    return psycopg2.connect(dsn)


@contextmanager
def txn(
    conn: PgConnection | None = None,
    *,
    dsn: str | None = None,
    connect_timeout: int | None = None,
    cursor_factory: Any = None,
) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Args:
        conn: Optional existing connection. If None, creates new one.
        dsn: DSN for the new connection (ignored when conn is given).
        connect_timeout: Connect timeout for the new connection.
        cursor_factory: Optional psycopg2 cursor class (e.g. RealDictCursor).

    Yields:
        Cursor for executing queries within the transaction.

    Example:
        with txn() as cur:
            cur.execute("UPDATE reservations SET status = %s WHERE id = %s", ("cancelled", rid))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn(dsn, connect_timeout=connect_timeout)

    try:
        with conn.cursor(cursor_factory=cursor_factory) as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()
