"""Direct Postgres table store.

Uses raw SQL with psycopg2 (no ORM). Identifiers are composed with
psycopg2.sql so table and column names never go through string formatting.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import psycopg2
from psycopg2 import errors as pg_errors, sql
from psycopg2.extras import RealDictCursor

from travelmate.domain.errors import StoreUnavailableError
from travelmate.infra.db import txn
from travelmate.infra.store import (
    ExclusionViolationError,
    Filters,
    InvalidFilterValueError,
    Order,
    Row,
)

logger = logging.getLogger(__name__)


def _where(filters: Filters) -> tuple[sql.Composable, list[Any]]:
    if not filters:
        return sql.SQL(""), []
    conditions = []
    params: list[Any] = []
    for column, value in filters.items():
        if value is None:
            conditions.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
        else:
            conditions.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(value)
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions), params


def _order_by(order: Order | None) -> sql.Composable:
    if not order:
        return sql.SQL("")
    parts = [
        sql.SQL("{} {}").format(sql.Identifier(col), sql.SQL("DESC" if desc else "ASC"))
        for col, desc in order
    ]
    return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(parts)


def _normalize(row: dict[str, Any]) -> Row:
    return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in row.items()}


class PostgresStore:
    """Table store backed by a Postgres database.

    Usage:
        store = PostgresStore(dsn="postgres://...")
        row = store.insert("reservations", {...})
    """

    def __init__(self, dsn: str | None = None, *, connect_timeout: int = 30) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout

    def _run(self, table: str, query: sql.Composable, params: list[Any]) -> list[Row]:
        try:
            with txn(
                dsn=self._dsn,
                connect_timeout=self._connect_timeout,
                cursor_factory=RealDictCursor,
            ) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        except pg_errors.ExclusionViolation as e:
            raise ExclusionViolationError(f"write to {table} rejected by exclusion constraint") from e
        except pg_errors.InvalidTextRepresentation as e:
            raise InvalidFilterValueError(f"invalid value for a column of {table}") from e
        except psycopg2.Error as e:
            logger.error(
                "store query failed",
                extra={"extra_fields": {"table": table, "pgcode": e.pgcode}},
            )
            raise StoreUnavailableError(f"Store error on {table}: {e}") from e
        return [_normalize(r) for r in rows]

    def query(self, table: str, filters: Filters, order: Order | None = None) -> list[Row]:
        where, params = _where(filters)
        query = (
            sql.SQL("SELECT * FROM {}").format(sql.Identifier(table))
            + where
            + _order_by(order)
        )
        return self._run(table, query, params)

    def insert(self, table: str, row: Row) -> Row:
        columns = list(row)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        rows = self._run(table, query, [row[c] for c in columns])
        if not rows:
            raise StoreUnavailableError(f"Insert into {table} returned no row")
        return rows[0]

    def update(self, table: str, filters: Filters, patch: Row) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in patch
        )
        where, where_params = _where(filters)
        query = (
            sql.SQL("UPDATE {} SET ").format(sql.Identifier(table))
            + assignments
            + where
            + sql.SQL(" RETURNING *")
        )
        return self._run(table, query, list(patch.values()) + where_params)
