"""Table store capability interface.

The booking kernel talks to its persisted tables only through this shape:
equality filters, ordered reads, inserts and filtered updates of field maps.
Backends are selected via STORE_BACKEND:
- rest (default): PostgREST endpoint of the hosted backend-as-a-service
- postgres: direct connection via DATABASE_URL
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from travelmate.infra.config import Settings

Row = dict[str, Any]
Filters = dict[str, Any]
# (column, descending)
Order = Sequence[tuple[str, bool]]

# SQLSTATE exclusion_violation, raised by the reservations overlap constraint
EXCLUSION_VIOLATION = "23P01"
# SQLSTATE invalid_text_representation, e.g. a malformed uuid in a filter
INVALID_TEXT_REPRESENTATION = "22P02"


class ExclusionViolationError(Exception):
    """A write was rejected by a server-side exclusion constraint."""


class InvalidFilterValueError(Exception):
    """A filter value cannot be cast to its column type (no row can match)."""


class TableStore(Protocol):
    """Protocol for reservation record stores."""

    def query(
        self, table: str, filters: Filters, order: Order | None = None
    ) -> list[Row]:
        """Return rows matching every equality filter, in the given order."""
        ...

    def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored (server-assigned fields included)."""
        ...

    def update(self, table: str, filters: Filters, patch: Row) -> list[Row]:
        """Apply patch to rows matching filters and return the updated rows."""
        ...


def create_store(settings: Settings) -> TableStore:
    """Build the store backend named by settings.store_backend.

    Raises:
        RuntimeError: If the backend is unknown or not configured.
    """
    if settings.store_backend == "postgres":
        from travelmate.infra.postgres_store import PostgresStore

        return PostgresStore(
            dsn=settings.database_url,
            connect_timeout=settings.http_timeout_seconds,
        )

    if settings.store_backend == "rest":
        from travelmate.infra.rest_store import RestStore

        return RestStore(
            base_url=settings.supabase_url,
            api_key=settings.supabase_service_key,
            timeout=settings.http_timeout_seconds,
        )

    raise RuntimeError(f"Unknown STORE_BACKEND: {settings.store_backend}")
