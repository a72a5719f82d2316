"""Reservations repository - persistence for reservation records.

Maps Reservation objects to rows of the ``reservations`` table through any
TableStore backend. Reads are fail-open on individual rows (unparseable rows
are skipped); a write whose echoed row cannot be parsed is a store failure.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from travelmate.domain.errors import StoreUnavailableError
from travelmate.domain.reservations import (
    TABLE,
    Reservation,
    ReservationStatus,
    from_row,
    insert_row,
    parse_rows,
    status_patch,
)
from travelmate.infra.store import InvalidFilterValueError, Row, TableStore

_NEWEST_FIRST = [("created_at", True)]


def _parse_written(row: Row) -> Reservation:
    try:
        return from_row(row)
    except ValueError as e:
        raise StoreUnavailableError(f"Store returned a malformed reservation: {e}") from e


class ReservationsRepository:
    """Reservation reads and writes over a TableStore."""

    def __init__(self, store: TableStore) -> None:
        self._store = store

    def insert_pending(
        self,
        *,
        user_id: str,
        destination_id: str,
        start_date: date,
        end_date: date,
        number_of_people: int,
        total_price: Decimal,
    ) -> Reservation:
        """Insert a pending reservation and return it with its server-assigned id."""
        row = self._store.insert(
            TABLE,
            insert_row(
                user_id=user_id,
                destination_id=destination_id,
                start_date=start_date,
                end_date=end_date,
                number_of_people=number_of_people,
                total_price=total_price,
            ),
        )
        return _parse_written(row)

    def get(self, reservation_id: str) -> Reservation | None:
        """Return the reservation, or None if missing (malformed ids included)."""
        try:
            rows = self._store.query(TABLE, {"id": reservation_id})
        except InvalidFilterValueError:
            return None
        parsed = parse_rows(rows)
        return parsed[0] if parsed else None

    def list_for_user(self, user_id: str) -> list[Reservation]:
        """User's reservations, newest created_at first."""
        return parse_rows(self._store.query(TABLE, {"user_id": user_id}, _NEWEST_FIRST))

    def list_for_destination(self, destination_id: str) -> list[Reservation]:
        return parse_rows(
            self._store.query(TABLE, {"destination_id": destination_id}, _NEWEST_FIRST)
        )

    def list_with_status(self, status: ReservationStatus) -> list[Reservation]:
        return parse_rows(
            self._store.query(TABLE, {"status": status.value}, [("created_at", False)])
        )

    def update_status(
        self,
        reservation_id: str,
        *,
        status: ReservationStatus,
        payment_reference: str | None,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        """Set status and payment reference.

        When expected_status is given the update only applies if the row still
        has that status (compare-and-set). Returns the updated reservation, or
        None if no row matched.
        """
        filters: dict[str, str] = {"id": reservation_id}
        if expected_status is not None:
            filters["status"] = expected_status.value

        rows = self._store.update(TABLE, filters, status_patch(status, payment_reference))
        if not rows:
            return None
        return _parse_written(rows[0])
