"""Reservation model and row mapping.

Rows come from the hosted ``reservations`` table, either as JSON (REST
backend: ISO-8601 strings) or as psycopg2 values (date/datetime/Decimal).
Both shapes are accepted by ``from_row``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger(__name__)

TABLE = "reservations"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Reservation:
    """A booking linking a user, a destination, a date range and a payment state."""

    id: str
    user_id: str
    destination_id: str
    start_date: date
    end_date: date
    number_of_people: int
    total_price: Decimal
    status: ReservationStatus
    payment_reference: str | None
    created_at: datetime

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    def with_status(
        self, status: ReservationStatus, payment_reference: str | None
    ) -> "Reservation":
        return replace(self, status=status, payment_reference=payment_reference)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "destination_id": self.destination_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "number_of_people": self.number_of_people,
            "total_price": str(self.total_price),
            "status": self.status.value,
            "payment_reference": self.payment_reference,
            "created_at": self.created_at.isoformat(),
        }


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        # fromisoformat only accepts a trailing "Z" from 3.11 on
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def parse_day(value: Any) -> date:
    """Parse a stored date or day-boundary timestamp to a calendar date.

    Time of day is stripped; timestamps are read in UTC.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        return date.fromisoformat(value.strip())
    return _parse_timestamp(value).astimezone(timezone.utc).date()


def format_day(day: date) -> str:
    """Format a calendar date as an ISO-8601 timestamp at the UTC day boundary."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc).isoformat()


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal currency amount to minor units (cents)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {value!r}") from e
    if not price.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    return price


def from_row(row: dict[str, Any]) -> Reservation:
    """Build a Reservation from a stored row.

    Raises:
        ValueError: If a required field is missing or malformed.
    """
    try:
        return Reservation(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            destination_id=str(row["destination_id"]),
            start_date=parse_day(row["start_date"]),
            end_date=parse_day(row["end_date"]),
            number_of_people=int(row["number_of_people"]),
            total_price=parse_price(row["total_price"]),
            status=ReservationStatus(row["status"]),
            payment_reference=row.get("stripe_payment_intent_id"),
            created_at=_parse_timestamp(row["created_at"]),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Incomplete reservation row: {e}") from e


def parse_rows(rows: Iterable[dict[str, Any]]) -> list[Reservation]:
    """Parse rows, skipping the ones that cannot be decoded."""
    reservations = []
    for row in rows:
        try:
            reservations.append(from_row(row))
        except ValueError as e:
            logger.warning(
                "skipping unparseable reservation row",
                extra={"extra_fields": {"reservation_id": row.get("id"), "error": str(e)}},
            )
    return reservations


def insert_row(
    *,
    user_id: str,
    destination_id: str,
    start_date: date,
    end_date: date,
    number_of_people: int,
    total_price: Decimal,
) -> dict[str, Any]:
    """Field map for inserting a new pending reservation."""
    return {
        "user_id": user_id,
        "destination_id": destination_id,
        "start_date": format_day(start_date),
        "end_date": format_day(end_date),
        "number_of_people": number_of_people,
        "total_price": str(total_price),
        "status": ReservationStatus.PENDING.value,
    }


def status_patch(
    status: ReservationStatus, payment_reference: str | None
) -> dict[str, Any]:
    """Field map for a status / payment reference update."""
    return {
        "status": status.value,
        "stripe_payment_intent_id": payment_reference,
    }
