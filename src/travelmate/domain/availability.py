"""Date availability for a destination.

An existing reservation blocks the days ``start_date <= d < end_date``
(end-exclusive: a stay ending on day D leaves D free for the next guest).
A candidate range ``[start, end]`` is scanned day by day, inclusive of both
ends, and conflicts if any single day is blocked.

The scan is O(days x reservations); reservation sets per destination are
small. The read-then-insert sequence built on top of this check is not
atomic: two concurrent bookings can both pass it. The Postgres schema closes
that race with an exclusion constraint (see migrations); the REST backend
relies on the same constraint being present server-side.

Whether cancelled reservations block is an explicit policy. By default they
do, matching how the booking calendar has always behaved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Iterable, Iterator

from .errors import ConflictError
from .reservations import Reservation, ReservationStatus

if TYPE_CHECKING:
    from travelmate.infra.repositories.reservations_repository import ReservationsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityPolicy:
    """Which reservations take part in the conflict scan."""

    cancelled_blocks: bool = True

    def blocks(self, reservation: Reservation) -> bool:
        if reservation.status is ReservationStatus.CANCELLED:
            return self.cancelled_blocks
        return True


DEFAULT_POLICY = AvailabilityPolicy()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def blocking_reservations(
    reservations: Iterable[Reservation],
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> list[Reservation]:
    return [r for r in reservations if policy.blocks(r)]


def reservation_covering(
    day: date, reservations: Iterable[Reservation]
) -> Reservation | None:
    """Return the first reservation whose [start, end) interval holds day."""
    for reservation in reservations:
        if reservation.start_date <= day < reservation.end_date:
            return reservation
    return None


def is_day_reserved(
    day: date,
    reservations: Iterable[Reservation],
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> bool:
    return reservation_covering(day, blocking_reservations(reservations, policy)) is not None


def find_conflict(
    reservations: Iterable[Reservation],
    start: date,
    end: date,
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> Reservation | None:
    """Return the first reservation blocking any day of [start, end], or None."""
    blocking = blocking_reservations(reservations, policy)
    for day in iter_days(start, end):
        covering = reservation_covering(day, blocking)
        if covering is not None:
            return covering
    return None


def reserved_days(
    reservations: Iterable[Reservation],
    first: date,
    last: date,
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> list[date]:
    """List the blocked days between first and last (for calendar highlighting)."""
    blocking = blocking_reservations(reservations, policy)
    return [d for d in iter_days(first, last) if reservation_covering(d, blocking)]


def assert_available(
    reservations: Iterable[Reservation],
    *,
    destination_id: str,
    start: date,
    end: date,
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> None:
    """Raise ConflictError if any day of [start, end] is blocked."""
    conflicting = find_conflict(reservations, start, end, policy)
    if conflicting is None:
        return

    logger.warning(
        "date conflict detected",
        extra={
            "extra_fields": {
                "destination_id": destination_id,
                "requested_start": start.isoformat(),
                "requested_end": end.isoformat(),
                "conflicting_reservation_id": conflicting.id,
                "existing_start": conflicting.start_date.isoformat(),
                "existing_end": conflicting.end_date.isoformat(),
            },
        },
    )
    raise ConflictError(
        destination_id,
        start,
        end,
        conflicting_reservation_id=conflicting.id,
    )


def check_availability(
    repo: ReservationsRepository,
    *,
    destination_id: str,
    start: date,
    end: date,
    policy: AvailabilityPolicy = DEFAULT_POLICY,
) -> bool:
    """Fetch the destination's reservations and report whether [start, end] is free.

    Raises:
        StoreUnavailableError: If the reservations cannot be read.
    """
    reservations = repo.list_for_destination(destination_id)
    return find_conflict(reservations, start, end, policy) is None
