"""Two-tap date range selection against a destination's reservations.

The selector only fills ``selected_start`` / ``selected_end``; creating the
reservation is the lifecycle manager's job. It holds no UI state beyond the
displayed month and is driven entirely through ``tap`` and ``show_month``.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Callable

from travelmate.infra.time import utc_today

from .availability import DEFAULT_POLICY, AvailabilityPolicy, find_conflict, is_day_reserved
from .errors import ConflictError
from .reservations import Reservation

logger = logging.getLogger(__name__)

ReservationLoader = Callable[[str], list[Reservation]]
ErrorCallback = Callable[[ConflictError], None]


class SelectionState(str, Enum):
    NONE = "none"
    START_SELECTED = "start_selected"
    BOTH_SELECTED = "both_selected"


_INSTRUCTIONS = {
    SelectionState.NONE: "Select your start date",
    SelectionState.START_SELECTED: "Select your end date",
    SelectionState.BOTH_SELECTED: "Tap a new date to start a new selection",
}


class DateRangeSelector:
    """State machine for picking a start and end date.

    Usage:
        selector = DateRangeSelector("dest-1", loader=repo.list_for_destination)
        selector.show_month(date(2024, 6, 1))
        selector.tap(date(2024, 6, 10))
        selector.tap(date(2024, 6, 14))
        selector.selected_start, selector.selected_end
    """

    def __init__(
        self,
        destination_id: str,
        *,
        loader: ReservationLoader,
        today: Callable[[], date] = utc_today,
        policy: AvailabilityPolicy = DEFAULT_POLICY,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.destination_id = destination_id
        self._loader = loader
        self._today = today
        self._policy = policy
        self._on_error = on_error
        self._reservations: list[Reservation] = []
        self.state = SelectionState.NONE
        self.selected_start: date | None = None
        self.selected_end: date | None = None
        self.displayed_month: date = today().replace(day=1)
        self.error: ConflictError | None = None

    @property
    def instructions(self) -> str:
        return _INSTRUCTIONS[self.state]

    @property
    def reservations(self) -> list[Reservation]:
        return list(self._reservations)

    def reload(self) -> None:
        """Re-fetch the destination's reservations."""
        self._reservations = self._loader(self.destination_id)

    def show_month(self, month: date) -> None:
        """Change the displayed month; the selection is left untouched."""
        self.displayed_month = month.replace(day=1)
        self.reload()

    def is_reserved(self, day: date) -> bool:
        return is_day_reserved(day, self._reservations, self._policy)

    def is_disabled(self, day: date) -> bool:
        return day < self._today() or self.is_reserved(day)

    def is_in_selection(self, day: date) -> bool:
        if self.state is SelectionState.NONE:
            return False
        return self.selected_start <= day <= self.selected_end

    def reset(self) -> None:
        self.state = SelectionState.NONE
        self.selected_start = None
        self.selected_end = None

    def _start_at(self, day: date) -> None:
        self.selected_start = day
        self.selected_end = day
        self.state = SelectionState.START_SELECTED

    def tap(self, day: date) -> SelectionState:
        """Apply a tap on day and return the resulting state.

        Disabled days are ignored. A forward end date is checked against the
        loaded reservations; a conflict records ``error`` and resets.
        """
        if self.is_disabled(day):
            return self.state

        self.error = None

        if self.state is SelectionState.NONE:
            self._start_at(day)

        elif self.state is SelectionState.START_SELECTED:
            if day < self.selected_start:
                self._start_at(day)
            else:
                self.selected_end = day
                conflicting = find_conflict(
                    self._reservations, self.selected_start, day, self._policy
                )
                if conflicting is not None:
                    self._reject(conflicting)
                else:
                    self.state = SelectionState.BOTH_SELECTED

        else:
            self.reset()
            self._start_at(day)

        return self.state

    def _reject(self, conflicting: Reservation) -> None:
        error = ConflictError(
            self.destination_id,
            self.selected_start,
            self.selected_end,
            conflicting_reservation_id=conflicting.id,
        )
        logger.info(
            "date selection rejected",
            extra={
                "extra_fields": {
                    "destination_id": self.destination_id,
                    "conflicting_reservation_id": conflicting.id,
                },
            },
        )
        self.reset()
        self.error = error
        if self._on_error is not None:
            self._on_error(error)
