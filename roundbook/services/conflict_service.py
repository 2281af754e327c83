"""Reservation date conflict detection and proposal validation."""

from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Iterable, Optional

from roundbook.domain.models import (
    DAILY_RESERVATION_DAYS,
    WEEKLY_RESERVATION_DAYS,
    Reservation,
)


CONFLICT_REASON = "Reservation conflicts with an existing reservation"


class ReservationValidationError(Exception):
    """Raised when a proposed reservation breaks one or more booking rules."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons))


def _date_range(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range(max(0, (end - start).days))]


def blocked_dates(
    reservations: Iterable[Reservation],
    excluding: Optional[str] = None,
) -> set[date]:
    """Days covered by `reservations`, skipping the one with id `excluding`."""
    blocked: set[date] = set()
    for reservation in reservations:
        if excluding is not None and reservation.id == excluding:
            continue
        blocked.update(reservation.days())
    return blocked


def is_date_available(day: Optional[date], blocked: AbstractSet[date]) -> bool:
    return day is not None and day not in blocked


def has_conflict(start: date, end: date, blocked: AbstractSet[date]) -> bool:
    return any(not is_date_available(day, blocked) for day in _date_range(start, end))


def validate_reservation(
    proposal: Reservation,
    blocked: AbstractSet[date],
    window_start: Optional[date],
    window_end: Optional[date],
) -> list[str]:
    """Collect every rule the proposal breaks; an empty list means valid.

    `window_start`/`window_end` bound the governing week (end exclusive);
    None means no reservable week covers the proposal.
    """
    reasons: list[str] = []
    if not proposal.guest_name.strip():
        reasons.append("Guest name is required")
    if not proposal.booker_id.strip():
        reasons.append("Booker is required")

    length = proposal.length_days
    if length <= 0:
        reasons.append("End date must be after start date")
    elif length not in (DAILY_RESERVATION_DAYS, WEEKLY_RESERVATION_DAYS):
        reasons.append(
            f"Reservation must last {DAILY_RESERVATION_DAYS} or {WEEKLY_RESERVATION_DAYS} days, got {length}"
        )

    if window_start is None or window_end is None:
        reasons.append("Reservation must fall within a reservable week")
    elif proposal.start_date < window_start or proposal.end_date > window_end:
        reasons.append(
            f"Reservation must fall between {window_start.isoformat()} and {window_end.isoformat()}"
        )

    if has_conflict(proposal.start_date, proposal.end_date, blocked):
        reasons.append(CONFLICT_REASON)
    return reasons


def ensure_valid_reservation(
    proposal: Reservation,
    blocked: AbstractSet[date],
    window_start: Optional[date],
    window_end: Optional[date],
) -> None:
    reasons = validate_reservation(proposal, blocked, window_start, window_end)
    if reasons:
        raise ReservationValidationError(reasons)
