"""Booking permission rules evaluated against the active round."""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from roundbook.domain.models import CallerContext, Reservation, RoundState


def booked_counts(reservations: Sequence[Reservation]) -> dict[str, int]:
    """Number of reservations held per booker id."""
    return dict(Counter(reservation.booker_id for reservation in reservations))


def _is_on_deck(state: RoundState, caller: CallerContext) -> bool:
    """True when the caller may act inside the active round's turn order."""
    current_round = state.active_round
    booker = caller.current_booker
    if current_round is None or booker is None:
        return False
    if not current_round.has_sub_rounds:
        return True
    sub_round = state.active_sub_round
    return sub_round is not None and sub_round.booker_id == booker.id


def can_add_reservation(
    state: RoundState,
    caller: CallerContext,
    reservations: Sequence[Reservation],
) -> bool:
    if caller.acting_as_admin:
        return True
    if not _is_on_deck(state, caller):
        return False

    limit = state.active_round.booked_weeks_limit
    if limit == 0:
        return True
    held = sum(
        1 for reservation in reservations if reservation.booker_id == caller.current_booker.id
    )
    return held < limit


def can_add_daily_reservation(
    state: RoundState,
    caller: CallerContext,
    reservations: Sequence[Reservation],
) -> bool:
    if not can_add_reservation(state, caller, reservations):
        return False
    if caller.acting_as_admin:
        return True
    return bool(state.active_round and state.active_round.allow_daily_reservations)


def _owns(caller: CallerContext, reservation: Reservation) -> bool:
    booker = caller.current_booker
    if booker is None:
        return False
    return reservation.booker_id == booker.id or caller.manages(reservation.booker_id)


def can_edit_reservation(caller: CallerContext, reservation: Reservation) -> bool:
    # Ownership only: edits do not consume a new slot in the round.
    return caller.acting_as_admin or _owns(caller, reservation)


def can_delete_reservation(
    state: RoundState,
    caller: CallerContext,
    reservation: Reservation,
) -> bool:
    if caller.acting_as_admin:
        return True
    current_round = state.active_round
    if current_round is None or not current_round.allow_deletions:
        return False
    if not _owns(caller, reservation):
        return False
    return _is_on_deck(state, caller.acting_for(reservation.booker_id))


class PermissionEvaluator:
    """Binds one round state and caller so the UI can ask repeated questions."""

    def __init__(self, state: RoundState, caller: CallerContext) -> None:
        self._state = state
        self._caller = caller

    @property
    def caller(self) -> CallerContext:
        return self._caller

    def can_add_reservation(self, reservations: Sequence[Reservation]) -> bool:
        return can_add_reservation(self._state, self._caller, reservations)

    def can_add_daily_reservation(self, reservations: Sequence[Reservation]) -> bool:
        return can_add_daily_reservation(self._state, self._caller, reservations)

    def can_edit_reservation(self, reservation: Reservation) -> bool:
        return can_edit_reservation(self._caller, reservation)

    def can_delete_reservation(self, reservation: Reservation) -> bool:
        return can_delete_reservation(self._state, self._caller, reservation)
