"""Reservation workflow: permission checks, validation, persistence, audit."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Optional

from roundbook.domain.constraints import parse_rounds_config, rounds_config_to_record
from roundbook.domain.models import (
    AuditEntry,
    CallerContext,
    Reservation,
    ReservableWeek,
    RoundsConfig,
    RoundState,
)
from roundbook.repository.data_repository import DataRepository, ReservationOverlapError
from roundbook.services.conflict_service import (
    CONFLICT_REASON,
    ReservationValidationError,
    blocked_dates,
    validate_reservation,
)
from roundbook.services.permission_service import (
    PermissionEvaluator,
    booked_counts,
    can_edit_reservation,
)
from roundbook.services.pricing_service import reservation_cost
from roundbook.services.round_service import expand_rounds, recompute
from roundbook.utils.config import Settings, get_settings
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


class RoundsConfigNotFoundError(Exception):
    """Raised when no round configuration exists for the requested year."""


class ReservationNotFoundError(Exception):
    """Raised when a reservation id does not exist."""


class ReservationPermissionError(Exception):
    """Raised when the caller is not allowed to perform a reservation change."""


@dataclass(frozen=True)
class ReservationOutcome:
    reservation: Reservation
    cost: Optional[float]


def _governing_week(weeks: list[ReservableWeek], day: date) -> Optional[ReservableWeek]:
    return next((week for week in weeks if week.contains(day)), None)


class ReservationWorkflowService:
    """Recomputes round state per call and guards every reservation mutation."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def load_config(self, year: int) -> RoundsConfig:
        record = self._repository.get_rounds_config_record(year)
        if record is None:
            raise RoundsConfigNotFoundError(f"No reservation rounds configured for {year}")
        return parse_rounds_config(record)

    def save_config(self, year: int, record: dict[str, Any]) -> RoundsConfig:
        """Validate an authored config, store its normalized form, return it.

        Raises ConfigError before anything is written.
        """
        config = parse_rounds_config({**record, "year": year})
        expand_rounds(config)
        config_id = self._repository.save_rounds_config_record(rounds_config_to_record(config))
        logger.info(
            "Rounds config saved | year=%s | config_id=%s | rounds=%s",
            year,
            config_id,
            len(config.rounds),
        )
        return replace(config, id=config_id)

    def audit_log(self, year: int) -> list[AuditEntry]:
        return self._repository.list_audit_log(year)

    def round_state(self, year: int, today: date) -> RoundState:
        return recompute(
            self.load_config(year),
            today,
            self._repository.list_bookers(),
            self._repository.list_reservations(year),
        )

    def _evaluator(self, year: int, caller: CallerContext, today: date) -> PermissionEvaluator:
        return PermissionEvaluator(self.round_state(year, today), caller)

    def permissions(self, year: int, caller: CallerContext, today: date) -> dict[str, Any]:
        evaluator = self._evaluator(year, caller, today)
        reservations = self._repository.list_reservations(year)
        booker = caller.current_booker
        return {
            "caller_kind": caller.kind,
            "current_booker_id": booker.id if booker else None,
            "managed_booker_ids": [item.id for item in caller.managed_bookers],
            "can_add_reservation": evaluator.can_add_reservation(reservations),
            "can_add_daily_reservation": evaluator.can_add_daily_reservation(reservations),
            "booked_counts": booked_counts(reservations),
            "reservations": [
                {
                    "reservation_id": reservation.id,
                    "can_edit": evaluator.can_edit_reservation(reservation),
                    "can_delete": evaluator.can_delete_reservation(reservation),
                }
                for reservation in reservations
            ],
        }

    def list_reservations(self, year: int) -> list[Reservation]:
        return self._repository.list_reservations(year)

    def get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self._repository.get_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    def _validate(
        self,
        year: int,
        proposal: Reservation,
        excluding: Optional[str],
    ) -> Optional[ReservableWeek]:
        weeks = self._repository.list_weeks(year)
        week = _governing_week(weeks, proposal.start_date)
        span_start = min(proposal.start_date, week.start_date) if week else proposal.start_date
        span_end = max(proposal.end_date, week.end_date) if week else proposal.end_date
        blocked = blocked_dates(
            self._repository.list_overlapping_reservations(
                proposal.unit_id,
                span_start,
                max(span_start, span_end),
            ),
            excluding=excluding,
        )
        reasons = validate_reservation(
            proposal,
            blocked,
            week.start_date if week else None,
            week.end_date if week else None,
        )
        if proposal.unit_id not in {unit.id for unit in self._repository.list_units()}:
            reasons.append(f"Unknown unit {proposal.unit_id}")
        if proposal.booker_id and proposal.booker_id not in {
            booker.id for booker in self._repository.list_bookers()
        }:
            reasons.append(f"Unknown booker {proposal.booker_id}")
        if reasons:
            logger.info(
                "Reservation rejected | unit_id=%s | start=%s | reasons=%s",
                proposal.unit_id,
                proposal.start_date.isoformat(),
                reasons,
            )
            raise ReservationValidationError(reasons)
        return week

    def _quote(self, reservation: Reservation, week: Optional[ReservableWeek]) -> Optional[float]:
        if week is None:
            return None
        return reservation_cost(
            self._repository.list_unit_pricing(reservation.unit_id),
            week.pricing_tier_id,
            reservation.start_date,
            reservation.end_date,
        )

    def create_reservation(
        self,
        *,
        year: int,
        caller: CallerContext,
        proposal: Reservation,
        today: date,
        who: str,
    ) -> ReservationOutcome:
        caller = caller.acting_for(proposal.booker_id)
        with self._repository.write_lock:
            if not caller.acting_as_admin:
                evaluator = self._evaluator(year, caller, today)
                reservations = self._repository.list_reservations(year)
                if proposal.is_daily:
                    allowed = evaluator.can_add_daily_reservation(reservations)
                else:
                    allowed = evaluator.can_add_reservation(reservations)
                if not allowed:
                    raise ReservationPermissionError("Booking is not open to you right now")
                if proposal.booker_id != caller.current_booker.id:
                    raise ReservationPermissionError("You can only book for yourself")

            week = self._validate(year, proposal, excluding=None)
            try:
                created = self._repository.create_reservation(replace(proposal, id=""), who=who)
            except ReservationOverlapError as exc:
                raise ReservationValidationError([CONFLICT_REASON]) from exc
        logger.info(
            "Reservation created | reservation_id=%s | booker_id=%s | unit_id=%s | start=%s | end=%s",
            created.id,
            created.booker_id,
            created.unit_id,
            created.start_date.isoformat(),
            created.end_date.isoformat(),
        )
        return ReservationOutcome(reservation=created, cost=self._quote(created, week))

    def update_reservation(
        self,
        *,
        caller: CallerContext,
        proposal: Reservation,
        who: str,
    ) -> ReservationOutcome:
        with self._repository.write_lock:
            existing = self.get_reservation(proposal.id)
            if not can_edit_reservation(caller, existing):
                raise ReservationPermissionError("You can only edit your own reservations")
            if (
                not caller.acting_as_admin
                and proposal.booker_id != existing.booker_id
                and not caller.manages(proposal.booker_id)
            ):
                raise ReservationPermissionError("You cannot reassign a reservation to another booker")

            week = self._validate(proposal.start_date.year, proposal, excluding=existing.id)
            try:
                updated = self._repository.update_reservation(proposal, who=who)
            except ReservationOverlapError as exc:
                raise ReservationValidationError([CONFLICT_REASON]) from exc
        logger.info(
            "Reservation updated | reservation_id=%s | booker_id=%s",
            updated.id,
            updated.booker_id,
        )
        return ReservationOutcome(reservation=updated, cost=self._quote(updated, week))

    def delete_reservation(
        self,
        *,
        caller: CallerContext,
        reservation_id: str,
        today: date,
        who: str,
    ) -> None:
        with self._repository.write_lock:
            existing = self.get_reservation(reservation_id)
            if not caller.acting_as_admin:
                evaluator = self._evaluator(existing.start_date.year, caller, today)
                if not evaluator.can_delete_reservation(existing):
                    raise ReservationPermissionError("Deleting this reservation is not allowed right now")
            self._repository.delete_reservation(reservation_id, who=who)
        logger.info(
            "Reservation deleted | reservation_id=%s | booker_id=%s",
            reservation_id,
            existing.booker_id,
        )
