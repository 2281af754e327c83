from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date, timedelta

import pytest

from roundbook.domain.models import Booker, CallerContext, Reservation
from roundbook.repository.data_repository import DataRepository, ReservationOverlapError
from roundbook.services.conflict_service import ReservationValidationError
from roundbook.services.reservation_service import (
    ReservationPermissionError,
    ReservationWorkflowService,
)
from roundbook.utils.config import get_settings


ADMIN = CallerContext(acting_as_admin=True)


def _repository(tmp_path) -> DataRepository:
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        database_path=tmp_path / "concurrency.db",
        demo_year=2026,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    return repository


def _week(booker_id: str, start: date = date(2026, 6, 6), end: date = date(2026, 6, 13)) -> Reservation:
    return Reservation(
        id="",
        start_date=start,
        end_date=end,
        unit_id="u1",
        guest_name="Guest of " + booker_id,
        booker_id=booker_id,
    )


def test_simultaneous_bookings_for_same_week_admit_one(tmp_path):
    repository = _repository(tmp_path)
    service = ReservationWorkflowService(repository=repository)
    barrier = threading.Barrier(4)

    def book(booker_id: str) -> str:
        barrier.wait()
        try:
            service.create_reservation(
                year=2026,
                caller=ADMIN,
                proposal=_week(booker_id),
                today=date(2026, 1, 1),
                who="admin-user",
            )
        except ReservationValidationError as exc:
            return "; ".join(exc.reasons)
        return "created"

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(book, ["b1", "b2", "b3", "b4"]))

    assert outcomes.count("created") == 1
    assert outcomes.count("Reservation conflicts with an existing reservation") == 3
    assert len(repository.list_reservations(2026, unit_id="u1")) == 1
    assert repository.count_audit_entries() == 1


def test_simultaneous_limit_checks_do_not_overbook(tmp_path):
    repository = _repository(tmp_path)
    service = ReservationWorkflowService(repository=repository)
    caller = CallerContext(
        current_booker=Booker(id="b1", name="Alder Family", user_id="user-alder"),
        managed_bookers=(Booker(id="b1", name="Alder Family", user_id="user-alder"),),
    )
    starts = [date(2026, 6, 6), date(2026, 6, 13), date(2026, 6, 20), date(2026, 6, 27)]
    barrier = threading.Barrier(len(starts))

    def book(start: date) -> bool:
        barrier.wait()
        proposal = replace(_week("b1"), start_date=start, end_date=start + timedelta(days=7))
        try:
            service.create_reservation(
                year=2026,
                caller=caller,
                proposal=proposal,
                today=date(2026, 1, 30),
                who="user-alder",
            )
        except ReservationPermissionError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=len(starts)) as pool:
        results = list(pool.map(book, starts))

    # Open round allows two weeks per booker.
    assert results.count(True) == 2
    assert len(repository.list_reservations(2026)) == 2


def test_repository_refuses_overlapping_writes(tmp_path):
    repository = _repository(tmp_path)
    first = repository.create_reservation(_week("b1"), who="admin-user")

    with pytest.raises(ReservationOverlapError):
        repository.create_reservation(
            _week("b2", start=date(2026, 6, 12), end=date(2026, 6, 13)),
            who="admin-user",
        )

    second = repository.create_reservation(
        _week("b2", start=date(2026, 6, 13), end=date(2026, 6, 20)),
        who="admin-user",
    )
    with pytest.raises(ReservationOverlapError):
        repository.update_reservation(replace(second, start_date=date(2026, 6, 12)), who="admin-user")

    moved = repository.update_reservation(replace(first, guest_name="Renamed"), who="admin-user")
    assert moved.guest_name == "Renamed"
    assert repository.count_audit_entries() == 3
