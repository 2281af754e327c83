"""Domain models for reservation rounds, bookers and reservations."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union


DAILY_RESERVATION_DAYS = 1
WEEKLY_RESERVATION_DAYS = 7


@dataclass(frozen=True)
class Booker:
    id: str
    name: str
    user_id: Optional[str] = None


@dataclass(frozen=True)
class BookableUnit:
    id: str
    name: str
    notes: str = ""


@dataclass(frozen=True)
class Reservation:
    """A booked stay; `end_date` is exclusive."""

    id: str
    start_date: date
    end_date: date
    unit_id: str
    guest_name: str
    booker_id: str

    @property
    def length_days(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def is_daily(self) -> bool:
        return self.length_days == DAILY_RESERVATION_DAYS

    def days(self) -> list[date]:
        return [
            self.start_date + timedelta(days=offset)
            for offset in range(max(0, self.length_days))
        ]

    def to_record(self) -> dict[str, str]:
        return {
            "id": self.id,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "unitId": self.unit_id,
            "guestName": self.guest_name,
            "bookerId": self.booker_id,
        }


@dataclass(frozen=True)
class FixedDurationRound:
    """Round of a fixed length open to every booker."""

    name: str
    duration_days: int
    booked_weeks_limit: int = 0
    allow_daily_reservations: bool = False
    allow_deletions: bool = False

    @property
    def length_days(self) -> int:
        return self.duration_days


@dataclass(frozen=True)
class BookerOrderedRound:
    """Round split into equal sub-rounds, one per booker in `booker_order`."""

    name: str
    sub_round_duration_days: int
    booker_order: tuple[str, ...]
    booked_weeks_limit: int = 0
    allow_daily_reservations: bool = False
    allow_deletions: bool = False

    @property
    def length_days(self) -> int:
        return self.sub_round_duration_days * len(self.booker_order)


RoundSpec = Union[FixedDurationRound, BookerOrderedRound]


@dataclass(frozen=True)
class RoundsConfig:
    id: str
    year: int
    start_date: date
    rounds: tuple[RoundSpec, ...]


@dataclass(frozen=True)
class SubRound:
    booker_id: str
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def length_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class Round:
    """Dated round; `end_date` is inclusive."""

    name: str
    start_date: date
    end_date: date
    sub_rounds: tuple[SubRound, ...] = ()
    booked_weeks_limit: int = 0
    allow_daily_reservations: bool = False
    allow_deletions: bool = False

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def length_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def has_sub_rounds(self) -> bool:
        return bool(self.sub_rounds)

    @property
    def sub_round_booker_ids(self) -> list[str]:
        return [sub_round.booker_id for sub_round in self.sub_rounds]


@dataclass(frozen=True)
class RoundState:
    """Everything derived from one (config, today) snapshot."""

    timeline: tuple[Round, ...]
    active_round: Optional[Round]
    active_sub_round: Optional[SubRound]
    active_sub_round_booker: Optional[Booker]


@dataclass(frozen=True)
class CallerContext:
    """Who is asking. `managed_bookers` are every booker the login may act for."""

    current_booker: Optional[Booker] = None
    acting_as_admin: bool = False
    managed_bookers: tuple[Booker, ...] = ()

    def manages(self, booker_id: str) -> bool:
        return any(booker.id == booker_id for booker in self.managed_bookers)

    def acting_for(self, booker_id: str) -> CallerContext:
        """Same caller, checked as the managed booker `booker_id`."""
        if self.acting_as_admin or not self.manages(booker_id):
            return self
        booker = next(item for item in self.managed_bookers if item.id == booker_id)
        return replace(self, current_booker=booker)

    @property
    def kind(self) -> str:
        if self.acting_as_admin:
            return "admin"
        if self.current_booker is not None:
            return "booker"
        return "anonymous"


@dataclass(frozen=True)
class ReservableWeek:
    """A bookable week spanning `[start_date, start_date + 7)`."""

    start_date: date
    pricing_tier_id: str

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=WEEKLY_RESERVATION_DAYS)

    def contains(self, day: date) -> bool:
        return self.start_date <= day < self.end_date


@dataclass(frozen=True)
class UnitPricing:
    unit_id: str
    tier_id: str
    weekly_price: float
    daily_price: Optional[float] = None


@dataclass(frozen=True)
class AuditEntry:
    id: int
    reservation_id: str
    change_type: str
    who: str
    year: int
    timestamp: datetime
    before: dict[str, Any] = field(default_factory=dict)
    after: dict[str, Any] = field(default_factory=dict)
