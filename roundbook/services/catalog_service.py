"""Admin-maintained catalog: bookers, units, unit pricing and reservable weeks."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

from roundbook.domain.models import (
    WEEKLY_RESERVATION_DAYS,
    BookableUnit,
    Booker,
    ReservableWeek,
    UnitPricing,
)
from roundbook.repository.data_repository import DataRepository
from roundbook.utils.config import Settings, get_settings
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


class CatalogValidationError(ValueError):
    """Raised when an admin catalog edit is malformed."""


class UnitNotFoundError(Exception):
    """Raised when pricing targets a unit that does not exist."""


def validate_weeks(year: int, weeks: Sequence[ReservableWeek]) -> list[ReservableWeek]:
    """Weeks sorted by start; each starts in `year`, has a tier, and none overlap."""
    ordered = sorted(weeks, key=lambda week: week.start_date)
    for week in ordered:
        if week.start_date.year != year:
            raise CatalogValidationError(
                f"Week {week.start_date.isoformat()} does not start in {year}"
            )
        if not week.pricing_tier_id.strip():
            raise CatalogValidationError(
                f"Week {week.start_date.isoformat()} needs a pricing tier"
            )
    for previous, current in zip(ordered, ordered[1:]):
        if current.start_date < previous.start_date + timedelta(days=WEEKLY_RESERVATION_DAYS):
            raise CatalogValidationError(
                f"Week {current.start_date.isoformat()} overlaps week {previous.start_date.isoformat()}"
            )
    return ordered


def validate_pricing(unit_id: str, tiers: Sequence[UnitPricing]) -> None:
    seen: set[str] = set()
    for tier in tiers:
        if tier.unit_id != unit_id:
            raise CatalogValidationError(f"Pricing for {tier.unit_id} sent to unit {unit_id}")
        if not tier.tier_id.strip():
            raise CatalogValidationError("Pricing tier id is required")
        if tier.tier_id in seen:
            raise CatalogValidationError(f"Pricing tier {tier.tier_id} listed twice")
        seen.add(tier.tier_id)
        if tier.weekly_price < 0 or (tier.daily_price is not None and tier.daily_price < 0):
            raise CatalogValidationError(f"Prices for tier {tier.tier_id} must be >= 0")


class CatalogService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_bookers(self) -> list[Booker]:
        return self._repository.list_bookers()

    def save_booker(self, booker: Booker) -> Booker:
        if not booker.name.strip():
            raise CatalogValidationError("Booker name is required")
        normalized = Booker(
            id=booker.id,
            name=booker.name.strip(),
            user_id=(booker.user_id or "").strip() or None,
        )
        self._repository.upsert_booker(normalized)
        logger.info(
            "Booker saved | booker_id=%s | user_id=%s",
            normalized.id,
            normalized.user_id,
        )
        return normalized

    def list_units(self) -> list[BookableUnit]:
        return self._repository.list_units()

    def save_unit(self, unit: BookableUnit) -> BookableUnit:
        if not unit.name.strip():
            raise CatalogValidationError("Unit name is required")
        self._repository.upsert_unit(unit)
        logger.info("Unit saved | unit_id=%s", unit.id)
        return unit

    def list_unit_pricing(self, unit_id: str) -> list[UnitPricing]:
        return self._repository.list_unit_pricing(unit_id)

    def save_unit_pricing(self, unit_id: str, tiers: Sequence[UnitPricing]) -> list[UnitPricing]:
        """Upsert the given tiers; tiers not listed keep their stored prices."""
        if unit_id not in {unit.id for unit in self._repository.list_units()}:
            raise UnitNotFoundError(f"Unit {unit_id} not found")
        validate_pricing(unit_id, tiers)
        for tier in tiers:
            self._repository.save_unit_pricing(tier)
        logger.info("Unit pricing saved | unit_id=%s | tiers=%s", unit_id, len(tiers))
        return self._repository.list_unit_pricing(unit_id)

    def list_weeks(self, year: int) -> list[ReservableWeek]:
        return self._repository.list_weeks(year)

    def save_weeks(self, year: int, weeks: Sequence[ReservableWeek]) -> list[ReservableWeek]:
        """Replace the reservable weeks of `year`."""
        ordered = validate_weeks(year, weeks)
        self._repository.save_weeks(year, ordered)
        logger.info("Reservable weeks saved | year=%s | weeks=%s", year, len(ordered))
        return ordered
