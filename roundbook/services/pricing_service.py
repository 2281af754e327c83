"""Reservation price quotes from per-unit tier pricing."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from roundbook.domain.models import WEEKLY_RESERVATION_DAYS, UnitPricing


def reservation_cost(
    pricing: Sequence[UnitPricing],
    tier_id: str,
    start_date: date,
    end_date: date,
) -> Optional[float]:
    applicable = next((item for item in pricing if item.tier_id == tier_id), None)
    if applicable is None:
        return None
    days = (end_date - start_date).days
    if days == WEEKLY_RESERVATION_DAYS or applicable.daily_price is None:
        return float(applicable.weekly_price)
    return float(applicable.daily_price * days)
