"""Domain-level validation rules for authored round configuration."""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from roundbook.domain.models import (
    WEEKLY_RESERVATION_DAYS,
    BookerOrderedRound,
    FixedDurationRound,
    RoundsConfig,
    RoundSpec,
)


class ConfigError(ValueError):
    """Raised when a round configuration cannot produce a timeline."""


def _optional_int(spec: Mapping[str, Any], key: str, round_name: str) -> int | None:
    value = spec.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f'Round "{round_name}": {key} must be an integer')
    return value


def parse_iso_date(value: Any, label: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigError(f"{label} must follow YYYY-MM-DD format") from exc


def validate_round_spec(spec: RoundSpec) -> None:
    if spec.booked_weeks_limit < 0:
        raise ConfigError(f'Round "{spec.name}": bookedWeeksLimit must be >= 0')
    if isinstance(spec, BookerOrderedRound):
        if not spec.booker_order:
            raise ConfigError(f'Round "{spec.name}" must have durationDays or subRoundBookerIds')
        if spec.sub_round_duration_days < 1:
            raise ConfigError(f'Round "{spec.name}": sub-round length must be at least 1 day')
    if spec.length_days < 1:
        raise ConfigError(f'Round "{spec.name}" must last at least 1 day')


def parse_round_spec(raw: Mapping[str, Any]) -> RoundSpec:
    """Turn an authored round mapping into its tagged variant.

    `durationDays` is the sub-round length when `subRoundBookerIds` is given.
    `durationWeeks` is the legacy whole-round length and cannot be combined
    with either of them.
    """
    name = str(raw.get("name") or "")
    duration_days = _optional_int(raw, "durationDays", name)
    duration_weeks = _optional_int(raw, "durationWeeks", name)
    booked_weeks_limit = _optional_int(raw, "bookedWeeksLimit", name) or 0
    booker_order = tuple(str(booker_id) for booker_id in (raw.get("subRoundBookerIds") or []))
    flags = {
        "booked_weeks_limit": booked_weeks_limit,
        "allow_daily_reservations": bool(raw.get("allowDailyReservations")),
        "allow_deletions": bool(raw.get("allowDeletions")),
    }

    if duration_weeks is not None and duration_days is not None:
        raise ConfigError(f'Round "{name}" cannot have both durationDays and durationWeeks')
    if duration_weeks is not None and booker_order:
        raise ConfigError(f'Round "{name}" cannot have both durationWeeks and bookerOrder')

    spec: RoundSpec
    if booker_order:
        spec = BookerOrderedRound(
            name=name,
            sub_round_duration_days=(
                duration_days if duration_days is not None else WEEKLY_RESERVATION_DAYS
            ),
            booker_order=booker_order,
            **flags,
        )
    elif duration_days is not None:
        spec = FixedDurationRound(name=name, duration_days=duration_days, **flags)
    elif duration_weeks is not None:
        spec = FixedDurationRound(
            name=name,
            duration_days=duration_weeks * WEEKLY_RESERVATION_DAYS,
            **flags,
        )
    else:
        raise ConfigError(f'Round "{name}" must have durationDays or subRoundBookerIds')

    validate_round_spec(spec)
    return spec


def parse_rounds_config(raw: Mapping[str, Any]) -> RoundsConfig:
    rounds = raw.get("rounds") or []
    if not isinstance(rounds, (list, tuple)):
        raise ConfigError("rounds must be a list")
    try:
        year = int(raw.get("year"))
    except (TypeError, ValueError) as exc:
        raise ConfigError("year must be an integer") from exc
    return RoundsConfig(
        id=str(raw.get("id") or ""),
        year=year,
        start_date=parse_iso_date(raw.get("startDate"), "startDate"),
        rounds=tuple(parse_round_spec(item) for item in rounds),
    )


def round_spec_to_record(spec: RoundSpec) -> dict[str, Any]:
    record: dict[str, Any] = {"name": spec.name}
    if isinstance(spec, BookerOrderedRound):
        record["durationDays"] = spec.sub_round_duration_days
        record["subRoundBookerIds"] = list(spec.booker_order)
    else:
        record["durationDays"] = spec.duration_days
    if spec.booked_weeks_limit:
        record["bookedWeeksLimit"] = spec.booked_weeks_limit
    if spec.allow_daily_reservations:
        record["allowDailyReservations"] = True
    if spec.allow_deletions:
        record["allowDeletions"] = True
    return record


def rounds_config_to_record(config: RoundsConfig) -> dict[str, Any]:
    return {
        "id": config.id,
        "year": config.year,
        "startDate": config.start_date.isoformat(),
        "rounds": [round_spec_to_record(spec) for spec in config.rounds],
    }
