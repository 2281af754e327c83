"""Tests for authored round configuration parsing.

Covers every ConfigError branch in parse_round_spec() and parse_rounds_config().
"""

from __future__ import annotations

from datetime import date

import pytest

from roundbook.domain.constraints import (
    ConfigError,
    parse_round_spec,
    parse_rounds_config,
    rounds_config_to_record,
)
from roundbook.domain.models import BookerOrderedRound, FixedDurationRound


def valid_config(**overrides) -> dict:
    """Return a valid baseline authored config, optionally overriding fields."""
    defaults = {
        "id": "config1",
        "year": 2026,
        "startDate": "2026-01-01",
        "rounds": [
            {"name": "Round 1", "subRoundBookerIds": ["b1", "b2"], "durationDays": 6},
            {"name": "Round 2", "durationDays": 14, "bookedWeeksLimit": 1},
        ],
    }
    defaults.update(overrides)
    return defaults


# --- Baseline pass ---

def test_valid_config_parses_into_tagged_variants() -> None:
    config = parse_rounds_config(valid_config())

    assert config.start_date == date(2026, 1, 1)
    first, second = config.rounds
    assert isinstance(first, BookerOrderedRound)
    assert first.sub_round_duration_days == 6
    assert first.booker_order == ("b1", "b2")
    assert first.length_days == 12
    assert isinstance(second, FixedDurationRound)
    assert second.length_days == 14
    assert second.booked_weeks_limit == 1


def test_defaults_are_unlimited_and_disallowing() -> None:
    spec = parse_round_spec({"name": "Open", "durationDays": 3})
    assert spec.booked_weeks_limit == 0
    assert spec.allow_daily_reservations is False
    assert spec.allow_deletions is False


# --- Missing structure ---

def test_round_without_duration_or_booker_order_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Empty"})


def test_empty_booker_order_without_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Empty", "subRoundBookerIds": []})


def test_empty_booker_order_with_duration_is_a_fixed_round() -> None:
    spec = parse_round_spec({"name": "Fixed", "subRoundBookerIds": [], "durationDays": 5})
    assert isinstance(spec, FixedDurationRound)
    assert spec.length_days == 5


# --- Non-positive lengths ---

def test_zero_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Zero", "durationDays": 0})


def test_negative_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Negative", "durationDays": -3})


def test_zero_sub_round_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Zero", "durationDays": 0, "subRoundBookerIds": ["b1"]})


def test_non_integer_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Text", "durationDays": "7"})


def test_boolean_duration_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Flag", "durationDays": True})


def test_negative_booked_weeks_limit_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Limit", "durationDays": 7, "bookedWeeksLimit": -1})


# --- Ambiguous legacy weeks ---

def test_duration_weeks_is_seven_days_per_week() -> None:
    spec = parse_round_spec({"name": "Legacy", "durationWeeks": 2})
    assert isinstance(spec, FixedDurationRound)
    assert spec.length_days == 14


def test_duration_weeks_with_booker_order_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Both", "durationWeeks": 2, "subRoundBookerIds": ["b1"]})


def test_duration_weeks_with_duration_days_raises() -> None:
    with pytest.raises(ConfigError):
        parse_round_spec({"name": "Both", "durationWeeks": 2, "durationDays": 14})


def test_booker_order_without_duration_uses_week_long_sub_rounds() -> None:
    spec = parse_round_spec({"name": "Weekly turns", "subRoundBookerIds": ["b1", "b2", "b3"]})
    assert isinstance(spec, BookerOrderedRound)
    assert spec.sub_round_duration_days == 7
    assert spec.length_days == 21


# --- Config-level fields ---

def test_invalid_start_date_raises() -> None:
    with pytest.raises(ConfigError):
        parse_rounds_config(valid_config(startDate="01/01/2026"))


def test_missing_year_raises() -> None:
    with pytest.raises(ConfigError):
        parse_rounds_config(valid_config(year=None))


def test_config_record_reparses_to_same_config() -> None:
    config = parse_rounds_config(valid_config())
    assert parse_rounds_config(rounds_config_to_record(config)) == config
