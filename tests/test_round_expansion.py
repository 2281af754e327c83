from __future__ import annotations

from datetime import date, timedelta

import pytest

from roundbook.domain.constraints import ConfigError, parse_rounds_config
from roundbook.domain.models import BookerOrderedRound, FixedDurationRound, RoundsConfig
from roundbook.services.round_service import expand_round, expand_rounds


def _config(rounds: list[dict], start_date: str = "2026-01-01") -> RoundsConfig:
    return parse_rounds_config(
        {"id": "config1", "year": 2026, "startDate": start_date, "rounds": rounds}
    )


def _season_config() -> RoundsConfig:
    return _config(
        [
            {"name": "Round 1", "subRoundBookerIds": ["b1", "b2"], "durationDays": 6},
            {"name": "Round 2", "durationDays": 14, "bookedWeeksLimit": 1},
            {"name": "Round 3", "subRoundBookerIds": ["b3", "b1", "b2"], "durationDays": 3},
            {"name": "Round 4", "durationWeeks": 2, "allowDeletions": True},
        ]
    )


def test_booker_ordered_round_is_split_into_sub_rounds() -> None:
    timeline = expand_rounds(_season_config())
    first = timeline[0]

    assert first.name == "Round 1"
    assert first.start_date == date(2026, 1, 1)
    assert first.end_date == date(2026, 1, 12)
    assert first.sub_round_booker_ids == ["b1", "b2"]
    assert (first.sub_rounds[0].start_date, first.sub_rounds[0].end_date) == (
        date(2026, 1, 1),
        date(2026, 1, 6),
    )
    assert (first.sub_rounds[1].start_date, first.sub_rounds[1].end_date) == (
        date(2026, 1, 7),
        date(2026, 1, 12),
    )


def test_next_round_starts_the_day_after_previous_end() -> None:
    second = expand_rounds(_season_config())[1]

    assert second.start_date == date(2026, 1, 13)
    assert second.end_date == date(2026, 1, 26)
    assert second.sub_rounds == ()
    assert second.booked_weeks_limit == 1


def test_short_sub_rounds_use_explicit_duration() -> None:
    timeline = expand_rounds(
        _config([{"name": "Short", "subRoundBookerIds": ["b1", "b2"], "durationDays": 3}])
    )
    short = timeline[0]
    assert short.sub_rounds[0].end_date == date(2026, 1, 3)
    assert short.sub_rounds[1].start_date == date(2026, 1, 4)
    assert short.end_date == date(2026, 1, 6)


def test_timeline_has_no_gaps_or_overlaps() -> None:
    timeline = expand_rounds(_season_config())
    for previous, current in zip(timeline, timeline[1:]):
        assert current.start_date == previous.end_date + timedelta(days=1)


def test_sub_rounds_partition_their_round_exactly() -> None:
    for item in expand_rounds(_season_config()):
        if not item.has_sub_rounds:
            continue
        assert item.sub_rounds[0].start_date == item.start_date
        assert item.sub_rounds[-1].end_date == item.end_date
        assert sum(sub_round.length_days for sub_round in item.sub_rounds) == item.length_days
        for previous, current in zip(item.sub_rounds, item.sub_rounds[1:]):
            assert current.start_date == previous.end_date + timedelta(days=1)


def test_flags_are_carried_onto_rounds() -> None:
    fourth = expand_rounds(_season_config())[3]
    assert fourth.allow_deletions is True
    assert fourth.allow_daily_reservations is False
    assert fourth.length_days == 14


def test_expansion_is_idempotent() -> None:
    config = _season_config()
    assert expand_rounds(config) == expand_rounds(config)


def test_empty_round_list_expands_to_empty_timeline() -> None:
    assert expand_rounds(_config([])) == []


def test_single_day_round_starts_and_ends_same_day() -> None:
    timeline = expand_rounds(_config([{"name": "Flash", "durationDays": 1}]))
    assert timeline[0].start_date == timeline[0].end_date == date(2026, 1, 1)


def test_hand_built_zero_length_spec_is_rejected() -> None:
    with pytest.raises(ConfigError):
        expand_round(FixedDurationRound(name="Broken", duration_days=0), date(2026, 1, 1))


def test_hand_built_empty_booker_order_is_rejected() -> None:
    spec = BookerOrderedRound(name="Nobody", sub_round_duration_days=7, booker_order=())
    with pytest.raises(ConfigError):
        expand_rounds(
            RoundsConfig(id="c", year=2026, start_date=date(2026, 1, 1), rounds=(spec,))
        )
