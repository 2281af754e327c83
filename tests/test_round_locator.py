from __future__ import annotations

from datetime import date, timedelta

from roundbook.domain.constraints import parse_rounds_config
from roundbook.domain.models import Booker, Round, SubRound
from roundbook.services.round_service import (
    active_round,
    active_sub_round,
    active_sub_round_booker,
    expand_rounds,
    recompute,
)


BOOKERS = [
    Booker(id="b1", name="Booker 1", user_id="user1"),
    Booker(id="b2", name="Booker 2", user_id="user2"),
]

CONFIG = parse_rounds_config(
    {
        "id": "config1",
        "year": 2026,
        "startDate": "2026-01-01",
        "rounds": [
            {"name": "Round 1", "subRoundBookerIds": ["b1", "b2"], "durationDays": 6},
            {"name": "Round 2", "durationDays": 14, "bookedWeeksLimit": 1},
        ],
    }
)


def test_first_day_is_first_sub_round() -> None:
    state = recompute(CONFIG, date(2026, 1, 1), BOOKERS)
    assert state.active_round.name == "Round 1"
    assert state.active_sub_round_booker.id == "b1"


def test_seventh_day_is_second_sub_round() -> None:
    state = recompute(CONFIG, date(2026, 1, 7), BOOKERS)
    assert state.active_round.name == "Round 1"
    assert state.active_sub_round.booker_id == "b2"
    assert state.active_sub_round_booker.id == "b2"


def test_round_without_sub_rounds_has_no_active_booker() -> None:
    state = recompute(CONFIG, date(2026, 1, 13), BOOKERS)
    assert state.active_round.name == "Round 2"
    assert state.active_sub_round is None
    assert state.active_sub_round_booker is None


def test_after_all_rounds_nothing_is_active() -> None:
    state = recompute(CONFIG, date(2026, 2, 1), BOOKERS)
    assert state.active_round is None
    assert state.active_sub_round is None
    assert len(state.timeline) == 2


def test_before_first_round_nothing_is_active() -> None:
    assert active_round(expand_rounds(CONFIG), date(2025, 12, 31)) is None


def test_exactly_one_round_active_across_whole_span() -> None:
    timeline = expand_rounds(CONFIG)
    day = timeline[0].start_date
    while day <= timeline[-1].end_date:
        matches = [item for item in timeline if item.contains(day)]
        assert len(matches) == 1
        assert active_round(timeline, day) == matches[0]
        day += timedelta(days=1)
    assert active_round(timeline, day) is None


def test_sub_round_gap_fails_closed() -> None:
    broken = Round(
        name="Gapped",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 10),
        sub_rounds=(SubRound(booker_id="b1", start_date=date(2026, 1, 1), end_date=date(2026, 1, 4)),),
    )
    assert active_sub_round(broken, date(2026, 1, 8)) is None


def test_unknown_sub_round_booker_resolves_to_none() -> None:
    sub_round = SubRound(booker_id="ghost", start_date=date(2026, 1, 1), end_date=date(2026, 1, 6))
    assert active_sub_round_booker(sub_round, BOOKERS) is None


def test_no_round_means_no_sub_round() -> None:
    assert active_sub_round(None, date(2026, 1, 1)) is None
