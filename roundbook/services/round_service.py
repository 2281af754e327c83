"""Round timeline expansion and active round lookup."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from roundbook.domain.constraints import ConfigError, validate_round_spec
from roundbook.domain.models import (
    Booker,
    BookerOrderedRound,
    Reservation,
    Round,
    RoundsConfig,
    RoundSpec,
    RoundState,
    SubRound,
)
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


def _build_sub_rounds(spec: BookerOrderedRound, round_start: date) -> tuple[SubRound, ...]:
    length = spec.sub_round_duration_days
    sub_rounds: list[SubRound] = []
    for position, booker_id in enumerate(spec.booker_order):
        start = round_start + timedelta(days=position * length)
        sub_rounds.append(
            SubRound(
                booker_id=booker_id,
                start_date=start,
                end_date=start + timedelta(days=length - 1),
            )
        )
    return tuple(sub_rounds)


def expand_round(spec: RoundSpec, round_start: date) -> Round:
    """Date a single round spec starting at `round_start`."""
    try:
        validate_round_spec(spec)
    except ConfigError:
        logger.warning("Rejected round spec | name=%s", spec.name)
        raise

    if isinstance(spec, BookerOrderedRound):
        sub_rounds = _build_sub_rounds(spec, round_start)
    else:
        sub_rounds = ()

    return Round(
        name=spec.name,
        start_date=round_start,
        end_date=round_start + timedelta(days=spec.length_days - 1),
        sub_rounds=sub_rounds,
        booked_weeks_limit=spec.booked_weeks_limit,
        allow_daily_reservations=spec.allow_daily_reservations,
        allow_deletions=spec.allow_deletions,
    )


def expand_rounds(config: RoundsConfig) -> list[Round]:
    """Lay rounds out back to back from `config.start_date`."""
    timeline: list[Round] = []
    next_start = config.start_date
    for spec in config.rounds:
        current = expand_round(spec, next_start)
        timeline.append(current)
        next_start = current.end_date + timedelta(days=1)

    logger.debug(
        "Round timeline expanded | year=%s | rounds=%s",
        config.year,
        len(timeline),
    )
    return timeline


def active_round(timeline: Iterable[Round], today: date) -> Optional[Round]:
    return next((item for item in timeline if item.contains(today)), None)


def active_sub_round(current_round: Optional[Round], today: date) -> Optional[SubRound]:
    """Sub-round containing `today`.

    A sub-rounded round whose sub-rounds do not cover `today` yields None, so
    nobody but an admin may book at that instant.
    """
    if current_round is None:
        return None
    return next(
        (sub_round for sub_round in current_round.sub_rounds if sub_round.contains(today)),
        None,
    )


def active_sub_round_booker(
    sub_round: Optional[SubRound],
    bookers: Sequence[Booker],
) -> Optional[Booker]:
    if sub_round is None:
        return None
    return next((booker for booker in bookers if booker.id == sub_round.booker_id), None)


def recompute(
    config: RoundsConfig,
    today: date,
    bookers: Sequence[Booker],
    reservations: Sequence[Reservation] = (),
) -> RoundState:
    """Derive the timeline and active round/sub-round for one input snapshot.

    Callers invoke this whenever the config, today, bookers or reservations
    change. Reservations do not affect the timeline; they are accepted so the
    call site can pass the whole snapshot.
    """
    del reservations
    timeline = tuple(expand_rounds(config))
    current_round = active_round(timeline, today)
    current_sub_round = active_sub_round(current_round, today)
    return RoundState(
        timeline=timeline,
        active_round=current_round,
        active_sub_round=current_sub_round,
        active_sub_round_booker=active_sub_round_booker(current_sub_round, bookers),
    )
