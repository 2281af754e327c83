"""HTTP controller layer for reservation round configuration and timeline."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from roundbook.controllers.dependencies import (
    get_reservation_service,
    get_today,
    require_admin,
)
from roundbook.domain.constraints import ConfigError, rounds_config_to_record
from roundbook.domain.models import Round, SubRound
from roundbook.services.reservation_service import (
    ReservationWorkflowService,
    RoundsConfigNotFoundError,
)
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["rounds"])


class RoundSpecRequest(BaseModel):
    """Authored round as entered in the admin form."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    duration_days: Optional[StrictInt] = Field(default=None, alias="durationDays")
    duration_weeks: Optional[StrictInt] = Field(default=None, alias="durationWeeks")
    sub_round_booker_ids: Optional[list[str]] = Field(default=None, alias="subRoundBookerIds")
    booked_weeks_limit: Optional[StrictInt] = Field(default=None, alias="bookedWeeksLimit")
    allow_daily_reservations: bool = Field(default=False, alias="allowDailyReservations")
    allow_deletions: bool = Field(default=False, alias="allowDeletions")


class RoundsConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(alias="startDate")
    rounds: list[RoundSpecRequest]


class SubRoundResponse(BaseModel):
    booker_id: str
    start_date: date
    end_date: date


class RoundResponse(BaseModel):
    name: str
    start_date: date
    end_date: date
    sub_rounds: list[SubRoundResponse]
    booked_weeks_limit: int = Field(ge=0)
    allow_daily_reservations: bool
    allow_deletions: bool


class RoundTimelineResponse(BaseModel):
    year: int
    today: date
    rounds: list[RoundResponse]
    active_round: Optional[RoundResponse] = None
    active_sub_round: Optional[SubRoundResponse] = None
    active_sub_round_booker_id: Optional[str] = None


def _sub_round_response(sub_round: SubRound) -> SubRoundResponse:
    return SubRoundResponse(
        booker_id=sub_round.booker_id,
        start_date=sub_round.start_date,
        end_date=sub_round.end_date,
    )


def _round_response(item: Round) -> RoundResponse:
    return RoundResponse(
        name=item.name,
        start_date=item.start_date,
        end_date=item.end_date,
        sub_rounds=[_sub_round_response(sub_round) for sub_round in item.sub_rounds],
        booked_weeks_limit=item.booked_weeks_limit,
        allow_daily_reservations=item.allow_daily_reservations,
        allow_deletions=item.allow_deletions,
    )


@router.get(
    "/years/{year}/rounds",
    response_model=RoundTimelineResponse,
    status_code=status.HTTP_200_OK,
)
def get_round_timeline(
    year: int,
    today: date = Depends(get_today),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> RoundTimelineResponse:
    """Expand the stored config and locate the active round for today."""
    try:
        state = service.round_state(year, today)
    except RoundsConfigNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConfigError as exc:
        logger.error("Stored rounds config is invalid | year=%s | error=%s", year, exc)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return RoundTimelineResponse(
        year=year,
        today=today,
        rounds=[_round_response(item) for item in state.timeline],
        active_round=_round_response(state.active_round) if state.active_round else None,
        active_sub_round=(
            _sub_round_response(state.active_sub_round) if state.active_sub_round else None
        ),
        active_sub_round_booker_id=(
            state.active_sub_round.booker_id if state.active_sub_round else None
        ),
    )


@router.put(
    "/years/{year}/rounds",
    status_code=status.HTTP_200_OK,
)
def put_rounds_config(
    year: int,
    payload: RoundsConfigRequest,
    _: str = Depends(require_admin),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> dict:
    """Validate and store an authored configuration; nothing is stored on error."""
    record = {
        "startDate": payload.start_date.isoformat(),
        "rounds": [
            spec.model_dump(by_alias=True, exclude_none=True) for spec in payload.rounds
        ],
    }
    try:
        config = service.save_config(year, record)
    except ConfigError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return rounds_config_to_record(config)
