"""HTTP controller layer for reservations, permissions and the audit log."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from roundbook.controllers.dependencies import (
    get_caller,
    get_reservation_service,
    get_today,
    get_user_id,
    require_admin,
    require_caller,
)
from roundbook.domain.constraints import ConfigError
from roundbook.domain.models import CallerContext, Reservation
from roundbook.services.conflict_service import ReservationValidationError
from roundbook.services.reservation_service import (
    ReservationNotFoundError,
    ReservationOutcome,
    ReservationPermissionError,
    ReservationWorkflowService,
    RoundsConfigNotFoundError,
)
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["reservations"])


class ReservationRequest(BaseModel):
    """Input DTO; booking rules are checked in the service layer."""

    start_date: date
    end_date: date
    unit_id: str = Field(min_length=1)
    guest_name: str
    booker_id: str


class ReservationResponse(BaseModel):
    id: str
    start_date: date
    end_date: date
    unit_id: str
    guest_name: str
    booker_id: str
    cost: Optional[float] = None


class ReservationPermissionRow(BaseModel):
    reservation_id: str
    can_edit: bool
    can_delete: bool


class PermissionsResponse(BaseModel):
    caller_kind: str
    current_booker_id: Optional[str] = None
    managed_booker_ids: list[str] = Field(default_factory=list)
    can_add_reservation: bool
    can_add_daily_reservation: bool
    booked_counts: dict[str, int]
    reservations: list[ReservationPermissionRow]


class AuditEntryResponse(BaseModel):
    id: int
    reservation_id: str
    change_type: str
    who: str
    year: int
    timestamp: datetime
    before: dict[str, Any]
    after: dict[str, Any]


def _to_response(reservation: Reservation, cost: Optional[float] = None) -> ReservationResponse:
    return ReservationResponse(
        id=reservation.id,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
        unit_id=reservation.unit_id,
        guest_name=reservation.guest_name,
        booker_id=reservation.booker_id,
        cost=cost,
    )


def _outcome_response(outcome: ReservationOutcome) -> ReservationResponse:
    return _to_response(outcome.reservation, outcome.cost)


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ReservationValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"reasons": exc.reasons},
        )
    if isinstance(exc, ReservationPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, (ReservationNotFoundError, RoundsConfigNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConfigError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.exception("Unexpected reservation failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process reservation",
    )


@router.get(
    "/years/{year}/permissions",
    response_model=PermissionsResponse,
    status_code=status.HTTP_200_OK,
)
def get_permissions(
    year: int,
    today: date = Depends(get_today),
    caller: CallerContext = Depends(get_caller),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> PermissionsResponse:
    try:
        return PermissionsResponse(**service.permissions(year, caller, today))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get(
    "/years/{year}/reservations",
    response_model=list[ReservationResponse],
    status_code=status.HTTP_200_OK,
)
def list_reservations(
    year: int,
    _: CallerContext = Depends(require_caller),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> list[ReservationResponse]:
    return [_to_response(reservation) for reservation in service.list_reservations(year)]


@router.post(
    "/years/{year}/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    year: int,
    payload: ReservationRequest,
    today: date = Depends(get_today),
    caller: CallerContext = Depends(get_caller),
    user_id: Optional[str] = Depends(get_user_id),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> ReservationResponse:
    proposal = Reservation(id="", **payload.model_dump())
    try:
        outcome = service.create_reservation(
            year=year,
            caller=caller,
            proposal=proposal,
            today=today,
            who=user_id or "Unknown",
        )
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return _outcome_response(outcome)


@router.put(
    "/reservations/{reservation_id}",
    response_model=ReservationResponse,
    status_code=status.HTTP_200_OK,
)
def update_reservation(
    reservation_id: str,
    payload: ReservationRequest,
    caller: CallerContext = Depends(get_caller),
    user_id: Optional[str] = Depends(get_user_id),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> ReservationResponse:
    proposal = Reservation(id=reservation_id, **payload.model_dump())
    try:
        outcome = service.update_reservation(
            caller=caller,
            proposal=proposal,
            who=user_id or "Unknown",
        )
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return _outcome_response(outcome)


@router.delete(
    "/reservations/{reservation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_reservation(
    reservation_id: str,
    today: date = Depends(get_today),
    caller: CallerContext = Depends(get_caller),
    user_id: Optional[str] = Depends(get_user_id),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> Response:
    try:
        service.delete_reservation(
            caller=caller,
            reservation_id=reservation_id,
            today=today,
            who=user_id or "Unknown",
        )
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/years/{year}/audit_log",
    response_model=list[AuditEntryResponse],
    status_code=status.HTTP_200_OK,
)
def get_audit_log(
    year: int,
    _: str = Depends(require_admin),
    service: ReservationWorkflowService = Depends(get_reservation_service),
) -> list[AuditEntryResponse]:
    return [
        AuditEntryResponse(
            id=entry.id,
            reservation_id=entry.reservation_id,
            change_type=entry.change_type,
            who=entry.who,
            year=entry.year,
            timestamp=entry.timestamp,
            before=entry.before,
            after=entry.after,
        )
        for entry in service.audit_log(year)
    ]
