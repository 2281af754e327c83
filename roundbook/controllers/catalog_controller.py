"""HTTP controller layer for admin catalog upkeep: bookers, units, pricing, weeks."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from roundbook.controllers.dependencies import (
    get_catalog_service,
    require_admin,
    require_caller,
)
from roundbook.domain.models import (
    BookableUnit,
    Booker,
    CallerContext,
    ReservableWeek,
    UnitPricing,
)
from roundbook.services.catalog_service import (
    CatalogService,
    CatalogValidationError,
    UnitNotFoundError,
)


router = APIRouter(tags=["catalog"])


class BookerRequest(BaseModel):
    name: str
    user_id: Optional[str] = None


class BookerResponse(BaseModel):
    id: str
    name: str
    user_id: Optional[str] = None


class UnitRequest(BaseModel):
    name: str
    notes: str = ""


class UnitResponse(BaseModel):
    id: str
    name: str
    notes: str


class TierPrice(BaseModel):
    tier_id: str
    weekly_price: float
    daily_price: Optional[float] = None


class WeekPayload(BaseModel):
    start_date: date
    pricing_tier_id: str


class WeekResponse(WeekPayload):
    end_date: date


def _booker_response(booker: Booker) -> BookerResponse:
    return BookerResponse(id=booker.id, name=booker.name, user_id=booker.user_id)


def _unit_response(unit: BookableUnit) -> UnitResponse:
    return UnitResponse(id=unit.id, name=unit.name, notes=unit.notes)


def _tier_price(pricing: UnitPricing) -> TierPrice:
    return TierPrice(
        tier_id=pricing.tier_id,
        weekly_price=pricing.weekly_price,
        daily_price=pricing.daily_price,
    )


def _week_response(week: ReservableWeek) -> WeekResponse:
    return WeekResponse(
        start_date=week.start_date,
        end_date=week.end_date,
        pricing_tier_id=week.pricing_tier_id,
    )


def _unprocessable(exc: CatalogValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.get("/bookers", response_model=list[BookerResponse])
def list_bookers(
    _: CallerContext = Depends(require_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> list[BookerResponse]:
    return [_booker_response(booker) for booker in service.list_bookers()]


@router.put("/bookers/{booker_id}", response_model=BookerResponse)
def put_booker(
    booker_id: str,
    payload: BookerRequest,
    _: str = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> BookerResponse:
    try:
        saved = service.save_booker(Booker(id=booker_id, name=payload.name, user_id=payload.user_id))
    except CatalogValidationError as exc:
        raise _unprocessable(exc) from exc
    return _booker_response(saved)


@router.get("/units", response_model=list[UnitResponse])
def list_units(
    _: CallerContext = Depends(require_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> list[UnitResponse]:
    return [_unit_response(unit) for unit in service.list_units()]


@router.put("/units/{unit_id}", response_model=UnitResponse)
def put_unit(
    unit_id: str,
    payload: UnitRequest,
    _: str = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> UnitResponse:
    try:
        saved = service.save_unit(BookableUnit(id=unit_id, name=payload.name, notes=payload.notes))
    except CatalogValidationError as exc:
        raise _unprocessable(exc) from exc
    return _unit_response(saved)


@router.get("/units/{unit_id}/pricing", response_model=list[TierPrice])
def get_unit_pricing(
    unit_id: str,
    _: CallerContext = Depends(require_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> list[TierPrice]:
    return [_tier_price(item) for item in service.list_unit_pricing(unit_id)]


@router.put("/units/{unit_id}/pricing", response_model=list[TierPrice])
def put_unit_pricing(
    unit_id: str,
    payload: list[TierPrice],
    _: str = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> list[TierPrice]:
    tiers = [
        UnitPricing(
            unit_id=unit_id,
            tier_id=item.tier_id,
            weekly_price=item.weekly_price,
            daily_price=item.daily_price,
        )
        for item in payload
    ]
    try:
        saved = service.save_unit_pricing(unit_id, tiers)
    except UnitNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except CatalogValidationError as exc:
        raise _unprocessable(exc) from exc
    return [_tier_price(item) for item in saved]


@router.get("/years/{year}/weeks", response_model=list[WeekResponse])
def get_weeks(
    year: int,
    _: CallerContext = Depends(require_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> list[WeekResponse]:
    return [_week_response(week) for week in service.list_weeks(year)]


@router.put("/years/{year}/weeks", response_model=list[WeekResponse])
def put_weeks(
    year: int,
    payload: list[WeekPayload],
    _: str = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> list[WeekResponse]:
    weeks = [
        ReservableWeek(start_date=item.start_date, pricing_tier_id=item.pricing_tier_id)
        for item in payload
    ]
    try:
        saved = service.save_weeks(year, weeks)
    except CatalogValidationError as exc:
        raise _unprocessable(exc) from exc
    return [_week_response(week) for week in saved]
