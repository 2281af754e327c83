"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status

from roundbook.domain.models import CallerContext
from roundbook.services.auth_service import AuthService
from roundbook.services.catalog_service import CatalogService
from roundbook.services.reservation_service import ReservationWorkflowService
from roundbook.utils.config import get_settings
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        repository = getattr(request.app.state, "repository", None)
        service = AuthService(repository=repository, settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_reservation_service(request: Request) -> ReservationWorkflowService:
    service = getattr(request.app.state, "reservation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reservation service is not initialized",
        )
    return service


def get_catalog_service(request: Request) -> CatalogService:
    service = getattr(request.app.state, "catalog_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog service is not initialized",
        )
    return service


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Identity asserted by the upstream authentication proxy."""
    return x_user_id or None


def get_caller(
    user_id: Optional[str] = Depends(get_user_id),
    x_booker_id: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> CallerContext:
    return auth_service.resolve_caller(user_id, booker_id_override=x_booker_id)


def require_caller(
    user_id: Optional[str] = Depends(get_user_id),
    caller: CallerContext = Depends(get_caller),
) -> CallerContext:
    """Caller resolved to an admin or a booker; anonymous reads are refused."""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    if caller.kind == "anonymous":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not linked to a booker",
        )
    return caller


def require_admin(
    user_id: Optional[str] = Depends(get_user_id),
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    if not auth_service.is_admin(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Must be admin",
        )
    return user_id


def get_today(
    today: Optional[date] = Query(default=None),
    user_id: Optional[str] = Depends(get_user_id),
    auth_service: AuthService = Depends(get_auth_service),
) -> date:
    """Real current date unless an admin previews another day."""
    if today is None:
        return date.today()
    if auth_service.is_admin(user_id):
        return today
    logger.warning("Ignoring today override from non-admin | user_id=%s", user_id)
    return date.today()
