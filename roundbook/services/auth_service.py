"""Resolves request identity into a booking caller context."""

from __future__ import annotations

from typing import Optional, Sequence

from roundbook.domain.models import Booker, CallerContext
from roundbook.repository.data_repository import DataRepository
from roundbook.utils.config import Settings, get_settings
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


def resolve_caller(
    bookers: Sequence[Booker],
    *,
    user_id: Optional[str],
    is_admin: bool,
    booker_id_override: Optional[str] = None,
) -> CallerContext:
    """Pick the booker the caller acts as.

    Admins may act as any booker through `booker_id_override`; an admin with
    no resolved booker acts as admin. Everyone else is matched on `user_id`
    and may pick among the bookers linked to it with the same override.
    Every booker sharing the chosen booker's `user_id` is managed by the caller.
    """
    linked = [item for item in bookers if user_id and item.user_id == user_id]
    booker: Optional[Booker] = None
    if is_admin and booker_id_override:
        booker = next((item for item in bookers if item.id == booker_id_override), None)
    elif booker_id_override and any(item.id == booker_id_override for item in linked):
        booker = next(item for item in linked if item.id == booker_id_override)
    elif linked:
        booker = linked[0]

    if booker is None:
        managed: tuple[Booker, ...] = ()
    elif booker.user_id:
        managed = tuple(item for item in bookers if item.user_id == booker.user_id)
    else:
        managed = (booker,)
    return CallerContext(
        current_booker=booker,
        acting_as_admin=is_admin and booker is None,
        managed_bookers=managed,
    )


class AuthService:
    """Admin membership checks backed by the repository and settings."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        if user_id in self._settings.admin_user_ids:
            return True
        return user_id in self._repository.list_admin_user_ids()

    def resolve_caller(
        self,
        user_id: Optional[str],
        booker_id_override: Optional[str] = None,
    ) -> CallerContext:
        is_admin = self.is_admin(user_id)
        caller = resolve_caller(
            self._repository.list_bookers(),
            user_id=user_id,
            is_admin=is_admin,
            booker_id_override=booker_id_override,
        )
        if booker_id_override and not is_admin and not caller.manages(booker_id_override):
            logger.warning(
                "Ignoring booker override for unlinked booker | user_id=%s | booker_id=%s",
                user_id,
                booker_id_override,
            )
        logger.debug(
            "Caller resolved | user_id=%s | kind=%s",
            user_id,
            caller.kind,
        )
        return caller
