"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from roundbook.controllers.catalog_controller import router as catalog_router
from roundbook.controllers.reservations_controller import router as reservations_router
from roundbook.controllers.rounds_controller import router as rounds_router
from roundbook.repository.data_repository import DataRepository
from roundbook.services.auth_service import AuthService
from roundbook.services.catalog_service import CatalogService
from roundbook.services.reservation_service import ReservationWorkflowService
from roundbook.utils.config import Settings, get_settings
from roundbook.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are attached to app.state; controllers resolve them through
    the providers in roundbook.controllers.dependencies.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    repository = DataRepository(settings)
    auth_service = AuthService(repository=repository, settings=settings)
    reservation_service = ReservationWorkflowService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(rounds_router)
    app.include_router(reservations_router)
    app.include_router(catalog_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.reservation_service = reservation_service
    app.state.catalog_service = CatalogService(repository=repository, settings=settings)

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; seeding is skipped once bookers exist.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema | path=%s", repository.database_path)
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo season (skipped if bookers exist)")
        repository.seed_demo_data()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
