#!/usr/bin/env python3
"""Validate local Roundbook environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date
from importlib.metadata import version
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from roundbook.repository.data_repository import DataRepository
from roundbook.services.reservation_service import ReservationWorkflowService
from roundbook.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
REQUIRED_PACKAGES = (
    ("fastapi", "fastapi"),
    ("uvicorn", "uvicorn"),
    ("pydantic", "pydantic"),
    ("httpx", "httpx"),
    ("pytest", "pytest"),
)
CHECK_YEAR = 2026


def _check_python() -> str:
    found = sys.version.split()[0]
    if sys.version_info < (3, 11):
        raise RuntimeError(f"Python >= 3.11 required, found {found}")
    return f" {found}"


def _check_packages() -> str:
    missing: list[str] = []
    for module_name, dist_name in REQUIRED_PACKAGES:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            missing.append(f"{module_name} ({exc})")
    if missing:
        raise RuntimeError("missing/unimportable -> " + "; ".join(missing))
    return ": all importable"


def _check_seed(repository: DataRepository) -> str:
    repository.seed_demo_data()
    booker_count = len(repository.list_bookers())
    week_count = len(repository.list_weeks(CHECK_YEAR))
    if booker_count == 0 or week_count == 0:
        raise RuntimeError(f"got {booker_count} bookers and {week_count} weeks")
    return f": {booker_count} bookers, {week_count} weeks"


def _check_timeline(service: ReservationWorkflowService) -> str:
    state = service.round_state(CHECK_YEAR, date(CHECK_YEAR, 1, 8))
    on_deck = state.active_sub_round.booker_id if state.active_sub_round else None
    if on_deck != "b2":
        raise RuntimeError(f"expected b2 on deck on {CHECK_YEAR}-01-08, got {on_deck}")
    return f": {len(state.timeline)} rounds, on deck={on_deck}"


def _run(name: str, check: Callable[[], str]) -> tuple[bool, str]:
    try:
        detail = check()
    except Exception as exc:
        return False, f"[FAIL] {name}: {exc}"
    return True, f"[PASS] {name}{detail}"


def main() -> int:
    temp_dir = tempfile.mkdtemp(prefix="roundbook-env-")
    settings = replace(
        get_settings(),
        database_path=Path(temp_dir) / "roundbook_validation.db",
        demo_year=CHECK_YEAR,
    )
    repository = DataRepository(settings)
    service = ReservationWorkflowService(repository=repository, settings=settings)

    checks: list[tuple[str, Callable[[], str]]] = [
        ("Python", _check_python),
        ("Required packages", _check_packages),
        ("Database initialization", lambda: repository.initialize_database() or ""),
        ("Demo season", lambda: _check_seed(repository)),
        ("Round timeline", lambda: _check_timeline(service)),
    ]
    try:
        outcomes = [_run(name, check) for name, check in checks]
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Roundbook Environment Validation")
    print(SEPARATOR_LINE)
    for _, line in outcomes:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all(ok for ok, _ in outcomes):
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
