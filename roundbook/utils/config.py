"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_name: str = "Roundbook"
    app_version: str = "1.0.0"
    database_path: Path = Path("data/roundbook.db")
    log_level: str = "INFO"
    admin_user_ids: tuple[str, ...] = field(default_factory=tuple)
    seed_demo_data: bool = True
    demo_year: int = 2026


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from ROUNDBOOK_* variables."""
    return Settings(
        app_name=os.getenv("ROUNDBOOK_APP_NAME", "Roundbook"),
        app_version=os.getenv("ROUNDBOOK_APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("ROUNDBOOK_DATABASE_PATH", "data/roundbook.db")),
        log_level=os.getenv("ROUNDBOOK_LOG_LEVEL", "INFO"),
        admin_user_ids=_env_list("ROUNDBOOK_ADMIN_USER_IDS"),
        seed_demo_data=_env_bool("ROUNDBOOK_SEED_DEMO_DATA", True),
        demo_year=int(os.getenv("ROUNDBOOK_DEMO_YEAR", "2026")),
    )
