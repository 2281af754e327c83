"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Optional, Sequence
from uuid import uuid4

from roundbook.domain.models import (
    AuditEntry,
    BookableUnit,
    Booker,
    Reservation,
    ReservableWeek,
    UnitPricing,
)
from roundbook.utils.config import Settings, get_settings
from roundbook.utils.logger import get_logger


logger = get_logger(__name__)


class ReservationOverlapError(ValueError):
    """Raised when a write would overlap another reservation on the same unit."""


def _year_bounds(year: int) -> tuple[str, str]:
    return f"{year:04d}-01-01", f"{year + 1:04d}-01-01"


def _row_to_reservation(row: sqlite3.Row) -> Reservation:
    return Reservation(
        id=str(row["id"]),
        start_date=date.fromisoformat(str(row["start_date"])),
        end_date=date.fromisoformat(str(row["end_date"])),
        unit_id=str(row["unit_id"]),
        guest_name=str(row["guest_name"]),
        booker_id=str(row["booker_id"]),
    )


def _audit_year(before: Optional[Reservation], after: Optional[Reservation]) -> int:
    source = before or after
    return source.start_date.year if source is not None else 1900


class DataRepository:
    """Encapsulates SQLite access so booking rules stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = RLock()

    @property
    def database_path(self) -> Path:
        return self._db_path

    @property
    def write_lock(self) -> RLock:
        """Serializes check-then-write reservation changes in this process."""
        return self._write_lock

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookers (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        user_id TEXT
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS AdminUsers (
                        user_id TEXT PRIMARY KEY
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Units (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        notes TEXT NOT NULL DEFAULT ''
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RoundsConfigs (
                        id TEXT PRIMARY KEY,
                        year INTEGER NOT NULL UNIQUE,
                        start_date TEXT NOT NULL,
                        rounds_json TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ReservableWeeks (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        year INTEGER NOT NULL,
                        start_date TEXT NOT NULL,
                        pricing_tier_id TEXT NOT NULL,
                        UNIQUE (year, start_date)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS UnitPricing (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        unit_id TEXT NOT NULL,
                        tier_id TEXT NOT NULL,
                        weekly_price REAL NOT NULL CHECK (weekly_price >= 0),
                        daily_price REAL,
                        UNIQUE (unit_id, tier_id),
                        FOREIGN KEY (unit_id) REFERENCES Units(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Reservations (
                        id TEXT PRIMARY KEY,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        unit_id TEXT NOT NULL,
                        guest_name TEXT NOT NULL,
                        booker_id TEXT NOT NULL,
                        FOREIGN KEY (unit_id) REFERENCES Units(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ReservationAuditLog (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        reservation_id TEXT NOT NULL,
                        change_type TEXT NOT NULL CHECK (change_type IN ('create', 'update', 'delete')),
                        who TEXT NOT NULL,
                        year INTEGER NOT NULL,
                        before_json TEXT NOT NULL,
                        after_json TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_reservations_unit_start
                    ON Reservations(unit_id, start_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_audit_year
                    ON ReservationAuditLog(year, created_at);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed a demo season only when no bookers exist yet."""
        year = self._settings.demo_year
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) AS count FROM Bookers;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return

                cursor.executemany(
                    "INSERT INTO Bookers (id, name, user_id) VALUES (?, ?, ?);",
                    [
                        ("b1", "Alder Family", "user-alder"),
                        ("b2", "Birch Family", "user-birch"),
                        ("b3", "Cedar Family", "user-cedar"),
                        ("b4", "Dogwood Family", None),
                    ],
                )
                cursor.executemany(
                    "INSERT INTO Units (id, name, notes) VALUES (?, ?, ?);",
                    [
                        ("u1", "Lakeside Cabin", "Sleeps 6"),
                        ("u2", "Hillside Cottage", "Sleeps 4"),
                    ],
                )
                cursor.executemany(
                    """
                    INSERT INTO UnitPricing (unit_id, tier_id, weekly_price, daily_price)
                    VALUES (?, ?, ?, ?);
                    """,
                    [
                        ("u1", "peak", 1400.0, 250.0),
                        ("u1", "off", 900.0, 160.0),
                        ("u2", "peak", 1100.0, None),
                        ("u2", "off", 700.0, 120.0),
                    ],
                )

                season_start = date(year, 1, 1)
                rounds = [
                    {"name": "Priority", "durationDays": 7, "subRoundBookerIds": ["b1", "b2", "b3", "b4"]},
                    {"name": "Open", "durationDays": 28, "bookedWeeksLimit": 2},
                    {"name": "Last call", "durationDays": 14, "allowDailyReservations": True, "allowDeletions": True},
                ]
                cursor.execute(
                    """
                    INSERT INTO RoundsConfigs (id, year, start_date, rounds_json)
                    VALUES (?, ?, ?, ?);
                    """,
                    (uuid4().hex, year, season_start.isoformat(), json.dumps(rounds)),
                )

                first_week = date(year, 6, 6)
                cursor.executemany(
                    """
                    INSERT INTO ReservableWeeks (year, start_date, pricing_tier_id)
                    VALUES (?, ?, ?);
                    """,
                    [
                        (
                            year,
                            (first_week + timedelta(days=7 * offset)).isoformat(),
                            "peak" if 3 <= offset <= 8 else "off",
                        )
                        for offset in range(14)
                    ],
                )
                conn.commit()
            logger.info("Demo seed completed | year=%s", year)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    def list_bookers(self) -> list[Booker]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, name, user_id FROM Bookers ORDER BY id ASC;")
            return [
                Booker(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    user_id=str(row["user_id"]) if row["user_id"] is not None else None,
                )
                for row in cursor.fetchall()
            ]

    def upsert_booker(self, booker: Booker) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Bookers (id, name, user_id) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, user_id = excluded.user_id;
                """,
                (booker.id, booker.name, booker.user_id),
            )
            conn.commit()

    def list_admin_user_ids(self) -> set[str]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT user_id FROM AdminUsers;")
            return {str(row["user_id"]) for row in cursor.fetchall()}

    def add_admin_user(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO AdminUsers (user_id) VALUES (?);",
                (user_id,),
            )
            conn.commit()

    def list_units(self) -> list[BookableUnit]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, name, notes FROM Units ORDER BY id ASC;")
            return [
                BookableUnit(id=str(row["id"]), name=str(row["name"]), notes=str(row["notes"]))
                for row in cursor.fetchall()
            ]

    def upsert_unit(self, unit: BookableUnit) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Units (id, name, notes) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, notes = excluded.notes;
                """,
                (unit.id, unit.name, unit.notes),
            )
            conn.commit()

    def get_rounds_config_record(self, year: int) -> Optional[dict[str, Any]]:
        """Return the authored config for `year` in its camelCase form."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, year, start_date, rounds_json FROM RoundsConfigs WHERE year = ?;",
                (year,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return {
                "id": str(row["id"]),
                "year": int(row["year"]),
                "startDate": str(row["start_date"]),
                "rounds": json.loads(row["rounds_json"]),
            }

    def save_rounds_config_record(self, record: dict[str, Any]) -> str:
        """Insert or replace the config for `record['year']` and return its id."""
        config_id = record.get("id") or uuid4().hex
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO RoundsConfigs (id, year, start_date, rounds_json)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(year) DO UPDATE SET
                    start_date = excluded.start_date,
                    rounds_json = excluded.rounds_json,
                    updated_at = CURRENT_TIMESTAMP;
                """,
                (
                    config_id,
                    int(record["year"]),
                    str(record["startDate"]),
                    json.dumps(record.get("rounds") or []),
                ),
            )
            conn.commit()
            cursor = conn.execute(
                "SELECT id FROM RoundsConfigs WHERE year = ?;",
                (int(record["year"]),),
            )
            return str(cursor.fetchone()["id"])

    def list_weeks(self, year: int) -> list[ReservableWeek]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT start_date, pricing_tier_id
                FROM ReservableWeeks
                WHERE year = ?
                ORDER BY start_date ASC;
                """,
                (year,),
            )
            return [
                ReservableWeek(
                    start_date=date.fromisoformat(str(row["start_date"])),
                    pricing_tier_id=str(row["pricing_tier_id"]),
                )
                for row in cursor.fetchall()
            ]

    def save_weeks(self, year: int, weeks: Sequence[ReservableWeek]) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM ReservableWeeks WHERE year = ?;", (year,))
            conn.executemany(
                """
                INSERT INTO ReservableWeeks (year, start_date, pricing_tier_id)
                VALUES (?, ?, ?);
                """,
                [(year, week.start_date.isoformat(), week.pricing_tier_id) for week in weeks],
            )
            conn.commit()

    def list_unit_pricing(self, unit_id: str) -> list[UnitPricing]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT unit_id, tier_id, weekly_price, daily_price
                FROM UnitPricing
                WHERE unit_id = ?;
                """,
                (unit_id,),
            )
            return [
                UnitPricing(
                    unit_id=str(row["unit_id"]),
                    tier_id=str(row["tier_id"]),
                    weekly_price=float(row["weekly_price"]),
                    daily_price=float(row["daily_price"]) if row["daily_price"] is not None else None,
                )
                for row in cursor.fetchall()
            ]

    def save_unit_pricing(self, pricing: UnitPricing) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO UnitPricing (unit_id, tier_id, weekly_price, daily_price)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(unit_id, tier_id) DO UPDATE SET
                    weekly_price = excluded.weekly_price,
                    daily_price = excluded.daily_price;
                """,
                (pricing.unit_id, pricing.tier_id, pricing.weekly_price, pricing.daily_price),
            )
            conn.commit()

    def list_reservations(self, year: int, unit_id: Optional[str] = None) -> list[Reservation]:
        """Reservations starting inside `year`, optionally for one unit."""
        year_start, next_year_start = _year_bounds(year)
        query = """
            SELECT id, start_date, end_date, unit_id, guest_name, booker_id
            FROM Reservations
            WHERE start_date >= ? AND start_date < ?
        """
        params: list[Any] = [year_start, next_year_start]
        if unit_id is not None:
            query += " AND unit_id = ?"
            params.append(unit_id)
        query += " ORDER BY start_date ASC, unit_id ASC;"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [_row_to_reservation(row) for row in cursor.fetchall()]

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, start_date, end_date, unit_id, guest_name, booker_id
                FROM Reservations
                WHERE id = ?;
                """,
                (reservation_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_reservation(row)

    def list_overlapping_reservations(
        self,
        unit_id: str,
        start_date: date,
        end_date: date,
    ) -> list[Reservation]:
        """Reservations on `unit_id` whose `[start, end)` intersects `[start_date, end_date)`."""
        with self._connect() as conn:
            return self._overlapping(conn, unit_id, start_date, end_date)

    @staticmethod
    def _overlapping(
        conn: sqlite3.Connection,
        unit_id: str,
        start_date: date,
        end_date: date,
        excluding: Optional[str] = None,
    ) -> list[Reservation]:
        query = """
            SELECT id, start_date, end_date, unit_id, guest_name, booker_id
            FROM Reservations
            WHERE unit_id = ? AND start_date < ? AND end_date > ?
        """
        params: list[Any] = [unit_id, end_date.isoformat(), start_date.isoformat()]
        if excluding is not None:
            query += " AND id != ?"
            params.append(excluding)
        query += " ORDER BY start_date ASC;"
        return [_row_to_reservation(row) for row in conn.execute(query, params).fetchall()]

    def _guard_overlap(
        self,
        conn: sqlite3.Connection,
        reservation: Reservation,
        excluding: Optional[str] = None,
    ) -> None:
        conn.execute("BEGIN IMMEDIATE;")
        clashes = self._overlapping(
            conn,
            reservation.unit_id,
            reservation.start_date,
            reservation.end_date,
            excluding=excluding,
        )
        if clashes:
            raise ReservationOverlapError(
                f"Unit {reservation.unit_id} is already reserved by {clashes[0].id}"
            )

    def _write_audit(
        self,
        conn: sqlite3.Connection,
        *,
        reservation_id: str,
        change_type: str,
        who: str,
        before: Optional[Reservation],
        after: Optional[Reservation],
    ) -> None:
        conn.execute(
            """
            INSERT INTO ReservationAuditLog (
                reservation_id,
                change_type,
                who,
                year,
                before_json,
                after_json,
                created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                reservation_id,
                change_type,
                who,
                _audit_year(before, after),
                json.dumps(before.to_record() if before else {}),
                json.dumps(after.to_record() if after else {}),
                datetime.now(timezone.utc).isoformat(),
            ),
        )

    def create_reservation(self, reservation: Reservation, who: str) -> Reservation:
        """Insert a reservation under a fresh id and audit the creation."""
        if reservation.id:
            raise ValueError("Reservation ID must not be set.")
        created = Reservation(
            id=uuid4().hex,
            start_date=reservation.start_date,
            end_date=reservation.end_date,
            unit_id=reservation.unit_id,
            guest_name=reservation.guest_name,
            booker_id=reservation.booker_id,
        )
        with self._write_lock, self._connect() as conn:
            self._guard_overlap(conn, created)
            conn.execute(
                """
                INSERT INTO Reservations (id, start_date, end_date, unit_id, guest_name, booker_id)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    created.id,
                    created.start_date.isoformat(),
                    created.end_date.isoformat(),
                    created.unit_id,
                    created.guest_name,
                    created.booker_id,
                ),
            )
            self._write_audit(
                conn,
                reservation_id=created.id,
                change_type="create",
                who=who,
                before=None,
                after=created,
            )
            conn.commit()
        return created

    def update_reservation(self, reservation: Reservation, who: str) -> Reservation:
        if not reservation.id:
            raise ValueError("Reservation ID must be set.")
        with self._write_lock, self._connect() as conn:
            before = self.get_reservation(reservation.id)
            if before is None:
                raise KeyError(reservation.id)
            self._guard_overlap(conn, reservation, excluding=reservation.id)
            conn.execute(
                """
                UPDATE Reservations
                SET start_date = ?, end_date = ?, unit_id = ?, guest_name = ?, booker_id = ?
                WHERE id = ?;
                """,
                (
                    reservation.start_date.isoformat(),
                    reservation.end_date.isoformat(),
                    reservation.unit_id,
                    reservation.guest_name,
                    reservation.booker_id,
                    reservation.id,
                ),
            )
            self._write_audit(
                conn,
                reservation_id=reservation.id,
                change_type="update",
                who=who,
                before=before,
                after=reservation,
            )
            conn.commit()
        return reservation

    def delete_reservation(self, reservation_id: str, who: str) -> None:
        if not reservation_id:
            raise ValueError("Reservation ID must be set.")
        with self._write_lock, self._connect() as conn:
            before = self.get_reservation(reservation_id)
            if before is None:
                raise KeyError(reservation_id)
            conn.execute("DELETE FROM Reservations WHERE id = ?;", (reservation_id,))
            self._write_audit(
                conn,
                reservation_id=reservation_id,
                change_type="delete",
                who=who,
                before=before,
                after=None,
            )
            conn.commit()

    def list_audit_log(self, year: int) -> list[AuditEntry]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, reservation_id, change_type, who, year, before_json, after_json, created_at
                FROM ReservationAuditLog
                WHERE year = ?
                ORDER BY created_at ASC, id ASC;
                """,
                (year,),
            )
            return [
                AuditEntry(
                    id=int(row["id"]),
                    reservation_id=str(row["reservation_id"]),
                    change_type=str(row["change_type"]),
                    who=str(row["who"]),
                    year=int(row["year"]),
                    timestamp=datetime.fromisoformat(str(row["created_at"])),
                    before=json.loads(row["before_json"]),
                    after=json.loads(row["after_json"]),
                )
                for row in cursor.fetchall()
            ]

    def count_audit_entries(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM ReservationAuditLog;")
            return int(cursor.fetchone()["count"])
