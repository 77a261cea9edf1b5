"""
SQLite storage layer using aiosqlite.

Stores operating windows and reservations.  Tables and triggers are
created automatically on ``open()``.

The connection runs in autocommit mode: every statement is its own
transaction, so a reservation insert or update is all-or-nothing.  The
``BEFORE INSERT`` / ``BEFORE UPDATE`` triggers reject any write that would
leave two active reservations overlapping on the same court and date; that
constraint is the final arbiter between concurrent writers.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from app.errors import ConflictError, ReservationNotFoundError, StorageUnavailableError
from app.models import NewReservation, OperatingWindow, Reservation, ReservationStatus
from app.timeutils import (
    WeekdayConvention,
    from_canonical_weekday,
    normalize_time,
    to_canonical_weekday,
)

logger = logging.getLogger(__name__)

# Message raised by the overlap triggers; used to tell them apart from other
# constraint failures.
_OVERLAP_MARKER = "reservation_overlap"

# Columns a caller may change through update_reservation().
_UPDATABLE_COLUMNS = frozenset({
    "reservation_date", "start_time", "end_time", "status",
    "price", "deposit_amount", "deposit_paid", "payment_method", "notes",
})


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS operating_windows (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    court_id        TEXT NOT NULL,
    day_of_week     INTEGER NOT NULL,   -- numbered per STORED_WEEKDAY_CONVENTION
    start_time      TEXT NOT NULL,      -- HH:MM
    end_time        TEXT NOT NULL,      -- HH:MM, 24:00 allowed
    is_available    INTEGER,            -- NULL counts as available
    CHECK (start_time < end_time)
);

CREATE INDEX IF NOT EXISTS idx_windows_court_day ON operating_windows(court_id, day_of_week);

CREATE TABLE IF NOT EXISTS reservations (
    id               TEXT PRIMARY KEY,
    court_id         TEXT NOT NULL,
    reservation_date TEXT NOT NULL,     -- YYYY-MM-DD
    start_time       TEXT NOT NULL,     -- HH:MM (rows from other clients may carry :SS)
    end_time         TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'pending',
    price            REAL,
    deposit_amount   REAL NOT NULL DEFAULT 0,
    deposit_paid     INTEGER NOT NULL DEFAULT 0,
    payment_method   TEXT,
    user_id          TEXT,
    complex_id       TEXT,
    notes            TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    CHECK (start_time < end_time),
    CHECK (status IN ('pending', 'confirmed', 'paid', 'cancelled'))
);

CREATE INDEX IF NOT EXISTS idx_res_court_date ON reservations(court_id, reservation_date);
CREATE INDEX IF NOT EXISTS idx_res_user_complex ON reservations(user_id, complex_id, status);
CREATE INDEX IF NOT EXISTS idx_res_user_date ON reservations(user_id, reservation_date, start_time);

DROP TRIGGER IF EXISTS reservations_no_overlap_insert;
CREATE TRIGGER reservations_no_overlap_insert
BEFORE INSERT ON reservations
WHEN NEW.status != 'cancelled'
BEGIN
    SELECT RAISE(ABORT, '{_OVERLAP_MARKER}')
    WHERE EXISTS (
        SELECT 1 FROM reservations r
        WHERE r.court_id = NEW.court_id
          AND r.reservation_date = NEW.reservation_date
          AND r.status != 'cancelled'
          AND substr(r.start_time, 1, 5) < substr(NEW.end_time, 1, 5)
          AND substr(NEW.start_time, 1, 5) < substr(r.end_time, 1, 5)
    );
END;

DROP TRIGGER IF EXISTS reservations_no_overlap_update;
CREATE TRIGGER reservations_no_overlap_update
BEFORE UPDATE ON reservations
WHEN NEW.status != 'cancelled'
BEGIN
    SELECT RAISE(ABORT, '{_OVERLAP_MARKER}')
    WHERE EXISTS (
        SELECT 1 FROM reservations r
        WHERE r.id != NEW.id
          AND r.court_id = NEW.court_id
          AND r.reservation_date = NEW.reservation_date
          AND r.status != 'cancelled'
          AND substr(r.start_time, 1, 5) < substr(NEW.end_time, 1, 5)
          AND substr(NEW.start_time, 1, 5) < substr(r.end_time, 1, 5)
    );
END;
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _to_db(value: Any) -> Any:
    """Convert a Python value to its column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _row_to_reservation(row: aiosqlite.Row) -> Reservation:
    """Convert a database row to a Reservation model."""
    return Reservation(
        id=row["id"],
        court_id=row["court_id"],
        reservation_date=row["reservation_date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        status=row["status"],
        price=row["price"],
        deposit_amount=row["deposit_amount"],
        deposit_paid=bool(row["deposit_paid"]),
        payment_method=row["payment_method"],
        user_id=row["user_id"],
        complex_id=row["complex_id"],
        notes=row["notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _translate_errors(func):
    """Map sqlite3 failures onto the storage contract's exceptions."""

    @functools.wraps(func)
    async def wrapper(self: SqliteStorage, *args: Any, **kwargs: Any) -> Any:
        try:
            return await func(self, *args, **kwargs)
        except sqlite3.IntegrityError as exc:
            if _OVERLAP_MARKER in str(exc):
                raise ConflictError(str(exc)) from exc
            raise
        except sqlite3.OperationalError as exc:
            logger.error("SQLite %s failed: %s", func.__name__, exc)
            raise StorageUnavailableError(operation=func.__name__) from exc

    return wrapper


# ══════════════════════════════════════════════════════════════════════════
#                           SQLITE STORAGE
# ══════════════════════════════════════════════════════════════════════════


class SqliteStorage:
    """
    StorageGateway backed by a single SQLite file.

    Create one per process, ``await open()`` at startup and ``await
    close()`` at shutdown, and hand it to whoever needs storage.  The path
    must be a file (not ``:memory:``) because window replacement uses its
    own short-lived connection for a multi-statement transaction.
    """

    enforces_exclusion = True

    def __init__(
        self,
        db_path: str,
        *,
        weekday_convention: WeekdayConvention = WeekdayConvention.MONDAY0,
    ) -> None:
        self._path = db_path
        self._weekday_convention = weekday_convention
        self._db: aiosqlite.Connection | None = None
        self._last_timestamp: datetime | None = None

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def open(self) -> None:
        """Open the database and create tables if they don't exist."""
        db_path = Path(self._path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(str(db_path), isolation_level=None)
        self._db.row_factory = aiosqlite.Row  # dict-like rows
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA busy_timeout=5000")
        await self._db.executescript(_SCHEMA)
        logger.info("Database initialized at %s", db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Storage not opened, call open() first"
        return self._db

    def _next_timestamp(self) -> datetime:
        """UTC now, nudged forward so creation times never repeat within this store."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    # ── Operating windows ──────────────────────────────────────────────

    @_translate_errors
    async def fetch_operating_windows(
        self, court_id: str, day_of_week: int
    ) -> list[OperatingWindow]:
        stored_dow = from_canonical_weekday(day_of_week, self._weekday_convention)
        async with self.db.execute(
            """
            SELECT court_id, day_of_week, start_time, end_time, is_available
            FROM operating_windows
            WHERE court_id = ? AND day_of_week = ?
            ORDER BY start_time
            """,
            (court_id, stored_dow),
        ) as cur:
            rows = await cur.fetchall()

        return [
            OperatingWindow(
                court_id=row["court_id"],
                day_of_week=to_canonical_weekday(row["day_of_week"], self._weekday_convention),
                start_time=row["start_time"],
                end_time=row["end_time"],
                is_available=None if row["is_available"] is None else bool(row["is_available"]),
            )
            for row in rows
        ]

    @_translate_errors
    async def replace_operating_windows(
        self, court_id: str, day_of_week: int, windows: list[OperatingWindow]
    ) -> list[OperatingWindow]:
        stored_dow = from_canonical_weekday(day_of_week, self._weekday_convention)
        params = [
            (court_id, stored_dow, w.start_time, w.end_time, int(w.is_available))
            for w in windows
        ]

        async with aiosqlite.connect(self._path) as conn:
            await conn.execute("PRAGMA busy_timeout=5000")
            try:
                await conn.execute(
                    "DELETE FROM operating_windows WHERE court_id = ? AND day_of_week = ?",
                    (court_id, stored_dow),
                )
                await conn.executemany(
                    """
                    INSERT INTO operating_windows
                        (court_id, day_of_week, start_time, end_time, is_available)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    params,
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

        logger.info(
            "Replaced operating windows for court %s day %d (%d windows)",
            court_id, day_of_week, len(windows),
        )
        return await self.fetch_operating_windows(court_id, day_of_week)

    # ── Reservations ───────────────────────────────────────────────────

    @_translate_errors
    async def fetch_active_reservations(
        self,
        court_id: str,
        reservation_date: date,
        *,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Reservation]:
        sql = """
            SELECT * FROM reservations
            WHERE court_id = ? AND reservation_date = ? AND status != 'cancelled'
        """
        params: list[Any] = [court_id, reservation_date.isoformat()]

        if start is not None and end is not None:
            sql += " AND substr(start_time, 1, 5) < ? AND substr(end_time, 1, 5) > ?"
            params.extend([normalize_time(end), normalize_time(start)])

        sql += " ORDER BY start_time"

        async with self.db.execute(sql, params) as cur:
            rows = await cur.fetchall()
        return [_row_to_reservation(r) for r in rows]

    @_translate_errors
    async def fetch_reservations(
        self, court_id: str, reservation_date: date
    ) -> list[Reservation]:
        async with self.db.execute(
            """
            SELECT * FROM reservations
            WHERE court_id = ? AND reservation_date = ?
            ORDER BY start_time, created_at
            """,
            (court_id, reservation_date.isoformat()),
        ) as cur:
            rows = await cur.fetchall()
        return [_row_to_reservation(r) for r in rows]

    @_translate_errors
    async def fetch_user_reservations(
        self, user_id: str, *, include_cancelled: bool = True
    ) -> list[Reservation]:
        sql = "SELECT * FROM reservations WHERE user_id = ?"
        if not include_cancelled:
            sql += " AND status != 'cancelled'"
        sql += " ORDER BY reservation_date, start_time"

        async with self.db.execute(sql, (user_id,)) as cur:
            rows = await cur.fetchall()
        return [_row_to_reservation(r) for r in rows]

    @_translate_errors
    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        async with self.db.execute(
            "SELECT * FROM reservations WHERE id = ?", (reservation_id,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_reservation(row) if row else None

    @_translate_errors
    async def find_pending_reservation(
        self, user_id: str, complex_id: str
    ) -> Reservation | None:
        async with self.db.execute(
            """
            SELECT * FROM reservations
            WHERE user_id = ? AND complex_id = ? AND status = ?
            ORDER BY created_at
            LIMIT 1
            """,
            (user_id, complex_id, ReservationStatus.PENDING.value),
        ) as cur:
            row = await cur.fetchone()
        return _row_to_reservation(row) if row else None

    @_translate_errors
    async def insert_reservation(self, row: NewReservation) -> Reservation:
        """Insert a reservation in one statement; overlap → ConflictError."""
        reservation_id = str(uuid4())
        now = _iso(self._next_timestamp())
        data = row.model_dump()

        await self.db.execute(
            """
            INSERT INTO reservations (
                id, court_id, reservation_date, start_time, end_time, status,
                price, deposit_amount, deposit_paid, payment_method,
                user_id, complex_id, notes, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                reservation_id,
                data["court_id"],
                _to_db(data["reservation_date"]),
                data["start_time"],
                data["end_time"],
                _to_db(data["status"]),
                data["price"],
                data["deposit_amount"],
                _to_db(data["deposit_paid"]),
                _to_db(data["payment_method"]),
                data["user_id"],
                data["complex_id"],
                data["notes"],
                now,
                now,
            ),
        )
        return await self.get_reservation(reservation_id)  # type: ignore[return-value]

    @_translate_errors
    async def update_reservation(
        self, reservation_id: str, patch: dict[str, Any]
    ) -> Reservation:
        """Apply *patch* in one statement; overlap → ConflictError."""
        unknown = set(patch) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        values = dict(patch)
        for key in ("start_time", "end_time"):
            if key in values:
                values[key] = normalize_time(values[key])

        assignments = ", ".join(f"{column} = ?" for column in values)
        params = [_to_db(v) for v in values.values()]
        params += [_iso(self._next_timestamp()), reservation_id]

        cur = await self.db.execute(
            f"UPDATE reservations SET {assignments}, updated_at = ? WHERE id = ?",
            params,
        )
        if cur.rowcount == 0:
            raise ReservationNotFoundError(reservation_id=reservation_id)
        return await self.get_reservation(reservation_id)  # type: ignore[return-value]
