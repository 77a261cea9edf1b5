"""
Abstract interface for the reservation storage collaborator.

The reservation gateway only talks to storage through this protocol, so
the SQLite implementation in ``app.db`` can be swapped for any other
backend (or an in-memory double in tests) without touching booking logic.

Contract notes:

* Every method may suspend; none of them holds application-level locks.
* ``insert_reservation`` and ``update_reservation`` are single atomic
  writes.  When a write would leave two active reservations overlapping
  on the same court and date, an implementation that can detect it raises
  ``app.errors.ConflictError``.
* ``enforces_exclusion`` tells the gateway whether that detection is
  guaranteed.  When it is False the gateway verifies after committing.
* Transient I/O failures surface as ``app.errors.StorageUnavailableError``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from app.models import NewReservation, OperatingWindow, Reservation


class StorageGateway(Protocol):
    """Protocol that every storage backend must satisfy."""

    enforces_exclusion: bool

    # ── Operating windows ─────────────────────────────────────────────
    async def fetch_operating_windows(
        self, court_id: str, day_of_week: int
    ) -> list[OperatingWindow]:
        """Return all windows (available or not) for a court and canonical weekday."""
        ...

    async def replace_operating_windows(
        self, court_id: str, day_of_week: int, windows: list[OperatingWindow]
    ) -> list[OperatingWindow]:
        """Replace every window of a court/weekday in one step."""
        ...

    # ── Reservations ──────────────────────────────────────────────────
    async def fetch_active_reservations(
        self,
        court_id: str,
        reservation_date: date,
        *,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Reservation]:
        """
        Return non-cancelled reservations of a court on a date.
        When *start* and *end* are given, only rows overlapping that range.
        """
        ...

    async def fetch_reservations(
        self, court_id: str, reservation_date: date
    ) -> list[Reservation]:
        """Return every reservation of a court on a date, any status."""
        ...

    async def fetch_user_reservations(
        self, user_id: str, *, include_cancelled: bool = True
    ) -> list[Reservation]:
        """Every reservation of a user, ordered by date then start time."""
        ...

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        ...

    async def find_pending_reservation(
        self, user_id: str, complex_id: str
    ) -> Reservation | None:
        """Return one pending reservation of a user at a complex, if any."""
        ...

    async def insert_reservation(self, row: NewReservation) -> Reservation:
        ...

    async def update_reservation(
        self, reservation_id: str, patch: dict[str, Any]
    ) -> Reservation:
        ...
