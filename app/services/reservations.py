"""
Reservation gateway – the only component that writes reservations.

Every booking and every move goes through the same read-check-write
protocol:

1. read the court's operating windows and active reservations for the day
   and reject the request early when it falls outside hours or overlaps
   something already booked;
2. re-read the requested range right before writing and reject any
   overlap that appeared meanwhile;
3. write in a single atomic storage call.  A storage-level conflict
   (another writer won the race) becomes ``SlotTakenError``.

Storage that cannot enforce non-overlap itself (``enforces_exclusion =
False``) gets one more step: after committing, the gateway looks for a
rival that overlaps the written range and, if it lost, undoes its own
write before reporting the slot as taken.

No in-process locks are held.  Reads that fail with
``StorageUnavailableError`` are retried; writes never are.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import date
from typing import Any, TypeVar

from app.errors import (
    ConflictError,
    InvalidRangeError,
    InvalidTransitionError,
    OutsideHoursError,
    PendingReservationExistsError,
    ReservationNotFoundError,
    SlotTakenError,
    StorageUnavailableError,
)
from app.models import (
    BookingMetadata,
    NewReservation,
    OperatingWindow,
    Reservation,
    ReservationStatus,
)
from app.services.availability import AvailabilityEngine, busy_intervals, overlaps
from app.services.consolidation import consolidate_free_slots, end_options
from app.services.storage import StorageGateway
from app.timeutils import Interval, format_minutes, parse_time, weekday_index

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Status writes allowed from each status.  Cancelled is terminal.
ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.PAID,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CANCELLED,
        ReservationStatus.PAID,
    }),
    ReservationStatus.PAID: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
}


def _slot_details(court_id: str, day: date, requested: Interval) -> dict[str, Any]:
    return {
        "court_id": court_id,
        "date": day.isoformat(),
        "start": requested.start_label,
        "end": requested.end_label,
    }


class ReservationGateway:
    """
    Books, moves and cancels reservations against an injected storage.

    *fallback_hours* is an optional ``(start, end)`` pair used as the
    opening hours of a court/weekday that has no window rows at all.
    """

    def __init__(
        self,
        storage: StorageGateway,
        engine: AvailabilityEngine | None = None,
        *,
        read_retries: int = 1,
        one_pending_per_complex: bool = True,
        fallback_hours: tuple[str, str] | None = None,
    ) -> None:
        if read_retries < 0:
            raise ValueError("read_retries must not be negative")
        if fallback_hours is not None:
            # Validate early so a bad setting fails at startup
            Interval.from_times(*fallback_hours)

        self._storage = storage
        self.engine = engine or AvailabilityEngine()
        self._read_retries = read_retries
        self._one_pending_per_complex = one_pending_per_complex
        self._fallback_hours = fallback_hours

    # ── Storage access ────────────────────────────────────────────────

    async def _read(self, fetch: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run a storage read, retrying transient failures."""
        attempt = 0
        while True:
            try:
                return await fetch(*args, **kwargs)
            except StorageUnavailableError:
                if attempt >= self._read_retries:
                    logger.error("Storage read %s failed after %d attempts", fetch.__name__, attempt + 1)
                    raise
                attempt += 1
                logger.warning(
                    "Storage read %s failed, retrying (%d/%d)",
                    fetch.__name__, attempt, self._read_retries,
                )

    async def _windows_for(self, court_id: str, day: date) -> list[OperatingWindow]:
        dow = weekday_index(day)
        windows = await self._read(self._storage.fetch_operating_windows, court_id, dow)
        if not windows and self._fallback_hours is not None:
            start, end = self._fallback_hours
            logger.debug("No windows for court %s on weekday %d, using %s-%s", court_id, dow, start, end)
            windows = [
                OperatingWindow(court_id=court_id, day_of_week=dow, start_time=start, end_time=end)
            ]
        return windows

    async def _require(self, reservation_id: str) -> Reservation:
        reservation = await self._read(self._storage.get_reservation, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id=reservation_id)
        return reservation

    # ── Checks ────────────────────────────────────────────────────────

    async def _check_bookable(
        self,
        court_id: str,
        day: date,
        requested: Interval,
        *,
        exclude_id: str | None = None,
        narrow: bool = False,
    ) -> None:
        """
        Raise OutsideHoursError or SlotTakenError unless *requested* can be
        booked.  With *narrow* only reservations overlapping the requested
        range are fetched, which is what the pre-write re-check uses.
        """
        windows = await self._windows_for(court_id, day)
        if not self.engine.is_within_operating_hours(requested, windows):
            raise OutsideHoursError(**_slot_details(court_id, day, requested))

        if narrow:
            reservations = await self._read(
                self._storage.fetch_active_reservations,
                court_id, day, start=requested.start_label, end=requested.end_label,
            )
        else:
            reservations = await self._read(
                self._storage.fetch_active_reservations, court_id, day
            )

        if not self.engine.is_range_free(requested, busy_intervals(reservations, exclude_id)):
            raise SlotTakenError(**_slot_details(court_id, day, requested))

    async def _rivals_of(self, reservation: Reservation) -> list[Reservation]:
        """Active reservations, other than *reservation*, overlapping its range."""
        found = await self._read(
            self._storage.fetch_active_reservations,
            reservation.court_id,
            reservation.reservation_date,
            start=reservation.start_time,
            end=reservation.end_time,
        )
        return [
            r for r in found
            if r.id != reservation.id and overlaps(r.interval, reservation.interval)
        ]

    # ── Booking ───────────────────────────────────────────────────────

    async def request_booking(
        self,
        court_id: str,
        day: date,
        start: str,
        end: str,
        metadata: BookingMetadata | None = None,
    ) -> Reservation:
        """
        Create a pending reservation for ``[start, end)`` on *day*.

        Raises InvalidRangeError, OutsideHoursError, SlotTakenError,
        PendingReservationExistsError or StorageUnavailableError.  Nothing
        is written unless every check passed.
        """
        requested = Interval.from_times(start, end)
        metadata = metadata or BookingMetadata()

        await self._check_bookable(court_id, day, requested)

        if self._one_pending_per_complex and metadata.user_id and metadata.complex_id:
            pending = await self._read(
                self._storage.find_pending_reservation, metadata.user_id, metadata.complex_id
            )
            if pending is not None:
                raise PendingReservationExistsError(
                    user_id=metadata.user_id,
                    complex_id=metadata.complex_id,
                    reservation_id=pending.id,
                )

        # Something may have been booked since the first read
        await self._check_bookable(court_id, day, requested, narrow=True)

        row = NewReservation(
            court_id=court_id,
            reservation_date=day,
            start_time=requested.start_label,
            end_time=requested.end_label,
            status=ReservationStatus.PENDING,
            **metadata.model_dump(),
        )
        try:
            created = await self._storage.insert_reservation(row)
        except ConflictError as exc:
            logger.warning("Lost booking race for court %s on %s %s", court_id, day, requested)
            raise SlotTakenError(**_slot_details(court_id, day, requested)) from exc

        if not self._storage.enforces_exclusion:
            await self._verify_new_booking(created)

        logger.info(
            "Booked court %s on %s %s (reservation %s)", court_id, day, requested, created.id
        )
        return created

    async def _verify_new_booking(self, created: Reservation) -> None:
        """Cancel *created* if an overlapping rival was created before it."""
        mine = (created.created_at, created.id)
        earlier = [r for r in await self._rivals_of(created) if (r.created_at, r.id) < mine]
        if not earlier:
            return

        await self._storage.update_reservation(created.id, {"status": ReservationStatus.CANCELLED})
        logger.warning(
            "Reservation %s overlaps earlier reservation %s, cancelled it",
            created.id, earlier[0].id,
        )
        raise SlotTakenError(
            **_slot_details(created.court_id, created.reservation_date, created.interval)
        )

    async def move_or_resize(
        self,
        reservation_id: str,
        new_date: date,
        new_start: str,
        new_end: str,
    ) -> Reservation:
        """
        Move a reservation to a new date and/or time range on the same court.
        The reservation's own current range never blocks the move.
        """
        requested = Interval.from_times(new_start, new_end)
        current = await self._require(reservation_id)
        if current.status is ReservationStatus.CANCELLED:
            raise InvalidTransitionError(
                "Cancelled reservations cannot be moved. Book a new time instead.",
                reservation_id=reservation_id,
                status=current.status.value,
            )

        court_id = current.court_id
        await self._check_bookable(court_id, new_date, requested, exclude_id=reservation_id)
        await self._check_bookable(
            court_id, new_date, requested, exclude_id=reservation_id, narrow=True
        )

        patch = {
            "reservation_date": new_date,
            "start_time": requested.start_label,
            "end_time": requested.end_label,
        }
        try:
            moved = await self._storage.update_reservation(reservation_id, patch)
        except ConflictError as exc:
            logger.warning(
                "Lost race moving reservation %s to %s %s", reservation_id, new_date, requested
            )
            raise SlotTakenError(**_slot_details(court_id, new_date, requested)) from exc

        if not self._storage.enforces_exclusion and await self._rivals_of(moved):
            await self._storage.update_reservation(
                reservation_id,
                {
                    "reservation_date": current.reservation_date,
                    "start_time": current.start_time,
                    "end_time": current.end_time,
                },
            )
            logger.warning("Move of reservation %s collided, restored %s", reservation_id, current.interval)
            raise SlotTakenError(**_slot_details(court_id, new_date, requested))

        logger.info(
            "Moved reservation %s from %s %s to %s %s",
            reservation_id, current.reservation_date, current.interval, new_date, requested,
        )
        return moved

    async def cancel(self, reservation_id: str) -> Reservation:
        """Cancel a reservation. Cancelling twice is harmless."""
        current = await self._require(reservation_id)
        if current.status is ReservationStatus.CANCELLED:
            return current

        cancelled = await self._storage.update_reservation(
            reservation_id, {"status": ReservationStatus.CANCELLED}
        )
        logger.info("Cancelled reservation %s", reservation_id)
        return cancelled

    async def update_status(
        self, reservation_id: str, status: ReservationStatus | str
    ) -> Reservation:
        """Owner/admin status change; see ALLOWED_TRANSITIONS."""
        try:
            target = ReservationStatus(status)
        except ValueError as exc:
            raise InvalidTransitionError(f"Unknown status '{status}'.", status=str(status)) from exc

        current = await self._require(reservation_id)
        if current.status is target:
            return current
        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidTransitionError(
                f"Cannot change a {current.status.value} reservation to {target.value}.",
                reservation_id=reservation_id,
                current=current.status.value,
                requested=target.value,
            )

        try:
            updated = await self._storage.update_reservation(reservation_id, {"status": target})
        except ConflictError as exc:
            raise SlotTakenError(
                **_slot_details(current.court_id, current.reservation_date, current.interval)
            ) from exc

        logger.info(
            "Reservation %s status %s -> %s", reservation_id, current.status.value, target.value
        )
        return updated

    # ── Read helpers ──────────────────────────────────────────────────

    async def list_free_slots(
        self, court_id: str, day: date, step_minutes: int | None = None
    ) -> list[Interval]:
        windows = await self._windows_for(court_id, day)
        reservations = await self._read(self._storage.fetch_active_reservations, court_id, day)
        return self.engine.free_slots_for_day(windows, reservations, step_minutes)

    async def list_free_ranges(
        self, court_id: str, day: date, step_minutes: int | None = None
    ) -> list[Interval]:
        return consolidate_free_slots(await self.list_free_slots(court_id, day, step_minutes))

    async def list_end_options(
        self, court_id: str, day: date, start: str, step_minutes: int | None = None
    ) -> list[str]:
        """End times (HH:MM) a booking starting at *start* can pick."""
        start_minute = parse_time(start)
        free = await self.list_free_slots(court_id, day, step_minutes)
        return [format_minutes(m) for m in end_options(free, start_minute)]

    async def get_reservation(self, reservation_id: str) -> Reservation:
        return await self._require(reservation_id)

    async def list_reservations(
        self, court_id: str, day: date, include_cancelled: bool = False
    ) -> list[Reservation]:
        if include_cancelled:
            return await self._read(self._storage.fetch_reservations, court_id, day)
        return await self._read(self._storage.fetch_active_reservations, court_id, day)

    async def list_user_reservations(
        self, user_id: str, include_cancelled: bool = True
    ) -> list[Reservation]:
        """A customer's reservations across all courts, oldest date first."""
        return await self._read(
            self._storage.fetch_user_reservations, user_id, include_cancelled=include_cancelled
        )

    # ── Operating windows ─────────────────────────────────────────────

    async def get_operating_windows(self, court_id: str, day_of_week: int) -> list[OperatingWindow]:
        """Stored windows only; fallback hours are not included."""
        return await self._read(self._storage.fetch_operating_windows, court_id, day_of_week)

    async def replace_operating_windows(
        self, court_id: str, day_of_week: int, windows: Sequence[OperatingWindow]
    ) -> list[OperatingWindow]:
        for window in windows:
            if window.court_id != court_id or window.day_of_week != day_of_week:
                raise InvalidRangeError(
                    "Every window must belong to the court and weekday being replaced.",
                    court_id=window.court_id,
                    day_of_week=window.day_of_week,
                )

        saved = await self._storage.replace_operating_windows(court_id, day_of_week, list(windows))
        logger.info(
            "Court %s weekday %d now has %d operating windows", court_id, day_of_week, len(saved)
        )
        return saved
