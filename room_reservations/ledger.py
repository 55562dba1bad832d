from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Iterator, Protocol, Sequence
import itertools
import threading

from .availability import find_conflicts, is_available
from .booking import Booking, BookingStatus
from .errors import (
    AlreadyCancelledError,
    AlreadyConfirmedError,
    ConflictError,
    InvalidRangeError,
    NotFoundError,
)
from .interval import DateRange
from .yaml_store import InMemoryBookingStore


class BookingStore(Protocol):
    def load_bookings(self) -> list[Booking]: ...

    def save_room(
        self,
        room_id: int,
        bookings: Sequence[Booking],
        event_type: str,
        payload: dict[str, Any],
    ) -> None: ...


class ReservationLedger:
    """Authoritative set of bookings, partitioned by room.

    Every mutation of a room runs inside that room's lock: the availability
    check, the store write and the in-memory commit form one unit. Rooms never
    share a lock, so writes to different rooms proceed in parallel. Reads work
    on a snapshot and take no room lock.
    """

    def __init__(self, store: BookingStore | None = None) -> None:
        self.store: BookingStore = store if store is not None else InMemoryBookingStore()
        self._rooms: dict[int, list[Booking]] = {}
        self._room_by_booking: dict[int, int] = {}
        self._room_locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._id_lock = threading.Lock()

        for booking in sorted(self.store.load_bookings(), key=lambda row: row.booking_id):
            self._rooms.setdefault(booking.room_id, []).append(booking)
            self._room_by_booking[booking.booking_id] = booking.room_id
        self._ids = itertools.count(max(self._room_by_booking, default=0) + 1)

    @contextmanager
    def _room_scope(self, room_id: int) -> Iterator[None]:
        with self._locks_guard:
            lock = self._room_locks.setdefault(room_id, threading.Lock())
        with lock:
            yield

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def _snapshot(self, room_id: int) -> tuple[Booking, ...]:
        return tuple(self._rooms.get(room_id, ()))

    def query(self, room_id: int, date_range: DateRange) -> bool:
        _require_range(date_range)
        return is_available(room_id, date_range, self._snapshot(room_id))

    def reserve(
        self,
        room_id: int,
        date_range: DateRange,
        guest_id: str,
        status: BookingStatus | str = BookingStatus.CONFIRMED,
    ) -> Booking:
        _require_range(date_range)
        status = BookingStatus(status)
        if status is BookingStatus.CANCELLED:
            raise ValueError("A booking cannot be created in CANCELLED status.")

        with self._room_scope(room_id):
            current = self._rooms.get(room_id, [])
            conflicts = find_conflicts(room_id, date_range, current)
            if conflicts:
                raise ConflictError(room_id, date_range, [row.booking_id for row in conflicts])

            booking = Booking(
                booking_id=self._next_id(),
                room_id=room_id,
                guest_id=guest_id,
                date_range=date_range,
                status=status,
            )
            self._commit(room_id, [*current, booking], "BOOKING_CREATED", booking)
            self._room_by_booking[booking.booking_id] = room_id
        return booking

    def confirm(self, booking_id: int) -> Booking:
        room_id = self._locate(booking_id)
        with self._room_scope(room_id):
            current = self._rooms[room_id]
            index, booking = self._find(current, booking_id)
            if booking.status is BookingStatus.CANCELLED:
                raise AlreadyCancelledError(booking)
            if booking.status is BookingStatus.CONFIRMED:
                raise AlreadyConfirmedError(booking)

            conflicts = find_conflicts(room_id, booking.date_range, current)
            if conflicts:
                raise ConflictError(room_id, booking.date_range, [row.booking_id for row in conflicts])

            confirmed = replace(booking, status=BookingStatus.CONFIRMED)
            updated = list(current)
            updated[index] = confirmed
            self._commit(room_id, updated, "BOOKING_CONFIRMED", confirmed)
        return confirmed

    def cancel(self, booking_id: int) -> Booking:
        room_id = self._locate(booking_id)
        with self._room_scope(room_id):
            current = self._rooms[room_id]
            index, booking = self._find(current, booking_id)
            if booking.status is BookingStatus.CANCELLED:
                raise AlreadyCancelledError(booking)

            cancelled = replace(booking, status=BookingStatus.CANCELLED)
            updated = list(current)
            updated[index] = cancelled
            self._commit(room_id, updated, "BOOKING_CANCELLED", cancelled)
        return cancelled

    def get(self, booking_id: int) -> Booking:
        room_id = self._locate(booking_id)
        _, booking = self._find(self._snapshot(room_id), booking_id)
        return booking

    def list(self, room_id: int | None = None, status: BookingStatus | str | None = None) -> list[Booking]:
        if status is not None:
            status = BookingStatus(status)
        if room_id is not None:
            rows = list(self._snapshot(room_id))
        else:
            rows = [booking for key in list(self._rooms) for booking in self._snapshot(key)]
        if status is not None:
            rows = [booking for booking in rows if booking.status is status]
        return sorted(rows, key=lambda booking: booking.booking_id)

    def _locate(self, booking_id: int) -> int:
        room_id = self._room_by_booking.get(booking_id)
        if room_id is None:
            raise NotFoundError(booking_id)
        return room_id

    @staticmethod
    def _find(bookings: Sequence[Booking], booking_id: int) -> tuple[int, Booking]:
        for index, booking in enumerate(bookings):
            if booking.booking_id == booking_id:
                return index, booking
        raise NotFoundError(booking_id)

    def _commit(self, room_id: int, bookings: list[Booking], event_type: str, booking: Booking) -> None:
        # Store first: a failed write raises UnavailableError and leaves memory untouched.
        self.store.save_room(room_id, bookings, event_type, booking.to_dict())
        self._rooms[room_id] = bookings


def _require_range(date_range: Any) -> None:
    if not isinstance(date_range, DateRange):
        raise InvalidRangeError(f"Expected a DateRange, got {date_range!r}.")
