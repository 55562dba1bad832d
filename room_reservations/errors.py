from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from .booking import Booking
    from .interval import DateRange


class ReservationError(Exception):
    """Base class for every error raised by the reservation core."""

    kind = "reservation_error"


class InvalidRangeError(ReservationError, ValueError):
    kind = "invalid_range"


class ConflictError(ReservationError):
    """The room already holds a confirmed booking overlapping the requested range."""

    kind = "conflict"

    def __init__(self, room_id: int, date_range: DateRange, conflicting_ids: Iterable[int] = ()) -> None:
        self.room_id = room_id
        self.date_range = date_range
        self.conflicting_ids = tuple(conflicting_ids)
        super().__init__(
            f"Room {room_id} is not available for "
            f"{date_range.start.isoformat()}~{date_range.end.isoformat()}."
        )


class NotFoundError(ReservationError, LookupError):
    kind = "not_found"

    def __init__(self, booking_id: Any) -> None:
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found.")


class BookingStateError(ReservationError):
    """A status transition was requested that the booking's current status does not allow."""

    kind = "invalid_state"

    def __init__(self, booking: Booking, message: str) -> None:
        self.booking = booking
        super().__init__(message)


class AlreadyCancelledError(BookingStateError):
    kind = "already_cancelled"

    def __init__(self, booking: Booking) -> None:
        super().__init__(booking, f"Booking {booking.booking_id} is already cancelled.")


class AlreadyConfirmedError(BookingStateError):
    kind = "already_confirmed"

    def __init__(self, booking: Booking) -> None:
        super().__init__(booking, f"Booking {booking.booking_id} is already confirmed.")


class UnavailableError(ReservationError, RuntimeError):
    """The booking store could not complete the operation (I/O failure, unreadable data)."""

    kind = "unavailable"
