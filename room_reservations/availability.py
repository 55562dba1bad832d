from __future__ import annotations

from typing import Iterable

from .booking import Booking
from .interval import DateRange, overlaps


def find_conflicts(room_id: int, date_range: DateRange, bookings: Iterable[Booking]) -> list[Booking]:
    """Return the confirmed bookings of ``room_id`` that overlap ``date_range``."""
    return [
        booking
        for booking in bookings
        if booking.room_id == room_id and booking.status.blocks_inventory and overlaps(booking.date_range, date_range)
    ]


def is_available(room_id: int, date_range: DateRange, bookings: Iterable[Booking]) -> bool:
    """Return True if no confirmed booking of the room overlaps the requested range.

    Pending and cancelled bookings never hold inventory.
    """
    for booking in bookings:
        if booking.room_id != room_id or not booking.status.blocks_inventory:
            continue
        if overlaps(booking.date_range, date_range):
            return False
    return True
