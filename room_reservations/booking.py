from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from .interval import DateRange


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"

    @property
    def blocks_inventory(self) -> bool:
        return self is BookingStatus.CONFIRMED


@dataclass(frozen=True)
class Booking:
    booking_id: int
    room_id: int
    guest_id: str
    date_range: DateRange
    status: BookingStatus = BookingStatus.CONFIRMED

    @property
    def start(self) -> date:
        return self.date_range.start

    @property
    def end(self) -> date:
        return self.date_range.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.booking_id,
            "room_id": self.room_id,
            "guest_id": self.guest_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status.value,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Booking":
        return Booking(
            booking_id=int(data["id"]),
            room_id=int(data["room_id"]),
            guest_id=str(data["guest_id"]),
            date_range=DateRange.parse(str(data["start"]), str(data["end"])),
            status=BookingStatus(str(data.get("status", BookingStatus.CONFIRMED.value))),
        )


@dataclass(frozen=True)
class AvailabilityQuery:
    room_id: int
    date_range: DateRange
