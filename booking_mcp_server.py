from __future__ import annotations

from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from room_reservations import BookingManager, ReservationLedger, YamlBookingStore

mcp = FastMCP(
    "Room Booking MCP Server",
    instructions="Check hotel room availability and manage bookings through the room_reservations core.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
_MANAGER: BookingManager | None = None


def get_manager() -> BookingManager:
    global _MANAGER
    if _MANAGER is None:
        _MANAGER = BookingManager(ReservationLedger(YamlBookingStore(DATA_DIR)))
    return _MANAGER


@mcp.tool()
def check_room_availability(room_id: int, start: str, end: str) -> dict[str, Any]:
    """Return whether a room is free for [start, end) given as YYYY-MM-DD dates."""
    available = get_manager().check_availability(room_id, start, end)
    return {"room_id": room_id, "start": start, "end": end, "available": available}


@mcp.tool()
def list_bookings(room_id: int | None = None, status: str | None = None) -> list[dict[str, Any]]:
    """Return bookings in id order, optionally filtered by room and status."""
    return [booking.to_dict() for booking in get_manager().list_bookings(room_id=room_id, status=status)]


@mcp.tool()
def create_booking(room_id: int, guest_id: str, start: str, end: str, confirm: bool = True) -> dict[str, Any]:
    """Reserve a room; fails with a conflict when a confirmed stay overlaps."""
    return get_manager().create_booking(room_id, start, end, guest_id, confirm=confirm).to_dict()


@mcp.tool()
def cancel_booking(booking_id: int) -> dict[str, Any]:
    """Cancel a booking by id."""
    return get_manager().cancel_booking(booking_id).to_dict()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
