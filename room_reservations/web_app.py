from __future__ import annotations

from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request

from .booking import Booking
from .errors import (
    AlreadyCancelledError,
    AlreadyConfirmedError,
    BookingStateError,
    ConflictError,
    InvalidRangeError,
    NotFoundError,
    ReservationError,
    UnavailableError,
)
from .ledger import ReservationLedger
from .lifecycle import BookingManager
from .yaml_store import YamlBookingStore

ERROR_STATUS_CODES: dict[type[ReservationError], int] = {
    InvalidRangeError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    AlreadyCancelledError: 409,
    AlreadyConfirmedError: 409,
    BookingStateError: 409,
    UnavailableError: 503,
}


def create_app(
    data_dir: str | Path | None = None,
    manager: BookingManager | None = None,
) -> Flask:
    app = Flask(__name__)
    if manager is None:
        ledger = ReservationLedger(YamlBookingStore(data_dir)) if data_dir is not None else ReservationLedger()
        manager = BookingManager(ledger)
    app.extensions["booking_manager"] = manager

    def _serialize_booking(booking: Booking) -> dict[str, Any]:
        return {**booking.to_dict(), "nights": booking.date_range.nights}

    @app.errorhandler(ReservationError)
    def handle_reservation_error(error: ReservationError) -> Any:
        status_code = ERROR_STATUS_CODES.get(type(error), 500)
        return jsonify({"ok": False, "error": error.kind, "message": str(error)}), status_code

    @app.get("/bookings/availability/<int:room_id>")
    def check_availability(room_id: int) -> Any:
        start = str(request.args.get("start", "")).strip()
        end = str(request.args.get("end", "")).strip()
        available = manager.check_availability(room_id, start, end)
        return jsonify({"ok": True, "room_id": room_id, "start": start, "end": end, "available": available})

    @app.get("/bookings")
    def list_bookings() -> Any:
        room_id_text = request.args.get("room_id")
        status_text = request.args.get("status")
        try:
            room_id = int(room_id_text) if room_id_text else None
            bookings = manager.list_bookings(room_id=room_id, status=status_text or None)
        except ValueError as error:
            return jsonify({"ok": False, "error": "invalid_request", "message": str(error)}), 400
        return jsonify({"ok": True, "bookings": [_serialize_booking(booking) for booking in bookings]})

    @app.get("/bookings/<int:booking_id>")
    def get_booking(booking_id: int) -> Any:
        return jsonify({"ok": True, "booking": _serialize_booking(manager.get_booking(booking_id))})

    @app.post("/bookings")
    def create_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        try:
            room_id = int(payload["room_id"])
            guest_id = str(payload["guest_id"]).strip()
        except (KeyError, TypeError, ValueError):
            return jsonify({"ok": False, "error": "invalid_request", "message": "room_id and guest_id are required."}), 400
        if not guest_id:
            return jsonify({"ok": False, "error": "invalid_request", "message": "guest_id must not be empty."}), 400
        confirm = payload.get("confirm", True)
        if not isinstance(confirm, bool):
            return jsonify({"ok": False, "error": "invalid_request", "message": "confirm must be true or false."}), 400

        created = manager.create_booking(
            room_id,
            payload.get("start", ""),
            payload.get("end", ""),
            guest_id,
            confirm=confirm,
        )
        return jsonify({"ok": True, "booking": _serialize_booking(created)}), 201

    @app.post("/bookings/<int:booking_id>/confirm")
    def confirm_booking(booking_id: int) -> Any:
        return jsonify({"ok": True, "booking": _serialize_booking(manager.confirm_booking(booking_id))})

    @app.post("/bookings/<int:booking_id>/cancel")
    def cancel_booking(booking_id: int) -> Any:
        return jsonify({"ok": True, "booking": _serialize_booking(manager.cancel_booking(booking_id))})

    return app


if __name__ == "__main__":
    app = create_app("data")
    app.run(host="127.0.0.1", port=5000, debug=False, threaded=True)
