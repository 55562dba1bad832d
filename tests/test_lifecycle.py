import unittest
from datetime import date
from typing import Any, Sequence

from room_reservations import (
    AlreadyCancelledError,
    Booking,
    BookingManager,
    BookingStatus,
    ConflictError,
    InMemoryBookingStore,
    InvalidRangeError,
    NotFoundError,
    ReservationLedger,
    RetryPolicy,
    UnavailableError,
)


class FlakyStore(InMemoryBookingStore):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.calls = 0

    def save_room(self, room_id: int, bookings: Sequence[Booking], event_type: str, payload: dict[str, Any]) -> None:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise UnavailableError("connection lost")
        super().save_room(room_id, bookings, event_type, payload)


class CountingLedger(ReservationLedger):
    def __init__(self) -> None:
        super().__init__()
        self.reserve_calls = 0

    def reserve(self, *args: Any, **kwargs: Any) -> Booking:
        self.reserve_calls += 1
        return super().reserve(*args, **kwargs)


class TestBookingManager(unittest.TestCase):
    def setUp(self) -> None:
        self.sleeps: list[float] = []
        self.manager = BookingManager(sleep=self.sleeps.append)

    def test_create_booking_from_iso_strings(self) -> None:
        booking = self.manager.create_booking(101, "2024-07-01", "2024-07-03", "A")

        self.assertEqual(booking.booking_id, 1)
        self.assertEqual(booking.start, date(2024, 7, 1))
        self.assertEqual(booking.end, date(2024, 7, 3))
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)

    def test_scenario_availability_follows_cancellation(self) -> None:
        booking = self.manager.create_booking(101, date(2024, 7, 1), date(2024, 7, 3), "A")
        self.assertFalse(self.manager.check_availability(101, "2024-07-02", "2024-07-04"))

        cancelled = self.manager.cancel_booking(booking.booking_id)

        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)
        self.assertTrue(self.manager.check_availability(101, "2024-07-02", "2024-07-04"))

    def test_invalid_range_never_reaches_ledger(self) -> None:
        ledger = CountingLedger()
        manager = BookingManager(ledger)

        with self.assertRaises(InvalidRangeError):
            manager.create_booking(101, "2024-07-05", "2024-07-01", "A")
        with self.assertRaises(InvalidRangeError):
            manager.create_booking(101, "2024-07-xx", "2024-07-09", "A")

        self.assertEqual(ledger.reserve_calls, 0)
        self.assertEqual(manager.list_bookings(), [])

    def test_conflict_is_not_retried(self) -> None:
        ledger = CountingLedger()
        manager = BookingManager(ledger, sleep=self.sleeps.append)
        manager.create_booking(101, "2024-06-01", "2024-06-05", "A")

        with self.assertRaises(ConflictError):
            manager.create_booking(101, "2024-06-04", "2024-06-08", "B")

        self.assertEqual(ledger.reserve_calls, 2)
        self.assertEqual(self.sleeps, [])

    def test_unavailable_store_is_retried_with_backoff(self) -> None:
        store = FlakyStore(failures=2)
        manager = BookingManager(
            ReservationLedger(store),
            retry_policy=RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2.0, max_delay=1.0),
            sleep=self.sleeps.append,
        )

        booking = manager.create_booking(101, "2024-07-01", "2024-07-03", "A")

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(store.calls, 3)
        self.assertEqual(self.sleeps, [0.1, 0.2])
        self.assertEqual(manager.list_bookings(), [booking])

    def test_unavailable_error_propagates_after_last_attempt(self) -> None:
        store = FlakyStore(failures=5)
        manager = BookingManager(
            ReservationLedger(store),
            retry_policy=RetryPolicy(max_attempts=2, base_delay=0.0),
            sleep=self.sleeps.append,
        )

        with self.assertRaises(UnavailableError):
            manager.create_booking(101, "2024-07-01", "2024-07-03", "A")

        self.assertEqual(store.calls, 2)
        self.assertEqual(manager.list_bookings(), [])

    def test_cancel_errors_pass_through(self) -> None:
        booking = self.manager.create_booking(101, "2024-07-01", "2024-07-03", "A")
        self.manager.cancel_booking(booking.booking_id)

        with self.assertRaises(AlreadyCancelledError):
            self.manager.cancel_booking(booking.booking_id)
        with self.assertRaises(NotFoundError):
            self.manager.cancel_booking(999)
        self.assertEqual(self.sleeps, [])

    def test_pending_booking_is_confirmed_later(self) -> None:
        pending = self.manager.create_booking(101, "2024-07-01", "2024-07-03", "A", confirm=False)
        self.assertTrue(self.manager.check_availability(101, "2024-07-01", "2024-07-03"))

        confirmed = self.manager.confirm_booking(pending.booking_id)

        self.assertEqual(confirmed.status, BookingStatus.CONFIRMED)
        self.assertEqual(self.manager.get_booking(pending.booking_id), confirmed)
        self.assertFalse(self.manager.check_availability(101, "2024-07-01", "2024-07-03"))

    def test_list_bookings_accepts_status_names(self) -> None:
        self.manager.create_booking(101, "2024-07-01", "2024-07-03", "A")
        second = self.manager.create_booking(102, "2024-07-01", "2024-07-03", "B")
        self.manager.cancel_booking(second.booking_id)

        cancelled = self.manager.list_bookings(status="cancelled")

        self.assertEqual([row.booking_id for row in cancelled], [second.booking_id])
        with self.assertRaises(ValueError):
            self.manager.list_bookings(status="archived")


class TestRetryPolicy(unittest.TestCase):
    def test_delay_grows_and_is_capped(self) -> None:
        policy = RetryPolicy(max_attempts=5, base_delay=0.5, multiplier=2.0, max_delay=1.5)

        self.assertEqual([policy.delay_for(attempt) for attempt in range(1, 5)], [0.5, 1.0, 1.5, 1.5])

    def test_rejects_invalid_configuration(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(base_delay=-1.0)


if __name__ == "__main__":
    unittest.main()
