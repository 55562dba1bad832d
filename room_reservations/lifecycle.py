from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, TypeVar
import time

from .booking import AvailabilityQuery, Booking, BookingStatus
from .errors import UnavailableError
from .interval import DateRange
from .ledger import ReservationLedger

T = TypeVar("T")

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 0.05
DEFAULT_RETRY_MAX_DELAY = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff applied to UnavailableError only; every other error propagates on first sight."""

    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    multiplier: float = 2.0
    max_delay: float = DEFAULT_RETRY_MAX_DELAY

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be greater than zero")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (self.multiplier ** (attempt - 1)))


class BookingManager:
    """Entry point for the request layer: builds ranges and drives the ledger.

    Conflicts are final and surface as ``ConflictError``; only store outages
    (``UnavailableError``) are retried.
    """

    def __init__(
        self,
        ledger: ReservationLedger | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ledger = ledger if ledger is not None else ReservationLedger()
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def check_availability(self, room_id: int, start: date | str, end: date | str) -> bool:
        query = AvailabilityQuery(room_id=room_id, date_range=DateRange.parse(start, end))
        return self.ledger.query(query.room_id, query.date_range)

    def list_bookings(self, room_id: int | None = None, status: BookingStatus | str | None = None) -> list[Booking]:
        if status is not None and not isinstance(status, BookingStatus):
            status = BookingStatus(str(status).strip().upper())
        return self.ledger.list(room_id=room_id, status=status)

    def get_booking(self, booking_id: int) -> Booking:
        return self.ledger.get(booking_id)

    def create_booking(
        self,
        room_id: int,
        start: date | str,
        end: date | str,
        guest_id: str,
        confirm: bool = True,
    ) -> Booking:
        date_range = DateRange.parse(start, end)
        status = BookingStatus.CONFIRMED if confirm else BookingStatus.PENDING
        return self._with_retry(lambda: self.ledger.reserve(room_id, date_range, guest_id, status=status))

    def confirm_booking(self, booking_id: int) -> Booking:
        return self._with_retry(lambda: self.ledger.confirm(booking_id))

    def cancel_booking(self, booking_id: int) -> Booking:
        return self._with_retry(lambda: self.ledger.cancel(booking_id))

    def _with_retry(self, operation: Callable[[], T]) -> T:
        policy = self.retry_policy
        for attempt in range(1, policy.max_attempts + 1):
            try:
                return operation()
            except UnavailableError:
                if attempt >= policy.max_attempts:
                    raise
                delay = policy.delay_for(attempt)
                if delay > 0:
                    self._sleep(delay)
        raise RuntimeError("retry loop exited without a result")
