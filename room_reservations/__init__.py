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
from .interval import DateRange, overlaps, parse_iso_date
from .booking import AvailabilityQuery, Booking, BookingStatus
from .availability import find_conflicts, is_available
from .yaml_store import InMemoryBookingStore, YamlBookingStore
from .ledger import BookingStore, ReservationLedger
from .lifecycle import BookingManager, RetryPolicy

__all__ = [
	"AlreadyCancelledError",
	"AlreadyConfirmedError",
	"BookingStateError",
	"ConflictError",
	"InvalidRangeError",
	"NotFoundError",
	"ReservationError",
	"UnavailableError",
	"DateRange",
	"overlaps",
	"parse_iso_date",
	"AvailabilityQuery",
	"Booking",
	"BookingStatus",
	"find_conflicts",
	"is_available",
	"InMemoryBookingStore",
	"YamlBookingStore",
	"BookingStore",
	"ReservationLedger",
	"BookingManager",
	"RetryPolicy",
]
