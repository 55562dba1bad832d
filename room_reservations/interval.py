from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import re

from .errors import InvalidRangeError

_ISO_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}\Z")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        for value in (self.start, self.end):
            if isinstance(value, datetime) or not isinstance(value, date):
                raise InvalidRangeError(f"Expected a calendar date, got {value!r}.")
        if self.start >= self.end:
            raise InvalidRangeError("Range start date must be earlier than end date.")

    @staticmethod
    def parse(start: date | str, end: date | str) -> "DateRange":
        return DateRange(parse_iso_date(start), parse_iso_date(end))

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def parse_iso_date(value: date | str) -> date:
    """Return a calendar date from a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        raise InvalidRangeError(f"Expected a calendar date without time of day, got {value!r}.")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidRangeError(f"Expected an ISO-8601 date string, got {value!r}.")

    if not _ISO_DATE_RE.match(value):
        raise InvalidRangeError(f"Malformed date {value!r}; expected YYYY-MM-DD.")
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as error:
        raise InvalidRangeError(f"Malformed date {value!r}; expected YYYY-MM-DD.") from error
    return parsed


def overlaps(a: DateRange, b: DateRange) -> bool:
    """Return True when two stays share at least one night.

    Ranges are half-open: [start, end)
    so a checkout day equal to the next checkin day does not overlap.
    """
    return a.start < b.end and b.start < a.end
