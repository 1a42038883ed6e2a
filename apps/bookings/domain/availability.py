"""
Availability Engine

Decides whether a date (and, for hourly listings, specific hour slots)
can be booked against the host's availability calendar and the existing
reservations of a listing.

Everything here is a pure function of its arguments: listings and bookings
are read through plain attributes (`price_unit`, `availability`, `date`,
`duration`, `hours`, `status`), so model instances and lightweight test
doubles work alike.

Rules:
- Dates before today are PAST.
- A date missing from the host calendar is BLOCKED_BY_HOST; a listing
  without any calendar has no open dates.
- Daily bookings occupy [date, date + duration) nights.
- Hourly bookings occupy their listed hours on their exact date; a date is
  FULLY_BOOKED once every open hour is taken.
- Cancelled bookings never block anything.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, List, Mapping, Sequence
import logging

from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)

CANCELLED = 'Cancelled'
HOURLY = 'Hourly'
MIN_SERIES_LENGTH = 2


class DateStatus(str, Enum):
    PAST = 'PAST'
    BLOCKED_BY_HOST = 'BLOCKED_BY_HOST'
    ALREADY_BOOKED = 'ALREADY_BOOKED'
    FULLY_BOOKED = 'FULLY_BOOKED'
    AVAILABLE = 'AVAILABLE'


class ConflictReason(str, Enum):
    PAST = 'PAST'
    BLOCKED_BY_HOST = 'BLOCKED_BY_HOST'
    ALREADY_BOOKED = 'ALREADY_BOOKED'
    FULLY_BOOKED = 'FULLY_BOOKED'
    HOUR_NOT_OPEN = 'HOUR_NOT_OPEN'
    HOUR_BOOKED = 'HOUR_BOOKED'
    DUPLICATE_HOUR = 'DUPLICATE_HOUR'
    SERIES_OVERLAP = 'SERIES_OVERLAP'


class RecurrenceFrequency(str, Enum):
    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'


_MESSAGES = {
    ConflictReason.PAST: "{date} is in the past",
    ConflictReason.BLOCKED_BY_HOST: "{date} is not open for booking",
    ConflictReason.ALREADY_BOOKED: "{date} is already booked",
    ConflictReason.FULLY_BOOKED: "{date} is fully booked",
    ConflictReason.HOUR_NOT_OPEN: "{hour}:00 on {date} is outside the host's open hours",
    ConflictReason.HOUR_BOOKED: "{hour}:00 on {date} is already booked",
    ConflictReason.DUPLICATE_HOUR: "{hour}:00 on {date} is requested more than once",
    ConflictReason.SERIES_OVERLAP: "{date} overlaps another date of the same series",
}


@dataclass(frozen=True)
class Conflict:
    """A single reason a requested date/hour cannot be booked."""
    date: date
    reason: ConflictReason
    hour: int | None = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.reason].format(date=self.date.isoformat(), hour=self.hour)

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'hour': self.hour,
            'reason': self.reason.value,
            'message': self.message,
        }


@dataclass
class SeriesCheck:
    """Outcome of checking every occurrence of a booking request."""
    dates: List[date]
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def is_bookable(self) -> bool:
        return not self.conflicts


# ===== Calendar parsing =====

def _coerce_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _parse_hours(raw) -> frozenset[int] | None:
    if not isinstance(raw, (list, tuple, set, frozenset)):
        return None
    hours = set()
    for hour in raw:
        if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
            return None
        hours.add(hour)
    return frozenset(hours)


def parse_availability(raw) -> dict[date, frozenset[int]]:
    """
    Parse a stored host calendar into {date: open hours}.

    Fails closed: a calendar that is not a mapping yields no open dates,
    and a date whose key or hour list is malformed is dropped.
    """
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning(f"Ignoring malformed availability calendar of type {type(raw).__name__}")
        return {}

    calendar = {}
    for key, hours in raw.items():
        try:
            day = date.fromisoformat(str(key))
        except ValueError:
            logger.warning(f"Ignoring malformed availability date {key!r}")
            continue
        parsed = _parse_hours(hours)
        if parsed is None:
            logger.warning(f"Ignoring malformed open hours for {key}: {hours!r}")
            continue
        calendar[day] = parsed
    return calendar


def open_hours_on(listing, day: date) -> frozenset[int] | None:
    """Open hours the host set for `day`, or None when the date is not open."""
    return parse_availability(getattr(listing, 'availability', None)).get(day)


def is_hourly(listing) -> bool:
    return getattr(listing, 'price_unit', None) == HOURLY


# ===== Existing bookings =====

def _active(bookings: Iterable) -> list:
    return [b for b in bookings if b.status != CANCELLED]


def occupied_window(booking) -> DateRange:
    """Nights a daily booking occupies: [date, date + duration)."""
    return DateRange.of_nights(_coerce_date(booking.date), booking.duration or 1)


def booked_hours_on(day: date, bookings: Iterable) -> set[int]:
    """Union of hours held by non-cancelled bookings on exactly `day`."""
    taken: set[int] = set()
    for booking in _active(bookings):
        if _coerce_date(booking.date) == day and booking.hours:
            taken.update(booking.hours)
    return taken


def is_slot_booked(day: date, hour: int, bookings: Iterable) -> bool:
    """True if a non-cancelled booking on exactly `day` holds `hour`."""
    return any(
        _coerce_date(b.date) == day and hour in (b.hours or [])
        for b in _active(bookings)
    )


# ===== Date-level check =====

def check_date_availability(listing, day: date, bookings: Iterable, today: date | None = None) -> DateStatus:
    """Classify a single calendar date for the given listing."""
    today = today or date.today()
    bookings = list(bookings)

    if day < today:
        return DateStatus.PAST

    open_hours = open_hours_on(listing, day)
    if open_hours is None:
        return DateStatus.BLOCKED_BY_HOST

    if not is_hourly(listing):
        for booking in _active(bookings):
            if occupied_window(booking).contains(day):
                return DateStatus.ALREADY_BOOKED
        return DateStatus.AVAILABLE

    if open_hours and open_hours <= booked_hours_on(day, bookings):
        return DateStatus.FULLY_BOOKED
    return DateStatus.AVAILABLE


# ===== Series =====

def expand_series(
    start: date,
    count: int,
    frequency: RecurrenceFrequency | str = RecurrenceFrequency.WEEKLY,
    hourly: bool = True,
) -> List[date]:
    """
    Dates of a recurring series starting on `start`.

    DAILY repetition is only offered for hourly listings; daily-priced
    listings always repeat weekly.
    """
    if count < MIN_SERIES_LENGTH:
        raise ValueError(f"A recurring series needs at least {MIN_SERIES_LENGTH} occurrences")

    frequency = RecurrenceFrequency(frequency)
    if not hourly:
        frequency = RecurrenceFrequency.WEEKLY
    step = 1 if frequency == RecurrenceFrequency.DAILY else 7
    return [start + timedelta(days=step * i) for i in range(count)]


def _daily_conflicts(listing, dates: Sequence[date], nights: int, bookings: list, today: date) -> List[Conflict]:
    conflicts = []
    windows = []
    for day in dates:
        window = DateRange.of_nights(day, nights)
        if any(window.overlaps_with(other) for other in windows):
            conflicts.append(Conflict(day, ConflictReason.SERIES_OVERLAP))
        windows.append(window)

        for night in window.days():
            status = check_date_availability(listing, night, bookings, today)
            if status != DateStatus.AVAILABLE:
                conflicts.append(Conflict(night, ConflictReason(status.value)))
    return conflicts


def _hourly_conflicts(listing, dates: Sequence[date], hours: Sequence[int], bookings: list, today: date) -> List[Conflict]:
    conflicts = []
    seen_dates = set()
    for day in dates:
        if day in seen_dates:
            conflicts.append(Conflict(day, ConflictReason.SERIES_OVERLAP))
        seen_dates.add(day)

        status = check_date_availability(listing, day, bookings, today)
        if status != DateStatus.AVAILABLE:
            conflicts.append(Conflict(day, ConflictReason(status.value)))
            continue

        open_hours = open_hours_on(listing, day) or frozenset()
        requested = set()
        for hour in hours:
            if hour in requested:
                conflicts.append(Conflict(day, ConflictReason.DUPLICATE_HOUR, hour))
                continue
            requested.add(hour)
            if hour not in open_hours:
                conflicts.append(Conflict(day, ConflictReason.HOUR_NOT_OPEN, hour))
            elif is_slot_booked(day, hour, bookings):
                conflicts.append(Conflict(day, ConflictReason.HOUR_BOOKED, hour))
    return conflicts


def check_series(
    listing,
    dates: Sequence[date],
    bookings: Iterable,
    *,
    hours: Sequence[int] | None = None,
    nights: int = 1,
    today: date | None = None,
) -> SeriesCheck:
    """
    Check every occurrence of a request against the listing.

    The request is bookable only when no conflict is reported for any
    occurrence. Conflicts are returned, never raised, so callers can show
    the exact dates and hours that block the request.
    """
    today = today or date.today()
    bookings = list(bookings)
    dates = [_coerce_date(d) for d in dates]

    if not dates:
        raise ValueError("At least one date is required")

    if is_hourly(listing):
        if not hours:
            raise ValueError("Hourly bookings require at least one hour")
        conflicts = _hourly_conflicts(listing, dates, list(hours), bookings, today)
    else:
        if nights < 1:
            raise ValueError("Daily bookings require at least one night")
        conflicts = _daily_conflicts(listing, dates, nights, bookings, today)

    if conflicts:
        logger.debug(f"Availability check found {len(conflicts)} conflicts for {len(dates)} dates")
    return SeriesCheck(dates=dates, conflicts=conflicts)
