"""
Due Dates - Due-date/time normalization for tasks.

This module turns what a user typed into a due instant and back:
- is_valid_time_format: pure predicate for the accepted time strings
- parse_time / parse_due_date: strict parsers raising typed errors
- combine: calendar date + time text + caller time zone -> aware datetime
- extract: stored value -> {date, time} for re-display in an edit form
- format_due_at / is_overdue: display helpers

Accepted time strings (case-insensitive, surrounding whitespace ignored):
    "9:30 PM", "9:30PM"   12-hour with minutes
    "9 PM", "9pm"         12-hour, hour only
    "21:30", "09:30"      24-hour

Stored due dates represent wall-clock intent. A value is always re-displayed
with the digits it carries; extract() never converts between zones.

Usage:
    from core.due_dates import combine, extract

    due_at = combine('2025-03-01', '9:30 PM', 'America/Vancouver')
    extract(due_at)  # DueDateParts(date='2025-03-01', time='21:30')
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, tzinfo
from datetime import timezone as dt_timezone
from typing import Dict, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from api.exceptions import (
    DueDateParseError,
    InvalidTimeFormatError,
    InvalidTimezoneError,
    NonexistentLocalTimeError,
)

logger = logging.getLogger(__name__)

DEFAULT_DUE_TIME = '09:00'
DEFAULT_TIMEZONE = 'America/Vancouver'

TWELVE_HOUR_RE = re.compile(
    r'^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>[ap]m)$',
    re.IGNORECASE,
)
TWENTY_FOUR_HOUR_RE = re.compile(r'^(?P<hour>\d{1,2}):(?P<minute>\d{2})$')
BARE_DATE_RE = re.compile(r'^\d{4}-\d{1,2}-\d{1,2}$')


@dataclass(frozen=True)
class DueDateParts:
    """Date and time of a due value as shown in an edit form."""
    date: str
    time: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


# =============================================================================
# TIME STRINGS
# =============================================================================

def _match_time(text: str) -> Optional[time]:
    if not isinstance(text, str):
        return None

    value = text.strip()

    match = TWELVE_HOUR_RE.match(value)
    if match:
        hour = int(match.group('hour'))
        minute = int(match.group('minute') or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        hour = hour % 12
        if match.group('meridiem').lower() == 'pm':
            hour += 12
        return time(hour, minute)

    match = TWENTY_FOUR_HOUR_RE.match(value)
    if match:
        hour = int(match.group('hour'))
        minute = int(match.group('minute'))
        if hour > 23 or minute > 59:
            return None
        return time(hour, minute)

    return None


def is_valid_time_format(text) -> bool:
    """Return True if text is a time string combine() accepts."""
    return _match_time(text) is not None


def parse_time(text: str, field_name: str = 'dueTime') -> time:
    """
    Parse a time string into a naive time of day.

    Raises:
        InvalidTimeFormatError: text is not an accepted format
    """
    parsed = _match_time(text)
    if parsed is None:
        raise InvalidTimeFormatError(value=text, field_name=field_name)
    return parsed


def default_due_time() -> time:
    """Time of day used when the user leaves the time empty."""
    return parse_time(getattr(settings, 'AGENCY_DEFAULT_DUE_TIME', DEFAULT_DUE_TIME))


# =============================================================================
# DATES AND ZONES
# =============================================================================

def parse_due_date(value, field_name: str = 'dueDate') -> date:
    """
    Parse a calendar date.

    Accepts a date, a datetime (its own calendar date is used), a
    "YYYY-MM-DD" string or a datetime string whose date part is kept.

    Raises:
        DueDateParseError: value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise DueDateParseError(field_name=field_name, value=value)

    text = value.strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            parsed_dt = parse_datetime(text)
            parsed = parsed_dt.date() if parsed_dt else None
    except ValueError:
        parsed = None

    if parsed is None:
        raise DueDateParseError(field_name=field_name, value=value)
    return parsed


def resolve_timezone(zone: Union[str, tzinfo, None] = None) -> tzinfo:
    """
    Resolve the caller-declared zone.

    Falls back to AGENCY_DEFAULT_TIMEZONE when no zone is given.

    Raises:
        InvalidTimezoneError: zone is not a known IANA name
    """
    if isinstance(zone, tzinfo):
        return zone
    if zone is None or (isinstance(zone, str) and not zone.strip()):
        zone = getattr(settings, 'AGENCY_DEFAULT_TIMEZONE', DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(str(zone).strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidTimezoneError(zone_name=zone)


# =============================================================================
# COMBINE / EXTRACT
# =============================================================================

def combine(
    due_date: Union[date, str],
    time_text: Optional[str] = '',
    zone: Union[str, tzinfo, None] = None,
) -> datetime:
    """
    Combine a calendar date and a time string into an aware datetime.

    The wall-clock reading is interpreted in the caller-declared zone, not
    the server's. An empty time defaults to 09:00.
    A time repeated by a DST fall-back resolves to its first occurrence.

    Callers should reject invalid time strings with is_valid_time_format()
    first; an invalid string reaching this point still raises.

    Raises:
        DueDateParseError, InvalidTimeFormatError, InvalidTimezoneError
        NonexistentLocalTimeError: the wall clock falls in a DST gap of the zone
    """
    day = parse_due_date(due_date)
    tz = resolve_timezone(zone)

    if time_text is None or not str(time_text).strip():
        time_of_day = default_due_time()
    else:
        time_of_day = parse_time(time_text)

    naive = datetime.combine(day, time_of_day)
    result = naive.replace(tzinfo=tz)
    # Spring-forward gap: the stored UTC instant would read back as another wall clock.
    if result.astimezone(dt_timezone.utc).astimezone(tz).replace(tzinfo=None) != naive:
        raise NonexistentLocalTimeError(day, time_of_day, getattr(tz, 'key', str(tz)))
    return result


def extract(stored_value, field_name: str = 'dueAt') -> DueDateParts:
    """
    Read the date and time back out of a stored due value.

    Tolerated representations:
    - datetime / date objects
    - ISO-8601 with zone suffix: "2025-03-01T21:30:00-08:00", "...Z"
    - SQL-style without zone: "2025-03-01 21:30:00"
    - bare date: "2025-03-01" (time is returned empty)

    The digits are taken as they are; an offset is never applied.

    Raises:
        DueDateParseError: value is a string that is none of the above
    """
    if stored_value is None or stored_value == '':
        return DueDateParts(date='', time='')

    if isinstance(stored_value, datetime):
        return DueDateParts(
            date=stored_value.date().isoformat(),
            time=f"{stored_value.hour:02d}:{stored_value.minute:02d}",
        )

    if isinstance(stored_value, date):
        return DueDateParts(date=stored_value.isoformat(), time='')

    if not isinstance(stored_value, str):
        raise DueDateParseError(field_name=field_name, value=stored_value)

    text = stored_value.strip()
    try:
        if BARE_DATE_RE.match(text):
            parsed_date = parse_date(text)
            if parsed_date is not None:
                return DueDateParts(date=parsed_date.isoformat(), time='')
        parsed = parse_datetime(text)
    except ValueError:
        parsed = None

    if parsed is None:
        logger.debug(f"Unparseable due value for {field_name}: {stored_value!r}")
        raise DueDateParseError(field_name=field_name, value=stored_value)

    return extract(parsed, field_name=field_name)


def to_wall_clock(value: Optional[datetime], zone: Union[str, tzinfo, None] = None) -> Optional[datetime]:
    """Express an aware datetime in the zone the user entered it in."""
    if value is None:
        return None
    if timezone.is_naive(value):
        return value
    return timezone.localtime(value, resolve_timezone(zone))


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def format_due_at(value: Optional[datetime]) -> str:
    """
    Format a due value for display, e.g. "3/1/2025 at 9:30 PM".

    Values at exactly midnight are all-day and show the date only.
    """
    if value is None:
        return ''

    date_str = f"{value.month}/{value.day}/{value.year}"
    if value.hour == 0 and value.minute == 0 and value.second == 0:
        return date_str

    hour = value.hour % 12 or 12
    meridiem = 'PM' if value.hour >= 12 else 'AM'
    return f"{date_str} at {hour}:{value.minute:02d} {meridiem}"


def is_overdue(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Check whether an aware due datetime lies in the past."""
    if value is None:
        return False
    return value < (now or timezone.now())
