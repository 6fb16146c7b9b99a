"""
Date Utilities
--------------
Description: Normalizes date-like values and converts Gregorian dates to the Ethiopian calendar
Date Created: 2025-06-03
Dependencies:
  - pytz

Inputs arrive as datetimes, dates, epoch milliseconds, timestamp objects
(anything with ``to_datetime()`` / ``toDate()`` or a ``seconds`` field) and
strings. They are first classified into one of three shapes and then parsed
by a single function.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional, Tuple, Union

import pytz

from src.exceptions import DateParseError

logger = logging.getLogger(__name__)

ETHIOPIAN_MONTHS = [
    'Meskerem', 'Tikimt', 'Hidar', 'Tahsas', 'Tir', 'Yekatit',
    'Megabit', 'Miyazya', 'Ginbot', 'Sene', 'Hamle', 'Nehase', 'Pagume'
]

# Julian day number offset of the Amete Mihret era.
_ETHIOPIAN_EPOCH_OFFSET = 1723856
# date.toordinal() + this offset == Julian day number
_ORDINAL_TO_JDN = 1721425

_FALLBACK_FORMATS = ('%Y-%m-%d %H:%M:%S', '%Y/%m/%d', '%d/%m/%Y', '%b %d, %Y', '%B %d, %Y')


@dataclass(frozen=True)
class Epoch:
    millis: float


@dataclass(frozen=True)
class CalendarDate:
    value: Union[date, datetime]


@dataclass(frozen=True)
class RawString:
    text: str


DateInput = Union[Epoch, CalendarDate, RawString]


@dataclass(frozen=True)
class DateParseResult:
    value: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: datetime) -> 'DateParseResult':
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> 'DateParseResult':
        return cls(error=error)

    def unwrap(self) -> datetime:
        if not self.ok:
            raise DateParseError(self.error)
        return self.value


def classify_date_input(value: Any) -> Optional[DateInput]:
    """Map a loosely typed value onto the tagged union, or None if unrecognised."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (Epoch, CalendarDate, RawString)):
        return value
    if isinstance(value, (datetime, date)):
        return CalendarDate(value)
    if isinstance(value, (int, float)):
        return Epoch(float(value))
    if isinstance(value, str):
        return RawString(value)
    for converter in ('to_datetime', 'toDate'):
        if callable(getattr(value, converter, None)):
            converted = getattr(value, converter)()
            if isinstance(converted, (datetime, date)):
                return CalendarDate(converted)
            return None
    if isinstance(value, dict) and 'seconds' in value:
        seconds = value.get('seconds') or 0
        nanos = value.get('nanoseconds') or 0
        return Epoch(seconds * 1000 + nanos / 1_000_000)
    return None


def _parse_string(text: str) -> DateParseResult:
    text = text.strip()
    if not text:
        return DateParseResult.failure('empty string')

    iso_text = text[:-1] + '+00:00' if text.endswith('Z') else text
    try:
        return DateParseResult.success(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return DateParseResult.success(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return DateParseResult.failure(f'unrecognised date string: {text!r}')


def parse_date_input(value: Any) -> DateParseResult:
    """Parse anything date-like into a datetime result."""
    tagged = classify_date_input(value)

    if tagged is None:
        return DateParseResult.failure(f'unsupported date input: {value!r}')
    if isinstance(tagged, Epoch):
        try:
            return DateParseResult.success(
                datetime.fromtimestamp(tagged.millis / 1000, tz=pytz.UTC)
            )
        except (OverflowError, OSError, ValueError) as e:
            return DateParseResult.failure(f'epoch out of range: {e}')
    if isinstance(tagged, CalendarDate):
        if isinstance(tagged.value, datetime):
            return DateParseResult.success(tagged.value)
        return DateParseResult.success(datetime.combine(tagged.value, time.min))
    return _parse_string(tagged.text)


def to_datetime(value: Any) -> Optional[datetime]:
    result = parse_date_input(value)
    return result.value if result.ok else None


def format_date(value: Any, fmt: Optional[str] = None) -> str:
    """Format like 'Aug 18, 2024'; returns 'N/A' for anything unparseable."""
    dt = to_datetime(value)
    if dt is None:
        return 'N/A'
    if fmt is None:
        return f"{dt:%b} {dt.day}, {dt.year}"
    try:
        return dt.strftime(fmt)
    except ValueError as e:
        logger.error(f"Error formatting date {dt!r} with {fmt!r}: {e}")
        return 'Invalid Date'


def to_ethiopian_date(value: Any) -> Tuple[int, int, int]:
    """Convert a Gregorian date-like value to an Ethiopian (year, month, day)."""
    dt = parse_date_input(value).unwrap()
    jdn = dt.date().toordinal() + _ORDINAL_TO_JDN

    r = (jdn - _ETHIOPIAN_EPOCH_OFFSET) % 1461
    n = r % 365 + 365 * (r // 1460)
    year = 4 * ((jdn - _ETHIOPIAN_EPOCH_OFFSET) // 1461) + r // 365 - r // 1460
    month = n // 30 + 1
    day = n % 30 + 1
    return year, month, day


def format_ethiopian_date(value: Any, full: bool = False) -> str:
    """'Nehase 12, 2016' when full, otherwise 'Neh 12, 2016'. 'N/A' if unparseable."""
    try:
        year, month, day = to_ethiopian_date(value)
    except DateParseError:
        return 'N/A'

    month_name = ETHIOPIAN_MONTHS[month - 1]
    if not full:
        month_name = month_name[:3]
    return f"{month_name} {day}, {year}"
