"""
Date and Time Codec
===================

DBF files store dates in three ways:

**Date (type D)** - 8 ASCII digits, YYYYMMDD. A blank date is 8 spaces
(some producers write 8 zeros instead).

**DateTime, textual (type T, width 14)** - 14 ASCII digits,
YYYYMMDDHHmmss. Blank is 14 spaces.

**DateTime, binary (type T or @, width 8)** - two little-endian 32-bit
integers: the Julian day number (days since 1 January 4713 BC in the
proleptic Julian calendar) and the number of milliseconds since
midnight. Blank is 8 zero bytes.

The parsers raise DateParseError on malformed text so that a bad value
can be told apart from a blank one; the *_or_none helpers fold both
into None for callers that do not care.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional
import re
import struct

from dbfkit.errors import DBFFormatError, DateParseError


# =============================================================================
# Constants
# =============================================================================

DATE_PATTERN = "YYYYMMDD"
DATE_TIME_PATTERN = "YYYYMMDDHHmmss"

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DATE_TIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})$")

UNIX_EPOCH = date(1970, 1, 1)

# Day count between 0001-01-01 and 1970-01-01 (Modified Julian Day values)
_DAYS_0001_TO_1970 = 678577 + 40587

# First year of the Julian period (4713 BC, astronomical year numbering)
_JULIAN_PERIOD_YEAR = 1 - 4713

_INT31_MASK = 0x7FFFFFFF

JULIAN_FORMAT = "<ii"


def _julian_epoch_offset() -> int:
    """Julian day number of 1970-01-01, derived from the period origin."""
    year = _JULIAN_PERIOD_YEAR
    origin_epoch_day = (year - 1) * 365 + (year - 1) // 4
    return _DAYS_0001_TO_1970 - origin_epoch_day


JULIAN_DAY_OF_UNIX_EPOCH = _julian_epoch_offset()


# =============================================================================
# Textual Dates
# =============================================================================

def is_blank_date(text: Optional[str]) -> bool:
    """Return True for None, empty, all-space or all-zero date text."""
    return text is None or text.strip(" 0") == ""


def parse_date(text: str) -> date:
    """
    Parse an 8-digit YYYYMMDD date.

    Args:
        text: The field text, already trimmed

    Returns:
        The parsed date

    Raises:
        DateParseError: If the text is not exactly 8 digits forming a date
    """
    match = _DATE_RE.match(text)
    if match is None:
        raise DateParseError(text, DATE_PATTERN)
    try:
        return date(*(int(group) for group in match.groups()))
    except ValueError as e:
        raise DateParseError(text, DATE_PATTERN) from e


def parse_date_or_none(text: Optional[str]) -> Optional[date]:
    """Parse a date, returning None for blank or malformed text."""
    if is_blank_date(text):
        return None
    try:
        return parse_date(text)
    except DateParseError:
        return None


def format_date(value: date) -> str:
    """Format a date as YYYYMMDD."""
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


def parse_date_time(text: str, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse a 14-digit YYYYMMDDHHmmss date-time.

    Args:
        text: The field text, already trimmed
        tz: Zone the wall-clock value is interpreted in (None = naive)

    Returns:
        The parsed datetime

    Raises:
        DateParseError: If the text is not 14 digits forming a date-time
    """
    match = _DATE_TIME_RE.match(text)
    if match is None:
        raise DateParseError(text, DATE_TIME_PATTERN)
    try:
        return datetime(*(int(group) for group in match.groups()), tzinfo=tz)
    except ValueError as e:
        raise DateParseError(text, DATE_TIME_PATTERN) from e


def parse_date_time_or_none(
    text: Optional[str], tz: Optional[tzinfo] = None
) -> Optional[datetime]:
    """Parse a date-time, returning None for blank or malformed text."""
    if is_blank_date(text):
        return None
    try:
        return parse_date_time(text, tz)
    except DateParseError:
        return None


def format_date_time(value: datetime) -> str:
    """Format a datetime as YYYYMMDDHHmmss (wall-clock fields, no zone)."""
    return format_date(value) + f"{value.hour:02d}{value.minute:02d}{value.second:02d}"


# =============================================================================
# Julian Day Numbers
# =============================================================================

def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def julian_day(year: int, month: int, day: int) -> int:
    """
    Compute the Julian day number of a Gregorian calendar date.

    Uses the Fliegel & Van Flandern integer algorithm, which is exact for
    every Gregorian date after 4713 BC. The result is folded into a signed
    32-bit slot: values above 2**31 - 1 become the complement of their
    low 31 bits, the way the binary DateTime field stores them.

    Args:
        year: Gregorian year
        month: Month 1-12
        day: Day of month

    Returns:
        The Julian day number (e.g. 2451545 for 2000-01-01)
    """
    a = _trunc_div(month - 14, 12)
    jd = (
        day - 32075
        + (1461 * (year + 4800 + a)) // 4
        + (367 * (month - 2 - a * 12)) // 12
        - (3 * ((year + 4900 + a) // 100)) // 4
    )
    if jd > _INT31_MASK:
        return ~(jd & _INT31_MASK)
    return jd & _INT31_MASK


def decode_julian(day_number: int, millis: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Convert a Julian day number and milliseconds-since-midnight to a datetime.

    Args:
        day_number: Julian day number
        millis: Milliseconds since midnight, local to tz
        tz: Zone to attach (None = naive)

    Returns:
        The decoded datetime

    Raises:
        DBFFormatError: If the day number falls outside the supported range
    """
    try:
        civil = UNIX_EPOCH + timedelta(days=day_number - JULIAN_DAY_OF_UNIX_EPOCH)
    except OverflowError as e:
        raise DBFFormatError(f"Julian day {day_number} out of range") from e
    return datetime.combine(civil, time(0), tzinfo=tz) + timedelta(milliseconds=millis)


def decode_julian_bytes(raw: bytes, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Decode the 8-byte binary DateTime form.

    Args:
        raw: Exactly 8 bytes
        tz: Zone to attach (None = naive)

    Returns:
        The datetime, or None if all 8 bytes are zero
    """
    if len(raw) != 8:
        raise ValueError(f"binary date-time needs 8 bytes, got {len(raw)}")
    if not any(raw):
        return None
    day_number, millis = struct.unpack(JULIAN_FORMAT, raw)
    return decode_julian(day_number, millis, tz)


def encode_julian(value: datetime) -> bytes:
    """
    Encode a datetime to the 8-byte binary DateTime form.

    The time of day is taken from the value's own wall clock, so an aware
    datetime is encoded in its own zone.

    Args:
        value: The datetime to encode

    Returns:
        8 bytes: Julian day number and milliseconds since midnight (LE int32)
    """
    millis = (
        (value.hour * 3600 + value.minute * 60 + value.second) * 1000
        + value.microsecond // 1000
    )
    return struct.pack(
        JULIAN_FORMAT,
        julian_day(value.year, value.month, value.day),
        millis,
    )
