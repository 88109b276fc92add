"""
Parsing and formatting of RFC 1123 dates, as used in the
``getlastmodified`` WebDAV property and the ``Last-Modified`` HTTP
header.

Only a strict subset of RFC 1123 is accepted::

    Sun, 06 Nov 1994 08:49:37 GMT

* the weekday name is required, and must match the date
* day and month names and the zone may be in any case
* the day is always two digits, the year always four
* GMT is the only zone supported, numeric offsets are rejected
* negative years are not supported

Based on RFC 822: https://datatracker.ietf.org/doc/html/rfc822#section-5
"""

import re
from datetime import datetime
from datetime import timezone
from typing import Optional

from webdavlite.lib.error import DateFormatError

_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_MONTHS = (
    "jan",
    "feb",
    "mar",
    "apr",
    "may",
    "jun",
    "jul",
    "aug",
    "sep",
    "oct",
    "nov",
    "dec",
)

_rfc1123_format = re.compile(
    r"(%s), " % "|".join(_WEEKDAYS)  ## day of the week
    + r"(\d{2}) (%s) (\d{4}) " % "|".join(_MONTHS)  ## date
    + r"(\d{2}):(\d{2}):(\d{2}) "  ## time
    + r"GMT",  ## zone
    re.IGNORECASE | re.ASCII,
)


def parse_rfc1123_date(formatted: str) -> datetime:
    """
    Returns a timezone-aware UTC datetime for the given RFC 1123 text.

    Raises DateFormatError (a ValueError) if the text is not on the
    supported form, describes an impossible date, or names a weekday
    that does not match the date.
    """
    match = _rfc1123_format.fullmatch(formatted)
    if match is None:
        raise DateFormatError("Unsupported or invalid date format", formatted)
    weekday = _WEEKDAYS.index(match.group(1).lower())
    day = int(match.group(2))
    month = _MONTHS.index(match.group(3).lower()) + 1
    year, hour, minute, second = (int(match.group(i)) for i in range(4, 8))
    try:
        date = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        raise DateFormatError("Unsupported or invalid date format", formatted)
    if date.weekday() != weekday:
        raise DateFormatError("Non-matching weekday", formatted)
    return date


def try_parse_rfc1123_date(formatted: Optional[str]) -> Optional[datetime]:
    """Like parse_rfc1123_date, but returns None instead of raising"""
    if not formatted:
        return None
    try:
        return parse_rfc1123_date(formatted)
    except DateFormatError:
        return None


def format_rfc1123_date(date: datetime) -> str:
    """
    Formats a datetime on the form accepted by parse_rfc1123_date.
    Naive datetimes are taken to be in UTC.
    """
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return "%s, %02d %s %04d %02d:%02d:%02d GMT" % (
        _WEEKDAYS[date.weekday()].capitalize(),
        date.day,
        _MONTHS[date.month - 1].capitalize(),
        date.year,
        date.hour,
        date.minute,
        date.second,
    )
