"""Calendar date utilities - no time-of-day, no timezone drift"""

import calendar
import re
from datetime import date, datetime
from typing import Union
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

DateLike = Union[date, datetime, str]


def parse_local_date(value: DateLike) -> date:
    """
    Interpret a value as a calendar date.

    Strings starting with YYYY-MM-DD are read from that prefix only, so
    "2024-02-29T23:00:00-05:00" is Feb 29 regardless of the offset. Other
    strings fall back to generic parsing.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    text = value.strip()
    match = _ISO_PREFIX.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e


def format_local_iso(value: DateLike) -> str:
    """Render a calendar date as YYYY-MM-DD"""
    return parse_local_date(value).isoformat()


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month (month is 1-12)"""
    return calendar.monthrange(year, month)[1]


def month_end(anchor: date, months_ahead: int) -> date:
    """Last calendar day of the month that is months_ahead after anchor's month"""
    target = anchor.replace(day=1) + relativedelta(months=months_ahead)
    return target.replace(day=last_day_of_month(target.year, target.month))


def local_today(tz_name: str) -> date:
    """Today's calendar date in the given timezone"""
    return datetime.now(ZoneInfo(tz_name)).date()
