"""Calendar-day helpers for the attendance ledger."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Tuple, Union
from zoneinfo import ZoneInfo

DateLike = Union[date, datetime, str]


def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def to_local_datetime(value: DateLike, tz: ZoneInfo) -> datetime:
    """Coerce ``value`` into a naive datetime expressed in ``tz``.

    Aware datetimes are converted; naive ones are taken as already local.
    A bare date means local midnight.
    """

    if isinstance(value, str):
        value = parse_date_like(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def normalize_day(value: DateLike, tz: ZoneInfo) -> date:
    """Calendar day that ``value`` falls on in ``tz``."""

    return to_local_datetime(value, tz).date()


def parse_date_like(raw: str) -> Union[date, datetime]:
    raw = raw.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    if len(raw) == 10:
        return date.fromisoformat(raw)
    return datetime.fromisoformat(raw)


def month_window(today: date) -> Tuple[date, date]:
    """First and last day of the month containing ``today``."""

    last = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last)
