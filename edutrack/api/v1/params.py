"""Shared query parameters."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from fastapi import Query

from edutrack.config import get_settings
from edutrack.errors import ValidationError
from edutrack.schemas.common import DateRange
from edutrack.utils.dates import get_zone, normalize_day, parse_date_like

settings = get_settings()


@dataclass
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PageParams:
    return PageParams(page=page, limit=limit)


@dataclass
class DateParams:
    """Inclusive calendar-day bounds; either side may be open."""

    start: Optional[date]
    end: Optional[date]
    raw_start: Optional[str]
    raw_end: Optional[str]

    def as_range(self) -> DateRange:
        return DateRange(start_date=self.raw_start, end_date=self.raw_end)


def _to_day(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    try:
        return normalize_day(parse_date_like(value), get_zone(settings.timezone))
    except ValueError as exc:
        raise ValidationError.for_fields({field: f"Invalid date: {value}"}) from exc


def date_params(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> DateParams:
    start = _to_day(start_date, "startDate")
    end = _to_day(end_date, "endDate")
    if start and end and start > end:
        raise ValidationError.for_fields({"startDate": "startDate must not be after endDate"})
    return DateParams(start=start, end=end, raw_start=start_date, raw_end=end_date)
