"""Shared schema bases."""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserBrief(CamelModel):
    id: int
    name: str
    email: str


class ClassBrief(CamelModel):
    id: int
    name: str
    subject: str


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class DateRange(CamelModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
