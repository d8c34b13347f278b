# app/schemas/common.py
"""Shared schema building blocks: camelCase wire format, money, UTC datetimes, pages."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, List, TypeVar

from pydantic import AfterValidator, BaseModel, PlainSerializer
from pydantic.alias_generators import to_camel

from app.utils.time_utils import as_utc

# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Naive values (DB, clients without offset) are UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]

T = TypeVar("T")


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Page(CamelModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    has_next: bool

    @classmethod
    def build(cls, items: list, page: int, size: int, total: int) -> "Page":
        total_pages = (total + size - 1) // size if size else 0
        return cls(content=items, page=page, size=size, total_elements=total,
                   total_pages=total_pages, has_next=page + 1 < total_pages)
