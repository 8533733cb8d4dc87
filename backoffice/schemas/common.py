"""Shared schema base and pagination envelope."""

import math
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class SortDirection(str, Enum):
    """Sort direction of a list query; parsing is case-insensitive."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class WireModel(BaseModel):
    """
    Base for every payload exchanged with the console.

    Fields carry the wire (French camelCase) names as aliases; Python code
    uses the snake_case attribute names. Validation accepts either spelling,
    serialization emits the wire names.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class PaginationMeta(BaseModel):
    """Pagination block of a paginated list (pages are 0-based)."""

    current_page: int
    page_size: int
    total_elements: int
    total_pages: int
    has_next: bool
    has_previous: bool
    first_page: bool
    last_page: bool

    @classmethod
    def build(cls, page: int, size: int, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / size) if size else 0
        return cls(
            current_page=page,
            page_size=size,
            total_elements=total,
            total_pages=total_pages,
            has_next=page + 1 < total_pages,
            has_previous=page > 0,
            first_page=page == 0,
            last_page=page >= total_pages - 1,
        )


class Page(BaseModel, Generic[T]):
    """Paginated envelope: ``{data: [...], pagination: {...}}``."""

    data: list[T]
    pagination: PaginationMeta
