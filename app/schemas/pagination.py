import math
from collections.abc import Sequence
from typing import TypeVar, Generic
from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    pages: int
    size: int

    @classmethod
    def build(cls, items: Sequence, total: int, page: int, size: int) -> "Page":
        return cls(
            items=list(items),
            total=total,
            page=page,
            pages=math.ceil(total / size) if total else 1,
            size=size,
        )

    @classmethod
    def from_rows(cls, rows: Sequence, page: int, size: int) -> "Page":
        """Page over rows that are already in memory."""
        return cls.build(rows[(page - 1) * size:page * size], len(rows), page, size)
